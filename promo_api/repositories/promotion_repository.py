"""프로모션 레포지토리 — 매장별 조회 및 동기화 업서트.

Promotion Repository — Per-store lookup and sync upsert keyed by the
store-assigned promotion id.
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.store import Promotion
from promo_api.repositories.base import BaseRepository


class PromotionRepository(BaseRepository[Promotion]):
    """프로모션 테이블 레포지토리 (Repository for the promotions table)."""

    def __init__(self) -> None:
        super().__init__(Promotion)

    async def get_by_store(
        self,
        db: AsyncSession,
        store_id: UUID,
    ) -> Sequence[Promotion]:
        """매장의 모든 프로모션을 조회합니다 (All promotions of a store, oldest first)."""
        query: Select = (
            select(Promotion)
            .where(Promotion.store_id == store_id)
            .order_by(Promotion.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def upsert_many(
        self,
        db: AsyncSession,
        items: list[dict[str, Any]],
    ) -> list[Promotion]:
        """ID 기준으로 프로모션을 삽입하거나 갱신합니다.

        Insert or update promotions keyed by their id. Rows that already
        exist have every supplied field overwritten.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            items: 프로모션 필드 딕셔너리 목록, 각각 "id" 포함
                   (Promotion field dicts, each carrying an "id")

        Returns:
            list[Promotion]: 저장된 프로모션 (Saved promotions, in input order)
        """
        saved: list[Promotion] = []
        for data in items:
            existing: Promotion | None = await self.get_by_id(db, data["id"])
            if existing is None:
                promotion = Promotion(**data)
                db.add(promotion)
            else:
                for field, value in data.items():
                    setattr(existing, field, value)
                promotion = existing
            saved.append(promotion)

        await db.flush()
        return saved


# 싱글턴 인스턴스 — Singleton instance
promotion_repository: PromotionRepository = PromotionRepository()
