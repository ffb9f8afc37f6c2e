"""즐겨찾기 레포지토리 — 고객 즐겨찾기 관리와 알림 대상 조회.

Favorite Repository — Customer favorites management and the lookups used
to find the customers following a promotion.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.favorite import Favorite
from promo_api.repositories.base import BaseRepository


class FavoriteRepository(BaseRepository[Favorite]):
    """즐겨찾기 테이블 레포지토리 (Repository for the favorites table)."""

    def __init__(self) -> None:
        super().__init__(Favorite)

    async def get_by_promotion_id(
        self,
        db: AsyncSession,
        promotion_id: UUID,
    ) -> Sequence[Favorite]:
        """프로모션을 즐겨찾기한 레코드 목록 (Favorites pointing at a promotion)."""
        query: Select = select(Favorite).where(Favorite.promotion_id == promotion_id)
        result = await db.execute(query)
        return result.scalars().all()

    async def get_by_customer(
        self,
        db: AsyncSession,
        customer_id: UUID,
    ) -> Sequence[Favorite]:
        """고객의 즐겨찾기 목록, 최신순 (A customer's favorites, newest first)."""
        query: Select = (
            select(Favorite)
            .where(Favorite.customer_id == customer_id)
            .order_by(Favorite.created_at.desc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_by_customer_and_promotion(
        self,
        db: AsyncSession,
        customer_id: UUID,
        promotion_id: UUID,
    ) -> Favorite | None:
        query: Select = select(Favorite).where(
            Favorite.customer_id == customer_id,
            Favorite.promotion_id == promotion_id,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


# 싱글턴 인스턴스 — Singleton instance
favorite_repository: FavoriteRepository = FavoriteRepository()
