"""디바이스 토큰 레포지토리 — 푸시 토큰 저장소.

Device Token Repository — Persistence of customer push tokens, including
the bulk removals fed back by the notification dispatcher.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.device import DeviceToken
from promo_api.models.user import Customer
from promo_api.repositories.base import BaseRepository


class DeviceTokenRepository(BaseRepository[DeviceToken]):
    """디바이스 토큰 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the device_tokens table.
    """

    def __init__(self) -> None:
        super().__init__(DeviceToken)

    async def get_by_customer(
        self,
        db: AsyncSession,
        customer_id: UUID,
    ) -> Sequence[DeviceToken]:
        """고객의 모든 디바이스 토큰 (All device tokens of a customer, oldest first)."""
        query: Select = (
            select(DeviceToken)
            .where(DeviceToken.customer_id == customer_id)
            .order_by(DeviceToken.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_by_customer_and_token(
        self,
        db: AsyncSession,
        customer_id: UUID,
        token: str,
    ) -> DeviceToken | None:
        """(고객, 토큰) 쌍으로 레코드를 조회합니다 (Lookup by the unique pair)."""
        query: Select = select(DeviceToken).where(
            DeviceToken.customer_id == customer_id,
            DeviceToken.token == token,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def count_by_customer(
        self,
        db: AsyncSession,
        customer_id: UUID,
    ) -> int:
        query: Select = (
            select(func.count())
            .select_from(DeviceToken)
            .where(DeviceToken.customer_id == customer_id)
        )
        return (await db.execute(query)).scalar() or 0

    async def get_least_recently_updated(
        self,
        db: AsyncSession,
        customer_id: UUID,
    ) -> DeviceToken | None:
        """가장 오래 갱신되지 않은 디바이스 — 용량 초과 시 제거 대상.

        The customer's least recently updated device, i.e. the eviction
        candidate when the device cap is reached. Ties break on creation time.
        """
        query: Select = (
            select(DeviceToken)
            .where(DeviceToken.customer_id == customer_id)
            .order_by(DeviceToken.updated_at.asc(), DeviceToken.created_at.asc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_all_active(self, db: AsyncSession) -> Sequence[DeviceToken]:
        """활성 고객의 모든 디바이스 토큰.

        All device tokens whose owning customer is active (broadcast audience).
        """
        query: Select = (
            select(DeviceToken)
            .join(Customer, Customer.id == DeviceToken.customer_id)
            .where(Customer.is_active == True)  # noqa: E712
            .order_by(DeviceToken.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_tokens_for_customers(
        self,
        db: AsyncSession,
        customer_ids: Sequence[UUID],
    ) -> list[str]:
        """여러 고객의 토큰 문자열을 중복 없이 반환합니다.

        Distinct push-token strings owned by the given customers.
        """
        if not customer_ids:
            return []
        query: Select = (
            select(DeviceToken.token)
            .where(DeviceToken.customer_id.in_(list(customer_ids)))
            .distinct()
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def remove_tokens(
        self,
        db: AsyncSession,
        tokens: Sequence[str],
    ) -> int:
        """토큰 문자열과 일치하는 모든 레코드를 삭제합니다.

        Delete every record carrying one of the given push tokens, across customers.

        Returns:
            int: 삭제된 레코드 수 (Number of records removed)
        """
        if not tokens:
            return 0
        return await self.delete_where(db, DeviceToken.token.in_(list(tokens)))

    async def delete_ids(
        self,
        db: AsyncSession,
        record_ids: Sequence[UUID],
    ) -> int:
        """ID 목록으로 일괄 삭제합니다 (Batch delete by id)."""
        if not record_ids:
            return 0
        return await self.delete_where(db, DeviceToken.id.in_(list(record_ids)))

    async def delete_stale(
        self,
        db: AsyncSession,
        cutoff: datetime,
    ) -> int:
        """기준 시각 이전에 갱신된 레코드를 삭제합니다.

        Delete records not updated since ``cutoff``.

        Returns:
            int: 삭제된 레코드 수 (Number of records removed)
        """
        return await self.delete_where(db, DeviceToken.updated_at < cutoff)

    async def count_by_platform(
        self,
        db: AsyncSession,
        customer_id: UUID | None = None,
    ) -> dict[str, int]:
        """플랫폼별 레코드 수 (Record count per platform, optionally for one customer)."""
        query: Select = select(DeviceToken.platform, func.count()).group_by(DeviceToken.platform)
        if customer_id is not None:
            query = query.where(DeviceToken.customer_id == customer_id)
        result = await db.execute(query)
        return {platform: count for platform, count in result.all()}

    async def count_active(self, db: AsyncSession) -> int:
        """활성 고객 소유 레코드 수 (Records owned by active customers)."""
        query: Select = (
            select(func.count())
            .select_from(DeviceToken)
            .join(Customer, Customer.id == DeviceToken.customer_id)
            .where(Customer.is_active == True)  # noqa: E712
        )
        return (await db.execute(query)).scalar() or 0


# 싱글턴 인스턴스 — Singleton instance
device_token_repository: DeviceTokenRepository = DeviceTokenRepository()
