"""고객 레포지토리 — 모바일 고객 조회 및 생성.

Customer Repository — Lookup and creation of mobile app customers.
"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.user import Customer
from promo_api.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """고객 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the customers table.
    """

    def __init__(self) -> None:
        super().__init__(Customer)

    async def get_by_email(
        self,
        db: AsyncSession,
        email: str,
    ) -> Customer | None:
        """이메일로 고객을 조회합니다 (Retrieve a customer by email, case-insensitively)."""
        query: Select = select(Customer).where(
            func.lower(Customer.email) == email.strip().lower()
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


# 싱글턴 인스턴스 — Singleton instance
customer_repository: CustomerRepository = CustomerRepository()
