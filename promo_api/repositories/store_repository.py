"""회사/매장 레포지토리 — CNPJ 기반 조회 및 동기화용 생성.

Company and Store Repositories — CNPJ lookups and creation used by
registration-time store validation and promotion sync.
"""

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.store import Company, Store
from promo_api.repositories.base import BaseRepository


class CompanyRepository(BaseRepository[Company]):
    """회사 테이블 레포지토리 (Repository for the companies table)."""

    def __init__(self) -> None:
        super().__init__(Company)

    async def get_by_cnpj(
        self,
        db: AsyncSession,
        cnpj: str,
    ) -> Company | None:
        """CNPJ로 회사를 조회합니다 (Retrieve a company by tax id)."""
        query: Select = select(Company).where(Company.cnpj == cnpj)
        result = await db.execute(query)
        return result.scalar_one_or_none()


class StoreRepository(BaseRepository[Store]):
    """매장 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the stores table.
    """

    def __init__(self) -> None:
        super().__init__(Store)

    async def get_by_cnpj(
        self,
        db: AsyncSession,
        cnpj: str,
    ) -> Store | None:
        """CNPJ로 매장을 조회합니다.

        Retrieve a store by tax id.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            cnpj: 매장 사업자 번호 (Store tax id)

        Returns:
            Store | None: 조회된 매장 또는 None (Found store or None)
        """
        query: Select = select(Store).where(Store.cnpj == cnpj)
        result = await db.execute(query)
        return result.scalar_one_or_none()


# 싱글턴 인스턴스 — Singleton instances
company_repository: CompanyRepository = CompanyRepository()
store_repository: StoreRepository = StoreRepository()
