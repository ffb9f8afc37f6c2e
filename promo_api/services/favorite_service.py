"""즐겨찾기 서비스 — 고객 즐겨찾기 추가, 삭제, 조회.

Favorite Service — Customers add, remove and list favorite promotions.
Favorites drive the "favorite store" path of the notification dispatcher.
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.favorite import Favorite
from promo_api.repositories.favorite_repository import favorite_repository
from promo_api.repositories.promotion_repository import promotion_repository
from promo_api.utils.exceptions import ForbiddenError, PromotionNotFoundError

logger = logging.getLogger(__name__)


class FavoriteService:
    """고객 즐겨찾기를 관리하는 서비스 (Service managing customer favorites)."""

    async def add(
        self,
        db: AsyncSession,
        customer_id: UUID,
        promotion_id: UUID,
    ) -> Favorite:
        """프로모션을 즐겨찾기에 추가합니다.

        Add a promotion to the customer's favorites. Adding the same
        promotion again returns the existing record.

        Raises:
            PromotionNotFoundError: 프로모션 없음 (Unknown promotion)
        """
        if await promotion_repository.get_by_id(db, promotion_id) is None:
            raise PromotionNotFoundError()

        existing: Favorite | None = await favorite_repository.get_by_customer_and_promotion(
            db, customer_id, promotion_id
        )
        if existing is not None:
            return existing

        favorite: Favorite = await favorite_repository.create(
            db, {"customer_id": customer_id, "promotion_id": promotion_id}
        )
        logger.info("Favorite added", extra={"principal_id": str(customer_id)})
        return favorite

    async def remove(
        self,
        db: AsyncSession,
        customer_id: UUID,
        favorite_id: UUID,
    ) -> bool:
        """즐겨찾기를 삭제합니다. 없는 ID는 False.

        Remove one favorite. An unknown id returns False.

        Raises:
            ForbiddenError: 다른 고객의 즐겨찾기 (Favorite belongs to another customer)
        """
        favorite: Favorite | None = await favorite_repository.get_by_id(db, favorite_id)
        if favorite is None:
            return False
        if favorite.customer_id != customer_id:
            raise ForbiddenError("Favorite belongs to another customer")
        return await favorite_repository.delete(db, favorite_id)

    async def list_for_customer(self, db: AsyncSession, customer_id: UUID) -> Sequence[Favorite]:
        return await favorite_repository.get_by_customer(db, customer_id)


# 싱글턴 인스턴스 — Singleton instance
favorite_service: FavoriteService = FavoriteService()
