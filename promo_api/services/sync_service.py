"""프로모션 동기화 서비스 — 매장 시스템에서 중앙 DB로 업서트.

Promotion Sync Service — Upserts the company, store and promotions sent
by a store system, then hands the saved promotions to the notification
dispatcher as a background task.

Sync failures are reported in the response body instead of raised, so
the store system always gets a structured answer.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.store import Company, Promotion, Store
from promo_api.repositories.promotion_repository import promotion_repository
from promo_api.repositories.store_repository import company_repository, store_repository
from promo_api.schemas.promotion import SyncCompany, SyncRequest, SyncResponse, SyncStore
from promo_api.services.notification_service import NotificationDispatcher, notification_dispatcher
from promo_api.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _parse_uuid(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


class SyncService:
    """프로모션 동기화 서비스.

    Promotion sync service.

    Attributes:
        dispatcher: 알림 디스패처, None이면 알림 생략
                    (Notification dispatcher; notifications are skipped when None)
    """

    def __init__(self, dispatcher: NotificationDispatcher | None = None) -> None:
        self.dispatcher: NotificationDispatcher | None = dispatcher

    async def _upsert_company(self, db: AsyncSession, data: SyncCompany) -> Company:
        fields: dict[str, Any] = {
            "name": data.name,
            "trading_name": data.trading_name,
            "is_active": data.active,
        }
        company: Company | None = await company_repository.get_by_cnpj(db, data.cnpj)
        if company is not None:
            return await company_repository.update(db, company, fields)

        fields["cnpj"] = data.cnpj
        remote_id: UUID | None = _parse_uuid(data.id)
        if remote_id is not None:
            fields["id"] = remote_id
        return await company_repository.create(db, fields)

    async def _upsert_store(self, db: AsyncSession, data: SyncStore, company: Company) -> Store:
        fields: dict[str, Any] = {
            "name": data.name,
            "address": data.address,
            "city": data.city,
            "state": data.state,
            "zip_code": data.zip_code,
            "is_active": data.active,
        }
        store: Store | None = await store_repository.get_by_cnpj(db, data.cnpj)
        if store is not None:
            return await store_repository.update(db, store, fields)

        fields.update({"cnpj": data.cnpj, "company_id": company.id})
        remote_id: UUID | None = _parse_uuid(data.id)
        if remote_id is not None:
            fields["id"] = remote_id
        return await store_repository.create(db, fields)

    async def sync(self, db: AsyncSession, data: SyncRequest) -> SyncResponse:
        """동기화 요청을 처리합니다.

        Apply a sync request and commit it. After a non-empty sync the saved
        promotions are submitted to the dispatcher; the response never waits
        for notifications.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 동기화 요청 (Sync request)

        Returns:
            SyncResponse: 동기화 결과 (Sync outcome; failures carry success=False)
        """
        try:
            company: Company = await self._upsert_company(db, data.company)
            store: Store = await self._upsert_store(db, data.store, company)
            saved: list[Promotion] = await promotion_repository.upsert_many(
                db,
                [
                    {
                        "id": UUID(p.id),
                        "store_id": store.id,
                        "name": p.name,
                        "description": p.description,
                        "original_price": p.original_price,
                        "promotional_price": p.promotional_price,
                        "start_date": p.start_date,
                        "end_date": p.end_date,
                        "product_id": p.product_id,
                        "is_active": p.active,
                    }
                    for p in data.promotions
                ],
            )
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.exception("Promotion sync failed")
            return SyncResponse(
                success=False,
                message=str(exc) or "Unknown error occurred",
                timestamp=utcnow(),
                total_synced=0,
                errors=[str(exc) or type(exc).__name__],
            )

        if saved and self.dispatcher is not None:
            self.dispatcher.submit(saved, store)

        logger.info(
            "Synced %d promotions for store %s", len(saved), store.name,
            extra={"store_id": str(store.id), "count": len(saved)},
        )
        return SyncResponse(
            success=True,
            message=f"Successfully synced {len(saved)} promotions for store {store.name}",
            timestamp=utcnow(),
            total_synced=len(saved),
        )


# 싱글턴 인스턴스 — Singleton instance
sync_service: SyncService = SyncService(dispatcher=notification_dispatcher)
