"""디바이스 서비스 — 푸시 디바이스 등록 및 토큰 위생 관리.

Device Service — Push device registration and token hygiene: idempotent
re-registration, per-customer cap with least-recently-updated eviction,
shape re-validation, stale sweeps and statistics.
"""

import logging
from datetime import datetime, timedelta
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.config import Settings, settings
from promo_api.models.device import DeviceToken
from promo_api.repositories.device_token_repository import device_token_repository
from promo_api.schemas.device import DeviceCleanupResponse, DeviceStatsResponse
from promo_api.utils.clock import utcnow
from promo_api.utils.exceptions import InvalidPushTokenError
from promo_api.utils.expo_push import ExpoPushClient, expo_push_client, mask_token

logger = logging.getLogger(__name__)


class DeviceService:
    """고객 디바이스 토큰을 관리하는 서비스.

    Service managing customer device tokens.

    Attributes:
        push_client: 토큰 형식 검증에 사용하는 푸시 클라이언트 (Push client providing the token-shape contract)
        settings: 디바이스 한도/보존 기간 설정 (Device cap and retention settings)
    """

    def __init__(
        self,
        push_client: ExpoPushClient = expo_push_client,
        config: Settings = settings,
    ) -> None:
        self.push_client: ExpoPushClient = push_client
        self.settings: Settings = config

    @property
    def max_devices(self) -> int:
        return max(1, self.settings.MAX_DEVICES_PER_CUSTOMER)

    async def register(
        self,
        db: AsyncSession,
        customer_id: UUID,
        token: str,
        platform: str,
    ) -> DeviceToken:
        """디바이스 토큰을 등록합니다.

        Register a push token for a customer.

        1. 형식 검증 — 저장 전에 수행 (Shape check, before any persistence)
        2. 같은 (고객, 토큰)이 있으면 플랫폼/시각만 갱신 (Update in place when already registered)
        3. 한도에 도달했으면 가장 오래 갱신되지 않은 디바이스 제거 (Evict the LRU device at the cap)
        4. 새 레코드 삽입 (Insert the new record)

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            customer_id: 고객 UUID (Owning customer)
            token: 푸시 토큰 (Push token)
            platform: 플랫폼 (ios | android)

        Returns:
            DeviceToken: 등록 또는 갱신된 레코드 (Registered or refreshed record)

        Raises:
            InvalidPushTokenError: 토큰 형식 오류 (Malformed push token)
        """
        if not self.push_client.is_valid_token_format(token):
            raise InvalidPushTokenError()

        existing: DeviceToken | None = await device_token_repository.get_by_customer_and_token(
            db, customer_id, token
        )
        if existing is not None:
            return await device_token_repository.update(
                db, existing, {"platform": platform, "updated_at": utcnow()}
            )

        count: int = await device_token_repository.count_by_customer(db, customer_id)
        if count >= self.max_devices:
            evicted: DeviceToken | None = await device_token_repository.get_least_recently_updated(
                db, customer_id
            )
            if evicted is not None:
                await device_token_repository.delete(db, evicted.id)
                logger.info(
                    "Device cap reached, evicted %s", mask_token(evicted.token),
                    extra={"principal_id": str(customer_id)},
                )

        now: datetime = utcnow()
        return await device_token_repository.create(
            db,
            {
                "customer_id": customer_id,
                "token": token,
                "platform": platform,
                "created_at": now,
                "updated_at": now,
            },
        )

    async def validate_and_clean(
        self,
        db: AsyncSession,
        customer_id: UUID,
    ) -> DeviceCleanupResponse:
        """고객의 모든 토큰을 재검증하고 형식 오류 토큰을 삭제합니다.

        Re-check every stored token of the customer against the shape
        contract and batch-delete the failures.
        """
        devices: Sequence[DeviceToken] = await device_token_repository.get_by_customer(db, customer_id)
        invalid_ids: list[UUID] = [
            d.id for d in devices if not self.push_client.is_valid_token_format(d.token)
        ]
        removed: int = await device_token_repository.delete_ids(db, invalid_ids)
        return DeviceCleanupResponse(valid=len(devices) - len(invalid_ids), removed=removed)

    async def get_stats(
        self,
        db: AsyncSession,
        customer_id: UUID | None = None,
    ) -> DeviceStatsResponse:
        """디바이스 통계를 조회합니다 — 부수 효과 없음.

        Per-customer and global device counts by platform and validity.
        Pure read.
        """
        customer_stats: dict[str, int | dict[str, int]] = {}
        if customer_id is not None:
            devices: Sequence[DeviceToken] = await device_token_repository.get_by_customer(db, customer_id)
            valid: int = sum(1 for d in devices if self.push_client.is_valid_token_format(d.token))
            by_platform: dict[str, int] = {}
            for d in devices:
                by_platform[d.platform] = by_platform.get(d.platform, 0) + 1
            customer_stats = {
                "total": len(devices),
                "valid": valid,
                "invalid": len(devices) - valid,
                "by_platform": by_platform,
            }

        global_by_platform: dict[str, int] = await device_token_repository.count_by_platform(db)
        return DeviceStatsResponse(
            customer=customer_stats,
            total=sum(global_by_platform.values()),
            active=await device_token_repository.count_active(db),
            by_platform=global_by_platform,
            max_devices_per_customer=self.max_devices,
        )

    async def sweep_stale(
        self,
        db: AsyncSession,
        max_age_days: int | None = None,
    ) -> int:
        """보존 기간 동안 갱신되지 않은 디바이스를 삭제합니다.

        Delete device records not updated within the retention window
        (``TOKEN_CLEANUP_DAYS`` by default).

        Returns:
            int: 삭제된 레코드 수 (Number of records removed)
        """
        days: int = max_age_days if max_age_days is not None else self.settings.TOKEN_CLEANUP_DAYS
        cutoff: datetime = utcnow() - timedelta(days=days)
        removed: int = await device_token_repository.delete_stale(db, cutoff)
        logger.info("Stale device sweep finished", extra={"count": removed})
        return removed

    async def remove_tokens(
        self,
        db: AsyncSession,
        tokens: Sequence[str],
    ) -> int:
        """디스패처가 보고한 실패 토큰을 삭제합니다 (Remove tokens reported as dead)."""
        removed: int = await device_token_repository.remove_tokens(db, tokens)
        if removed:
            logger.info("Removed %d invalid device tokens", removed, extra={"count": removed})
        return removed


# 싱글턴 인스턴스 — Singleton instance
device_service: DeviceService = DeviceService()
