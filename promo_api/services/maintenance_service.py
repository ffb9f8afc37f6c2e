"""유지보수 스케줄러 — 주기적 토큰 정리 백그라운드 루프.

Maintenance Scheduler — Background asyncio loop started in the app
lifespan. Each run purges expired or revoked refresh tokens, removes
stale device tokens and logs device statistics.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promo_api.config import Settings, settings
from promo_api.database import async_session
from promo_api.schemas.device import DeviceStatsResponse
from promo_api.services.device_service import DeviceService, device_service
from promo_api.services.session_service import SessionService, session_service
from promo_api.utils.expo_push import ExpoPushClient, expo_push_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaintenanceReport:
    """유지보수 1회 실행 결과 (Outcome of one maintenance run)."""

    refresh_tokens_removed: int
    device_tokens_removed: int
    device_stats: DeviceStatsResponse
    push_client: dict[str, Any]


class MaintenanceScheduler:
    """주기적 유지보수 스케줄러.

    Periodic maintenance scheduler. ``MAINTENANCE_INTERVAL_HOURS <= 0``
    disables the loop; ``run_now`` is always available.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        sessions: SessionService = session_service,
        devices: DeviceService = device_service,
        push_client: ExpoPushClient = expo_push_client,
        config: Settings = settings,
    ) -> None:
        self.session_factory: async_sessionmaker[AsyncSession] = session_factory
        self.sessions: SessionService = sessions
        self.devices: DeviceService = devices
        self.push_client: ExpoPushClient = push_client
        self.settings: Settings = config
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self.settings.MAINTENANCE_INTERVAL_HOURS * 3600

    async def run_now(self) -> MaintenanceReport:
        """유지보수를 즉시 1회 실행합니다.

        Run one maintenance pass immediately and commit it.

        Returns:
            MaintenanceReport: 실행 결과 (Counts removed plus current device stats)
        """
        async with self.session_factory() as db:
            refresh_removed: int = await self.sessions.sweep(db)
            devices_removed: int = await self.devices.sweep_stale(db)
            await db.commit()
            stats: DeviceStatsResponse = await self.devices.get_stats(db)

        logger.info(
            "Maintenance finished: %d refresh tokens, %d device tokens removed; "
            "%d devices (%d active)",
            refresh_removed, devices_removed, stats.total, stats.active,
        )
        return MaintenanceReport(
            refresh_tokens_removed=refresh_removed,
            device_tokens_removed=devices_removed,
            device_stats=stats,
            push_client=self.push_client.stats(),
        )

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_now()
            except Exception:
                logger.exception("Maintenance run failed")

    def start(self) -> None:
        """스케줄러 루프를 시작합니다 (Start the loop; no-op when disabled or already running)."""
        if self.interval_seconds <= 0:
            logger.info("Maintenance scheduler disabled")
            return
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Maintenance scheduler started, every %.1f hours", self.settings.MAINTENANCE_INTERVAL_HOURS)

    async def stop(self) -> None:
        """스케줄러 루프를 중지합니다 (Cancel the loop and wait for it)."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Maintenance scheduler stopped")


# 싱글턴 인스턴스 — Singleton instance
maintenance_scheduler: MaintenanceScheduler = MaintenanceScheduler()
