"""유지보수 스케줄러 테스트 — 1회 실행, 시작/중지.

Maintenance scheduler tests — One immediate pass and loop start/stop.
"""

from datetime import timedelta

from sqlalchemy import select

from promo_api.models.device import DeviceToken
from promo_api.models.token import RefreshToken
from promo_api.models.user import PRINCIPAL_CUSTOMER
from promo_api.repositories.refresh_token_repository import refresh_token_repository
from promo_api.services.device_service import DeviceService
from promo_api.services.maintenance_service import MaintenanceScheduler
from promo_api.utils.clock import utcnow
from promo_api.utils.expo_push import ExpoPushClient
from tests.conftest import make_settings


def _scheduler(session_factory, **overrides) -> MaintenanceScheduler:
    config = make_settings(**overrides)
    client = ExpoPushClient(config=config)
    return MaintenanceScheduler(
        session_factory=session_factory,
        devices=DeviceService(push_client=client, config=config),
        push_client=client,
        config=config,
    )


class TestRunNow:
    """즉시 실행 테스트."""

    async def test_run_now_purges_tokens(self, db, session_factory, customer):
        """만료 리프레시 토큰과 오래된 디바이스 삭제."""
        await refresh_token_repository.save(
            db, principal_id=customer.id, principal_type=PRINCIPAL_CUSTOMER,
            secret="live", expires_at=utcnow() + timedelta(days=1),
        )
        await refresh_token_repository.save(
            db, principal_id=customer.id, principal_type=PRINCIPAL_CUSTOMER,
            secret="dead", expires_at=utcnow() - timedelta(days=1),
        )
        old = utcnow() - timedelta(days=200)
        db.add(DeviceToken(customer_id=customer.id, token="ExponentPushToken[old]", platform="ios",
                           created_at=old, updated_at=old))
        db.add(DeviceToken(customer_id=customer.id, token="ExponentPushToken[new]", platform="ios"))
        await db.commit()

        report = await _scheduler(session_factory, TOKEN_CLEANUP_DAYS=90).run_now()

        assert report.refresh_tokens_removed == 1
        assert report.device_tokens_removed == 1
        assert report.device_stats.total == 1
        assert "batch_size" in report.push_client
        assert len((await db.execute(select(RefreshToken.id))).scalars().all()) == 1
        assert (await db.execute(select(DeviceToken.token))).scalars().all() == ["ExponentPushToken[new]"]


class TestLoop:
    """스케줄러 루프 테스트."""

    async def test_start_and_stop(self, session_factory):
        """시작 후 실행 중, 중지 후 정지."""
        scheduler = _scheduler(session_factory, MAINTENANCE_INTERVAL_HOURS=1)
        scheduler.start()
        assert scheduler.is_running
        await scheduler.stop()
        assert not scheduler.is_running

    async def test_disabled_interval(self, session_factory):
        """간격 0이면 시작하지 않음."""
        scheduler = _scheduler(session_factory, MAINTENANCE_INTERVAL_HOURS=0)
        scheduler.start()
        assert not scheduler.is_running
        await scheduler.stop()
