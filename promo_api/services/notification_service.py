"""알림 디스패처 — 신규 프로모션 푸시 알림 팬아웃.

Notification Dispatcher — Fans out push notifications for newly synced
promotions. Runs as a background task submitted by promotion sync and
never raises to its caller.

Two independent paths, each best-effort:
    - broadcast: 활성 고객의 모든 디바이스 (every device of an active customer)
    - favorites: 해당 매장 프로모션을 즐겨찾기한 고객의 디바이스
                 (devices of customers following any promotion of the store)

Bulk send per path:
    1. 토큰을 배치 크기로 분할 (split tokens into provider-sized batches)
    2. 형식 오류 토큰은 즉시 삭제 (shape-invalid tokens are removed at once)
    3. 유효 토큰만 전송, 배치 간 대기 (send valid tokens, pause between batches)
    4. DeviceNotRegistered 토큰 삭제 (remove provider-confirmed dead tokens)
    5. 지연된 영수증 확인 예약 (schedule the deferred receipt check)
"""

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promo_api.config import Settings, settings
from promo_api.database import async_session
from promo_api.models.store import Promotion, Store
from promo_api.repositories.device_token_repository import device_token_repository
from promo_api.repositories.favorite_repository import FavoriteRepository, favorite_repository
from promo_api.repositories.promotion_repository import promotion_repository
from promo_api.services.device_service import DeviceService, device_service
from promo_api.utils.clock import utcnow
from promo_api.utils.expo_push import (
    ExpoPushClient,
    PushReceipt,
    PushTicket,
    chunked,
    expo_push_client,
    mask_token,
)

logger = logging.getLogger(__name__)

BROADCAST_TITLE: str = "New promotions available!"
FAVORITES_TITLE: str = "New promotions at your favorite store!"


@dataclass(frozen=True)
class DispatchRequest:
    """디스패치 입력 스냅샷 — 요청 세션과 분리된 값 (Values detached from the request session)."""

    store_id: UUID
    store_name: str
    promotion_count: int


@dataclass
class SendResult:
    """대량 전송 결과 집계.

    Aggregate of one bulk send.

    Attributes:
        sent: 게이트웨이에 전달한 유효 토큰 수 (Shape-valid tokens handed to the gateway)
        success: 성공 티켓 수 (Tickets with status ok)
        failure: 실패 수, 배치 오류 포함 (Failed tickets, including failed batches)
        invalid_removed: 전송 전 형식 오류로 삭제 요청한 토큰 (Shape-invalid tokens sent for removal)
        failed_removed: 전송 후 영구 실패로 삭제 요청한 토큰 (Provider-confirmed dead tokens sent for removal)
    """

    sent: int = 0
    success: int = 0
    failure: int = 0
    invalid_removed: list[str] = field(default_factory=list)
    failed_removed: list[str] = field(default_factory=list)


@dataclass
class DispatchReport:
    """두 경로의 전송 결과 (Outcome of both fan-out paths)."""

    broadcast: SendResult = field(default_factory=SendResult)
    favorites: SendResult = field(default_factory=SendResult)


class NotificationDispatcher:
    """프로모션 알림 디스패처.

    Promotion notification dispatcher. Every database step opens its own
    short session from ``session_factory`` because it runs after the
    triggering request has finished.

    Attributes:
        session_factory: 비동기 세션 팩토리 (Async session factory)
        push_client: 푸시 게이트웨이 클라이언트 (Push gateway client)
        device_registry: 실패 토큰 삭제를 위한 디바이스 서비스 (Device service used to remove dead tokens)
        favorites: 즐겨찾기 레포지토리, 없으면 즐겨찾기 경로 생략
                   (Favorites repository; the favorites path is skipped when None)
        settings: 배치/지연 설정 (Batch size and delay settings)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        push_client: ExpoPushClient = expo_push_client,
        device_registry: DeviceService = device_service,
        favorites: FavoriteRepository | None = favorite_repository,
        config: Settings = settings,
    ) -> None:
        self.session_factory: async_sessionmaker[AsyncSession] = session_factory
        self.push_client: ExpoPushClient = push_client
        self.device_registry: DeviceService = device_registry
        self.favorites: FavoriteRepository | None = favorites
        self.settings: Settings = config
        self._tasks: set[asyncio.Task[Any]] = set()

    # --- 백그라운드 작업 관리 (Background task bookkeeping) ---

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task: asyncio.Task[Any] = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """대기 중인 모든 백그라운드 작업을 기다립니다 (Wait for every pending background task).

        Tasks spawned while draining (receipt checks) are awaited too.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """대기 중인 작업을 취소합니다 (Cancel pending tasks on application shutdown)."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def submit(self, promotions: Sequence[Promotion], store: Store) -> asyncio.Task[Any]:
        """알림 디스패치를 백그라운드 작업으로 제출합니다.

        Submit a dispatch as a fire-and-forget background task. The caller
        never awaits it.
        """
        request = DispatchRequest(
            store_id=store.id,
            store_name=store.name,
            promotion_count=len(promotions),
        )
        return self._spawn(self.run(request))

    async def dispatch(self, promotions: Sequence[Promotion], store: Store) -> DispatchReport:
        """알림 디스패치를 즉시 실행합니다 (Run a dispatch inline and return its report)."""
        return await self.run(
            DispatchRequest(store_id=store.id, store_name=store.name, promotion_count=len(promotions))
        )

    # --- 팬아웃 (Fan-out) ---

    def _payload(self, request: DispatchRequest, kind: str) -> dict[str, str]:
        return {
            "type": kind,
            "storeId": str(request.store_id),
            "storeName": request.store_name,
            "promotionCount": str(request.promotion_count),
            "timestamp": utcnow().isoformat(),
        }

    async def run(self, request: DispatchRequest) -> DispatchReport:
        """두 경로를 순서대로 실행합니다. 예외를 전파하지 않습니다.

        Run both paths in order. A failure in one path is logged and does not
        abort the other; nothing propagates to the caller.
        """
        report = DispatchReport()
        logger.info(
            "Dispatching notifications for %d promotions of store %s",
            request.promotion_count, request.store_name,
            extra={"store_id": str(request.store_id)},
        )

        try:
            report.broadcast = await self._notify_all(request)
        except Exception:
            logger.exception("Broadcast notification path failed")

        try:
            report.favorites = await self._notify_favorites(request)
        except Exception:
            logger.exception("Favorite store notification path failed")

        return report

    async def _notify_all(self, request: DispatchRequest) -> SendResult:
        async with self.session_factory() as db:
            devices = await device_token_repository.get_all_active(db)
            tokens: list[str] = [d.token for d in devices]

        if not tokens:
            logger.info("No active device tokens, broadcast skipped")
            return SendResult()

        return await self.send_to_tokens(
            tokens,
            BROADCAST_TITLE,
            f"{request.promotion_count} new promotion(s) at {request.store_name}",
            self._payload(request, "new_promotions"),
        )

    async def _notify_favorites(self, request: DispatchRequest) -> SendResult:
        if self.favorites is None:
            logger.info("Favorites lookup unavailable, favorite store path skipped")
            return SendResult()

        async with self.session_factory() as db:
            promotion_ids: list[UUID] = [
                promotion.id for promotion in await promotion_repository.get_by_store(db, request.store_id)
            ]
            customer_ids: set[UUID] = set()
            for promotion_id in promotion_ids:
                try:
                    favorites = await self.favorites.get_by_promotion_id(db, promotion_id)
                except Exception:
                    logger.exception("Failed to load favorites for promotion %s", promotion_id)
                    # PostgreSQL은 실패한 쿼리 뒤 트랜잭션을 중단함 (a failed query aborts the transaction)
                    await db.rollback()
                    continue
                customer_ids.update(f.customer_id for f in favorites)

            tokens: list[str] = await device_token_repository.get_tokens_for_customers(
                db, list(customer_ids)
            )

        if not tokens:
            logger.info("No devices follow store %s", request.store_name)
            return SendResult()

        return await self.send_to_tokens(
            tokens,
            FAVORITES_TITLE,
            f"{request.store_name} has {request.promotion_count} new promotion(s)",
            self._payload(request, "favorite_store_promotions"),
        )

    # --- 대량 전송 (Bulk send) ---

    async def send_to_tokens(
        self,
        tokens: Sequence[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> SendResult:
        """토큰 목록에 알림을 배치 단위로 전송합니다.

        Send one notification to many tokens in provider-sized batches.
        A failing batch is logged and counted; later batches still run.

        Args:
            tokens: 대상 토큰, 중복 제거됨 (Target tokens; duplicates are dropped)
            title: 알림 제목 (Notification title)
            body: 알림 본문 (Notification body)
            data: 앱 데이터 (Data payload)

        Returns:
            SendResult: 전송 결과 집계 (Aggregated outcome)
        """
        result = SendResult()
        unique: list[str] = list(dict.fromkeys(tokens))
        batches: list[list[str]] = chunked(unique, self.settings.PUSH_BATCH_SIZE)
        receipt_tokens: dict[str, str] = {}

        for index, batch in enumerate(batches):
            valid: list[str] = [t for t in batch if self.push_client.is_valid_token_format(t)]
            invalid: list[str] = [t for t in batch if t not in valid]
            if invalid:
                for token in invalid:
                    logger.warning("Invalid push token detected: %s", mask_token(token))
                result.invalid_removed.extend(invalid)
                await self._remove_tokens(invalid)

            if valid:
                result.sent += len(valid)
                try:
                    tickets: list[PushTicket] = await self.push_client.send_batch(valid, title, body, data)
                except Exception:
                    logger.exception("Push batch %d/%d failed", index + 1, len(batches))
                    result.failure += len(valid)
                else:
                    for ticket in tickets:
                        if ticket.ok:
                            result.success += 1
                            if ticket.id:
                                receipt_tokens[ticket.id] = ticket.token
                            continue
                        result.failure += 1
                        logger.warning(
                            "Push ticket error for %s: %s", mask_token(ticket.token), ticket.message
                        )
                        if ticket.is_permanent_failure:
                            result.failed_removed.append(ticket.token)

            if index < len(batches) - 1 and self.settings.PUSH_BATCH_DELAY_SECONDS > 0:
                await asyncio.sleep(self.settings.PUSH_BATCH_DELAY_SECONDS)

        logger.info(
            "Push send finished: %d success, %d failure", result.success, result.failure,
            extra={"count": result.sent},
        )

        if result.failed_removed:
            await self._remove_tokens(result.failed_removed)

        if receipt_tokens and self.settings.PUSH_RECEIPT_DELAY_SECONDS > 0:
            self._spawn(self._check_receipts_later(receipt_tokens))

        return result

    async def _remove_tokens(self, tokens: Sequence[str]) -> int:
        """디바이스 레지스트리를 통해 토큰을 삭제합니다. 실패는 로그만 남깁니다.

        Remove tokens through the device registry in a short session of its
        own. Failures are logged and swallowed.
        """
        try:
            async with self.session_factory() as db:
                removed: int = await self.device_registry.remove_tokens(db, tokens)
                await db.commit()
                return removed
        except Exception:
            logger.exception("Failed to remove %d device tokens", len(tokens))
            return 0

    async def _check_receipts_later(self, receipt_tokens: dict[str, str]) -> list[str]:
        """지연 후 영수증을 확인하고 DeviceNotRegistered 토큰을 삭제합니다.

        After ``PUSH_RECEIPT_DELAY_SECONDS``, fetch receipts and remove the
        tokens whose receipt reports DeviceNotRegistered.

        Returns:
            list[str]: 삭제 요청한 토큰 (Tokens sent for removal)
        """
        await asyncio.sleep(self.settings.PUSH_RECEIPT_DELAY_SECONDS)
        try:
            receipts: dict[str, PushReceipt] = await self.push_client.check_receipts(list(receipt_tokens))
        except Exception:
            logger.exception("Failed to fetch push receipts")
            return []

        dead: list[str] = []
        for receipt_id, receipt in receipts.items():
            if receipt.status == "error":
                logger.warning("Push receipt %s error: %s", receipt_id, receipt.message)
            if receipt.is_permanent_failure and receipt_id in receipt_tokens:
                dead.append(receipt_tokens[receipt_id])

        if dead:
            await self._remove_tokens(dead)
        return dead


# 싱글턴 인스턴스 — Singleton instance
notification_dispatcher: NotificationDispatcher = NotificationDispatcher()
