"""Expo 푸시 게이트웨이 클라이언트 — httpx 기반 비동기 전송.

Expo push gateway client — async delivery over httpx.

Contract consumed by the notification dispatcher:
    - ``is_valid_token_format(token)``: 토큰 형식 검증 (token shape contract)
    - ``send_batch(tokens, title, body, data)``: 토큰별 전송 결과 (per-token ticket)
    - ``check_receipts(ids)``: 영수증별 최종 전달 결과 (per-receipt outcome)

Tickets come back in the same order as the messages sent, which is how a
ticket is matched to its token.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from promo_api.config import Settings, settings

logger = logging.getLogger(__name__)

# Expo 토큰 형식 — "ExponentPushToken[...]", "ExpoPushToken[...]" 또는 UUID 형식
_EXPO_TOKEN_PATTERN = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[.+\]$")
_UUID_TOKEN_PATTERN = re.compile(
    r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE
)

# 영수증 조회 최대 ID 수 — Expo accepts up to 300 receipt ids per request
RECEIPT_CHUNK_SIZE: int = 300

# 영구 실패 오류 — Provider error classes meaning the token will never work again
PERMANENT_ERRORS: frozenset[str] = frozenset({"DeviceNotRegistered"})


def is_expo_push_token(token: Any) -> bool:
    """Expo 푸시 토큰 형식인지 확인합니다 (Whether the value has the Expo token shape)."""
    if not isinstance(token, str):
        return False
    return bool(_EXPO_TOKEN_PATTERN.match(token) or _UUID_TOKEN_PATTERN.match(token))


def mask_token(token: str, keep: int = 24) -> str:
    """로그용 토큰 마스킹 — Only a short prefix of a push token is ever logged."""
    return token if len(token) <= keep else f"{token[:keep]}..."


def chunked(items: Sequence[Any], size: int) -> list[list[Any]]:
    """목록을 고정 크기 묶음으로 나눕니다 (Split a sequence into fixed-size batches)."""
    step: int = max(1, size)
    return [list(items[i:i + step]) for i in range(0, len(items), step)]


class ExpoPushError(Exception):
    """게이트웨이 요청 자체가 실패했을 때 (Gateway request-level failure)."""


@dataclass(frozen=True)
class PushTicket:
    """전송 티켓 — 토큰 하나에 대한 즉시 결과.

    Push ticket — immediate per-token outcome of a send request.

    Attributes:
        token: 대상 푸시 토큰 (Target push token)
        status: "ok" | "error"
        id: 영수증 ID, 성공 시 (Receipt id when status is ok)
        message: 오류 메시지 (Error message)
        error: 오류 분류 (Provider error class, e.g. "DeviceNotRegistered")
    """

    token: str
    status: str
    id: str | None = None
    message: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_permanent_failure(self) -> bool:
        return not self.ok and self.error in PERMANENT_ERRORS


@dataclass(frozen=True)
class PushReceipt:
    """전달 영수증 — 비동기 최종 전달 결과 (Asynchronous delivery outcome)."""

    id: str
    status: str
    message: str | None = None
    error: str | None = None

    @property
    def is_permanent_failure(self) -> bool:
        return self.status == "error" and self.error in PERMANENT_ERRORS


class ExpoPushClient:
    """Expo 푸시 API 클라이언트.

    Client for the Expo push API. Holds no connection between calls; each
    call opens a short-lived ``httpx.AsyncClient``.

    Attributes:
        settings: 게이트웨이 URL/자격 증명 설정 (Gateway URLs and credential)
        transport: 테스트용 httpx 트랜스포트, 선택 (Optional httpx transport, e.g. MockTransport)
    """

    def __init__(
        self,
        config: Settings = settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings: Settings = config
        self.transport: httpx.AsyncBaseTransport | None = transport

    @property
    def debug(self) -> bool:
        return self.settings.PUSH_NOTIFICATIONS_DEBUG

    def is_valid_token_format(self, token: str) -> bool:
        return is_expo_push_token(token)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.settings.EXPO_ACCESS_TOKEN:
            headers["Authorization"] = f"Bearer {self.settings.EXPO_ACCESS_TOKEN}"
        return headers

    async def _post(self, url: str, payload: Any) -> dict[str, Any]:
        """게이트웨이에 POST 요청을 보내고 JSON 응답을 반환합니다.

        Raises:
            ExpoPushError: HTTP 오류, 잘못된 응답, 요청 수준 오류
                           (HTTP failure, malformed body, or request-level errors)
        """
        async with httpx.AsyncClient(
            timeout=self.settings.EXPO_TIMEOUT_SECONDS,
            transport=self.transport,
        ) as client:
            try:
                response = await client.post(url, json=payload, headers=self._headers())
                response.raise_for_status()
                body: Any = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise ExpoPushError(f"Expo request failed: {exc}") from exc

        if not isinstance(body, dict):
            raise ExpoPushError("Malformed Expo response")
        if body.get("errors"):
            raise ExpoPushError(f"Expo rejected the request: {body['errors']}")
        return body

    def build_message(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """단일 푸시 메시지 페이로드 (Single push message payload)."""
        return {
            "to": token,
            "title": title,
            "body": body,
            "data": data or {},
            "sound": "default",
            "badge": 1,
            "priority": "high",
            "channelId": "default",
        }

    async def send_batch(
        self,
        tokens: Sequence[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> list[PushTicket]:
        """토큰 묶음에 알림을 보내고 토큰별 티켓을 반환합니다.

        Send one notification to a batch of tokens and return one ticket per token.
        The caller is responsible for keeping batches within PUSH_BATCH_SIZE.

        Args:
            tokens: 형식 검증을 통과한 토큰 목록 (Shape-valid push tokens)
            title: 알림 제목 (Notification title)
            body: 알림 본문 (Notification body)
            data: 앱에 전달할 데이터 (Data payload delivered to the app)

        Returns:
            list[PushTicket]: 토큰 순서와 동일한 티켓 목록 (Tickets in token order)

        Raises:
            ExpoPushError: 요청 자체가 실패한 경우 (Request-level failure)
        """
        if not tokens:
            return []

        messages: list[dict[str, Any]] = [
            self.build_message(token, title, body, data) for token in tokens
        ]
        response: dict[str, Any] = await self._post(self.settings.EXPO_PUSH_URL, messages)
        raw_tickets: Any = response.get("data")
        if not isinstance(raw_tickets, list):
            raise ExpoPushError("Expo response has no ticket list")

        tickets: list[PushTicket] = []
        for token, raw in zip(tokens, raw_tickets):
            details: dict[str, Any] = raw.get("details") or {}
            tickets.append(
                PushTicket(
                    token=token,
                    status=raw.get("status", "error"),
                    id=raw.get("id"),
                    message=raw.get("message"),
                    error=details.get("error"),
                )
            )

        # 티켓 수가 부족하면 나머지는 실패로 간주 — Missing tickets count as failures
        for token in tokens[len(tickets):]:
            tickets.append(PushTicket(token=token, status="error", message="No ticket returned"))

        if self.debug:
            logger.debug(
                "Expo batch sent: %d ok, %d error",
                sum(1 for t in tickets if t.ok),
                sum(1 for t in tickets if not t.ok),
            )
        return tickets

    async def check_receipts(self, receipt_ids: Sequence[str]) -> dict[str, PushReceipt]:
        """영수증 ID로 최종 전달 결과를 조회합니다.

        Fetch delivery receipts in chunks of 300 ids.

        Args:
            receipt_ids: 티켓에서 받은 영수증 ID (Receipt ids taken from ok tickets)

        Returns:
            dict[str, PushReceipt]: 영수증 ID별 결과 (Outcome per receipt id)
        """
        receipts: dict[str, PushReceipt] = {}
        for chunk in chunked(list(receipt_ids), RECEIPT_CHUNK_SIZE):
            response: dict[str, Any] = await self._post(
                self.settings.EXPO_RECEIPTS_URL, {"ids": chunk}
            )
            for receipt_id, raw in (response.get("data") or {}).items():
                details: dict[str, Any] = raw.get("details") or {}
                receipts[receipt_id] = PushReceipt(
                    id=receipt_id,
                    status=raw.get("status", "error"),
                    message=raw.get("message"),
                    error=details.get("error"),
                )
        return receipts

    def stats(self) -> dict[str, Any]:
        """클라이언트 설정 요약 (Client configuration summary for health checks)."""
        return {
            "debug_mode": self.debug,
            "batch_size": self.settings.PUSH_BATCH_SIZE,
            "max_devices_per_customer": self.settings.MAX_DEVICES_PER_CUSTOMER,
            "has_access_token": bool(self.settings.EXPO_ACCESS_TOKEN),
        }


# 싱글턴 인스턴스 — Singleton instance
expo_push_client: ExpoPushClient = ExpoPushClient()
