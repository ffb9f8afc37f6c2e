"""Expo 푸시 클라이언트 테스트 — 토큰 형식, 배치 전송, 영수증 조회.

Expo push client tests — Token shape, batch send ticket parsing, receipt
chunking and request-level failures, against httpx.MockTransport.
"""

import httpx
import pytest

from promo_api.utils.expo_push import (
    ExpoPushClient,
    ExpoPushError,
    chunked,
    is_expo_push_token,
    mask_token,
)
from tests.conftest import FakeExpoGateway, make_settings


class TestTokenShape:
    """토큰 형식 검증 테스트."""

    @pytest.mark.parametrize("token", [
        "ExponentPushToken[abc]",
        "ExpoPushToken[xxxxxxxxxxxxxxxxxxxxxx]",
        "0f8fad5b-d9cb-469f-a165-70867728950e",
    ])
    def test_valid(self, token):
        """Expo 토큰 및 UUID 형식 허용."""
        assert is_expo_push_token(token)

    @pytest.mark.parametrize("token", [
        "",
        "ExponentPushToken[]",
        "ExponentPushToken",
        "fcm:abcdef",
        None,
        123,
    ])
    def test_invalid(self, token):
        """그 외 형식은 거부."""
        assert not is_expo_push_token(token)

    def test_mask_token(self):
        """로그용 마스킹은 앞부분만 남김."""
        token = "ExponentPushToken[abcdefghijklmnopqrstuvwxyz]"
        assert mask_token(token) == "ExponentPushToken[abcdef..."
        assert mask_token("short") == "short"

    def test_chunked(self):
        """고정 크기 분할."""
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunked([], 100) == []


class TestSendBatch:
    """배치 전송 테스트."""

    async def test_tickets_match_tokens_in_order(self):
        """티켓은 토큰 순서대로 매칭."""
        gateway = FakeExpoGateway(dead_tokens=("ExponentPushToken[dead]",))
        client = gateway.client()

        tickets = await client.send_batch(
            ["ExponentPushToken[a]", "ExponentPushToken[dead]"], "Title", "Body", {"k": "v"},
        )
        assert [t.token for t in tickets] == ["ExponentPushToken[a]", "ExponentPushToken[dead]"]
        assert tickets[0].ok and tickets[0].id == "receipt-ExponentPushToken[a]"
        assert not tickets[1].ok
        assert tickets[1].is_permanent_failure
        assert tickets[1].error == "DeviceNotRegistered"

    async def test_message_payload(self):
        """메시지에 제목, 본문, 데이터, 소리 포함."""
        gateway = FakeExpoGateway()
        await gateway.client().send_batch(["ExponentPushToken[a]"], "Title", "Body", {"type": "x"})

        message = gateway.messages[0]
        assert message["to"] == "ExponentPushToken[a]"
        assert message["title"] == "Title"
        assert message["body"] == "Body"
        assert message["data"] == {"type": "x"}
        assert message["sound"] == "default"

    async def test_empty_batch_sends_nothing(self):
        """빈 목록은 요청 없음."""
        gateway = FakeExpoGateway()
        assert await gateway.client().send_batch([], "T", "B") == []
        assert gateway.sent_batches == []

    async def test_http_error_raises(self):
        """HTTP 오류는 ExpoPushError."""
        gateway = FakeExpoGateway(fail_batches=1)
        with pytest.raises(ExpoPushError):
            await gateway.client().send_batch(["ExponentPushToken[a]"], "T", "B")

    async def test_missing_tickets_become_failures(self):
        """티켓 수가 부족하면 나머지는 실패."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"status": "ok", "id": "r1"}]})

        client = ExpoPushClient(config=make_settings(), transport=httpx.MockTransport(handler))
        tickets = await client.send_batch(["ExponentPushToken[a]", "ExponentPushToken[b]"], "T", "B")
        assert tickets[0].ok
        assert not tickets[1].ok
        assert not tickets[1].is_permanent_failure

    async def test_access_token_header(self):
        """액세스 토큰이 있으면 Authorization 헤더 전송."""
        gateway = FakeExpoGateway()
        await gateway.client(make_settings(EXPO_ACCESS_TOKEN="expo-secret")).send_batch(
            ["ExponentPushToken[a]"], "T", "B"
        )
        assert gateway.headers[0]["authorization"] == "Bearer expo-secret"

    async def test_no_access_token_header(self):
        """액세스 토큰이 없으면 헤더 없음."""
        gateway = FakeExpoGateway()
        await gateway.client(make_settings(EXPO_ACCESS_TOKEN="")).send_batch(
            ["ExponentPushToken[a]"], "T", "B"
        )
        assert "authorization" not in gateway.headers[0]


class TestReceipts:
    """영수증 조회 테스트."""

    async def test_receipts_are_fetched_in_chunks_of_300(self):
        """300개 단위로 분할 조회."""
        gateway = FakeExpoGateway()
        ids = [f"r{i}" for i in range(301)]
        receipts = await gateway.client().check_receipts(ids)

        assert [len(chunk) for chunk in gateway.receipt_requests] == [300, 1]
        assert len(receipts) == 301
        assert all(r.status == "ok" for r in receipts.values())

    async def test_dead_receipt_is_permanent_failure(self):
        """DeviceNotRegistered 영수증은 영구 실패."""
        gateway = FakeExpoGateway(dead_receipts=("r2",))
        receipts = await gateway.client().check_receipts(["r1", "r2"])
        assert not receipts["r1"].is_permanent_failure
        assert receipts["r2"].is_permanent_failure

    async def test_no_ids_no_request(self):
        """ID가 없으면 요청 없음."""
        gateway = FakeExpoGateway()
        assert await gateway.client().check_receipts([]) == {}
        assert gateway.receipt_requests == []


class TestStats:
    """클라이언트 설정 요약 테스트."""

    def test_stats(self):
        client = ExpoPushClient(config=make_settings(
            PUSH_BATCH_SIZE=50, MAX_DEVICES_PER_CUSTOMER=4, EXPO_ACCESS_TOKEN="x",
        ))
        assert client.stats() == {
            "debug_mode": False,
            "batch_size": 50,
            "max_devices_per_customer": 4,
            "has_access_token": True,
        }
