"""로깅 테스트 — JSON 포매터, 민감 정보 마스킹.

Logging tests — JSON formatter output and credential masking for Axiom.
"""

import json
import logging

from promo_api.middleware.axiom_logging import mask_sensitive
from promo_api.utils.log_config import JSONFormatter


class TestJSONFormatter:
    """JSON 포매터 테스트."""

    def test_format_with_extra(self):
        """추가 필드 포함 JSON 한 줄."""
        record = logging.LogRecord(
            "promo_api.test", logging.INFO, __file__, 1, "Removed %d tokens", (3,), None,
        )
        record.count = 3
        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["name"] == "promo_api.test"
        assert payload["message"] == "Removed 3 tokens"
        assert payload["count"] == 3
        assert "principal_id" not in payload


class TestMaskSensitive:
    """민감 정보 마스킹 테스트."""

    def test_masks_credentials_in_any_spelling(self):
        """snake/camel 표기 모두 마스킹."""
        masked = mask_sensitive({
            "email": "a@x.com",
            "password": "secret1",
            "refresh_token": "abc",
            "refreshToken": "abc",
            "nested": {"apiKey": "k", "name": "ok"},
        })
        assert masked["email"] == "a@x.com"
        assert masked["password"] == "***"
        assert masked["refresh_token"] == "***"
        assert masked["refreshToken"] == "***"
        assert masked["nested"] == {"apiKey": "***", "name": "ok"}

    def test_lists_are_truncated(self):
        """목록은 20개까지만."""
        assert len(mask_sensitive(list(range(50)))) == 20
