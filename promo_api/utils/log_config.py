"""JSON 로그 설정 모듈.

Structured logging setup. Every module logs through
``logging.getLogger(__name__)``; this installs one JSON handler on the root
logger at startup.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# 로그 레코드에서 함께 출력할 추가 필드 — Extra record attributes copied into the payload
_EXTRA_KEYS: tuple[str, ...] = ("principal_id", "store_id", "count", "elapsed_ms")


class JSONFormatter(logging.Formatter):
    """로그 레코드를 JSON 한 줄로 출력합니다 (Render log records as one JSON object per line)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = "INFO") -> None:
    """루트 로거에 JSON stdout 핸들러를 설치합니다.

    Configure the root logger with JSON-formatted stdout output.
    Calling it again replaces the previous handler.

    Args:
        level: 로그 레벨 이름 또는 숫자 (Level name such as "INFO", or numeric level)
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)

    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else logging.INFO
    root.setLevel(level_value)
