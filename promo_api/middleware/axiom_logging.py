"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Ships one structured event per request to Axiom: method, path, status,
duration, masked request body and error detail. Credentials of any
spelling (password, refresh_token, refreshToken, token, secret,
authorization) are masked before anything leaves the process.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from promo_api.config import Settings, settings

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴 — camelCase and snake_case credential keys
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_?key|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/api/v1/health", "/docs", "/redoc", "/openapi.json"}

# 요청 본문을 읽는 메서드 — Methods whose body is captured
_BODY_METHODS = ("POST", "PUT", "PATCH")


def mask_sensitive(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹 — Recursively mask credential fields in dicts and lists."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else mask_sensitive(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive(item, depth + 1) for item in data[:20]]
    return data


def _error_detail(body: bytes) -> str:
    try:
        parsed: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace")[:500]
    detail: Any = parsed.get("detail", parsed) if isinstance(parsed, dict) else parsed
    text: str = detail if isinstance(detail, str) else json.dumps(detail, default=str)
    return text[:500]


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 Axiom에 로깅하는 미들웨어.

    Middleware that logs API requests and responses to Axiom. A pass-through
    when no Axiom token or dataset is configured.
    """

    def __init__(self, app: Any, config: Settings = settings) -> None:
        super().__init__(app)
        self._dataset: str = config.AXIOM_DATASET
        self._client: AxiomClient | None = None
        if config.AXIOM_API_TOKEN and config.AXIOM_DATASET:
            self._client = AxiomClient(token=config.AXIOM_API_TOKEN)

    async def _read_body(self, request: Request) -> Any:
        body_bytes: bytes = await request.body()
        if not body_bytes:
            return None
        try:
            return mask_sensitive(json.loads(body_bytes))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return "(non-json body)"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._client is None or request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time: float = time.perf_counter()
        event: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": 500,
        }
        if request.query_params:
            event["query_params"] = mask_sensitive(dict(request.query_params))
        if request.method in _BODY_METHODS:
            request_body: Any = await self._read_body(request)
            if request_body is not None:
                event["request_body"] = request_body

        try:
            response: Response = await call_next(request)
            event["status_code"] = response.status_code

            # 오류 응답은 본문에서 사유를 추출하고 다시 감싸서 반환
            # Error responses: extract the detail, then re-wrap the consumed body
            if response.status_code >= 400:
                resp_body: bytes = b""
                async for chunk in response.body_iterator:
                    resp_body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
                event["error"] = _error_detail(resp_body)
                response = Response(
                    content=resp_body,
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
            return response
        except Exception as exc:
            event["error"] = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            event["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            try:
                self._client.ingest_events(self._dataset, [event])
            except Exception:
                # 로깅 실패가 요청 처리에 영향주지 않도록 — Never break a request on log failure
                logger.warning("Axiom ingest failed", exc_info=True)
