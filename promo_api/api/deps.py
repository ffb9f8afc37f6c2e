"""FastAPI 의존성 주입 모듈 — 인증 및 서비스 주입.

FastAPI dependency injection module — Authentication and service wiring.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출, 없어도 오류 없음
       (HTTPBearer extracts the token without failing when absent)
    3. SessionService.validate()가 토큰을 검증하고 kind 클레임으로 주체를 조회
       (SessionService.validate verifies it and resolves the principal by kind)
    4. 주체가 없거나 비활성이면 401 (Missing or inactive principal yields 401)
"""

import hmac
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.config import settings
from promo_api.database import get_db
from promo_api.models.user import PRINCIPAL_CUSTOMER
from promo_api.schemas.auth import PrincipalSummary, ValidateTokenResponse
from promo_api.services.session_service import session_service
from promo_api.services.sync_service import SyncService, sync_service
from promo_api.utils.exceptions import ForbiddenError, UnauthorizedError

# HTTP Bearer 토큰 추출기 — 로그아웃 등 선택적 인증을 위해 auto_error 비활성화
# (auto_error disabled so optional-auth endpoints such as logout still run)
security: HTTPBearer = HTTPBearer(auto_error=False)

# 디바이스 설명 최대 길이 — Matches RefreshToken.device_info column length
_MAX_DEVICE_INFO: int = 500


async def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Authorization 헤더의 토큰, 없으면 None (Bearer token or None)."""
    return credentials.credentials if credentials is not None else None


async def get_device_descriptor(
    user_agent: Annotated[str | None, Header()] = None,
) -> str | None:
    """User-Agent 헤더를 디바이스 설명으로 사용합니다 (User-Agent as device descriptor)."""
    return user_agent[:_MAX_DEVICE_INFO] if user_agent else None


async def get_current_principal(
    token: Annotated[str | None, Depends(get_bearer_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PrincipalSummary:
    """액세스 토큰에서 현재 인증된 주체를 추출합니다.

    Resolve the authenticated principal (user or customer) from the bearer token.

    Raises:
        UnauthorizedError: 토큰 없음/무효/만료 또는 주체 없음/비활성
                           (Missing, invalid or expired token; missing or inactive principal)
    """
    if token is None:
        raise UnauthorizedError()
    result: ValidateTokenResponse = await session_service.validate(db, token)
    if not result.valid or result.user is None:
        raise UnauthorizedError(result.message or "Invalid or expired token")
    return result.user


async def get_current_customer(
    principal: Annotated[PrincipalSummary, Depends(get_current_principal)],
) -> PrincipalSummary:
    """고객 전용 엔드포인트 의존성 (Customer-only endpoints).

    Raises:
        ForbiddenError: 웹 사용자 토큰일 때 (Token belongs to a web user)
    """
    if principal.type != PRINCIPAL_CUSTOMER:
        raise ForbiddenError("Customer access required")
    return principal


def get_sync_service() -> SyncService:
    """동기화 서비스 — 알림 디스패처가 연결된 인스턴스 (Sync service wired with its dispatcher)."""
    return sync_service


async def require_sync_credentials(
    token: Annotated[str | None, Depends(get_bearer_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PrincipalSummary | None:
    """매장 동기화 인증 — API 키 또는 웹 사용자 액세스 토큰.

    Authenticate a promotion sync caller. The bearer value is either the
    store systems' shared ``API_KEY`` or a web user's access token.

    Returns:
        PrincipalSummary | None: 웹 사용자, API 키 호출이면 None (Web user, or None for the API key)

    Raises:
        UnauthorizedError: 자격 증명 없음/불일치 (Missing or unrecognized credential)
        ForbiddenError: 고객 토큰일 때 (Token belongs to a mobile customer)
    """
    if token is None:
        raise UnauthorizedError()
    if settings.API_KEY and hmac.compare_digest(token.encode(), settings.API_KEY.encode()):
        return None

    result: ValidateTokenResponse = await session_service.validate(db, token)
    if not result.valid or result.user is None:
        raise UnauthorizedError("Invalid token")
    if result.user.type == PRINCIPAL_CUSTOMER:
        raise ForbiddenError("Store system or web user access required")
    return result.user
