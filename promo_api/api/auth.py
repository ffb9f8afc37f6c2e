"""인증 라우터 — 회원가입, 로그인, 토큰 갱신/폐기, 로그아웃, 세션 조회.

Auth Router — Registration and login for users and customers, refresh
rotation, revocation, logout, session listing and token validation.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.api.deps import (
    get_bearer_token,
    get_current_principal,
    get_device_descriptor,
)
from promo_api.database import get_db
from promo_api.schemas.auth import (
    AuthResponse,
    CustomerRegisterRequest,
    LoginRequest,
    LogoutRequest,
    LogoutResponse,
    PrincipalSummary,
    RefreshRequest,
    RevokeAllResponse,
    RevokeResponse,
    SessionListResponse,
    UserRegisterRequest,
    ValidateTokenResponse,
)
from promo_api.services.session_service import session_service

router: APIRouter = APIRouter()


@router.post("/users/register", response_model=AuthResponse, status_code=201)
async def register_user(
    data: UserRegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    device_info: Annotated[str | None, Depends(get_device_descriptor)],
) -> AuthResponse:
    """웹 패널 사용자 회원가입 (Web panel user registration)."""
    result: AuthResponse = await session_service.register_user(db, data, device_info)
    await db.commit()
    return result


@router.post("/users/login", response_model=AuthResponse)
async def login_user(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    device_info: Annotated[str | None, Depends(get_device_descriptor)],
) -> AuthResponse:
    """웹 패널 사용자 로그인 (Web panel user login)."""
    result: AuthResponse = await session_service.login_user(db, data, device_info)
    await db.commit()
    return result


@router.post("/customers/register", response_model=AuthResponse, status_code=201)
async def register_customer(
    data: CustomerRegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    device_info: Annotated[str | None, Depends(get_device_descriptor)],
) -> AuthResponse:
    """모바일 고객 회원가입 (Mobile customer registration)."""
    result: AuthResponse = await session_service.register_customer(db, data, device_info)
    await db.commit()
    return result


@router.post("/customers/login", response_model=AuthResponse)
async def login_customer(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    device_info: Annotated[str | None, Depends(get_device_descriptor)],
) -> AuthResponse:
    """모바일 고객 로그인 (Mobile customer login)."""
    result: AuthResponse = await session_service.login_customer(db, data, device_info)
    await db.commit()
    return result


@router.post("/refresh", response_model=AuthResponse)
async def refresh_token(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    device_info: Annotated[str | None, Depends(get_device_descriptor)],
) -> AuthResponse:
    """토큰 갱신 — 리프레시 시크릿을 회전시켜 새 토큰 쌍 발급.

    Refresh endpoint. Rotates the refresh secret and issues a new pair.
    """
    result: AuthResponse = await session_service.refresh(db, data.refresh_token, device_info)
    await db.commit()
    return result


@router.post("/revoke", response_model=RevokeResponse)
async def revoke_token(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RevokeResponse:
    """리프레시 시크릿 폐기 — 알 수 없는 시크릿도 오류 없음.

    Revoke one refresh secret. Unknown secrets report success=False, not an error.
    """
    success: bool = await session_service.revoke(db, data.refresh_token)
    await db.commit()
    return RevokeResponse(success=success)


@router.post("/revoke-all", response_model=RevokeAllResponse)
async def revoke_all_tokens(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[PrincipalSummary, Depends(get_current_principal)],
) -> RevokeAllResponse:
    """모든 디바이스에서 로그아웃 (Revoke every session of the caller)."""
    revoked: int = await session_service.revoke_all(db, UUID(principal.id), principal.type)
    await db.commit()
    return RevokeAllResponse(revoked=revoked)


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[PrincipalSummary, Depends(get_current_principal)],
) -> SessionListResponse:
    """활성 세션 목록 (Active sessions of the caller, newest first)."""
    return await session_service.list_sessions(db, UUID(principal.id), principal.type)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    db: Annotated[AsyncSession, Depends(get_db)],
    token: Annotated[str | None, Depends(get_bearer_token)],
    data: LogoutRequest | None = None,
) -> LogoutResponse:
    """로그아웃 — 항상 성공.

    Logout endpoint. Always succeeds; a supplied refresh secret is revoked.
    """
    result: LogoutResponse = await session_service.logout(
        db, token, data.refresh_token if data is not None else None
    )
    await db.commit()
    return result


@router.get("/validate-token", response_model=ValidateTokenResponse)
async def validate_token(
    db: Annotated[AsyncSession, Depends(get_db)],
    token: Annotated[str | None, Depends(get_bearer_token)],
) -> ValidateTokenResponse:
    """액세스 토큰 검증 (Validate the bearer access token and return the identity)."""
    return await session_service.validate(db, token)
