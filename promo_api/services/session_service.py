"""세션 서비스 — 회원가입, 로그인, 토큰 갱신/폐기, 토큰 검증 비즈니스 로직.

Session Service — Business logic for registration, login, refresh-token
rotation, revocation, logout and access-token validation, shared by the
two principal kinds (web users and mobile customers).

Refresh-token record lifecycle:
    ACTIVE -> ROTATED | REVOKED | EXPIRED -> PURGED

Rotation (revoke old + issue new + persist new) runs inside the caller's
session transaction and is committed once by the router, so a failure
between the steps rolls the whole sequence back. Failure paths that
clean up a stale record (delete on expired/revoked, revoke on an
unavailable principal) commit that cleanup before raising.
"""

import logging
from typing import Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.token import RefreshToken
from promo_api.models.user import (
    PRINCIPAL_CUSTOMER,
    PRINCIPAL_USER,
    ROLE_CUSTOMER,
    Customer,
    User,
)
from promo_api.repositories.customer_repository import customer_repository
from promo_api.repositories.refresh_token_repository import refresh_token_repository
from promo_api.repositories.store_repository import store_repository
from promo_api.repositories.user_repository import user_repository
from promo_api.schemas.auth import (
    AuthResponse,
    CustomerRegisterRequest,
    LoginRequest,
    LogoutResponse,
    PrincipalSummary,
    SessionItem,
    SessionListResponse,
    UserRegisterRequest,
    ValidateTokenResponse,
)
from promo_api.utils.exceptions import (
    AccountInactiveError,
    EmailInUseError,
    InvalidCredentialsError,
    PrincipalUnavailableError,
    RefreshTokenInvalidError,
    RefreshTokenNotFoundError,
    StoreNotFoundError,
)
from promo_api.utils.jwt import TokenCodec, TokenPair, token_codec
from promo_api.utils.password import PasswordHasher, password_hasher

logger = logging.getLogger(__name__)

Principal = Union[User, Customer]


class SessionService:
    """세션 수명주기를 관리하는 서비스.

    Service orchestrating the token codec, the refresh-token store and
    principal lookups into the session lifecycle.

    Attributes:
        codec: 토큰 코덱 (Access token / refresh secret codec)
        hasher: 비동기 비밀번호 해셔 (Async password hashing capability)
    """

    def __init__(
        self,
        codec: TokenCodec = token_codec,
        hasher: PasswordHasher = password_hasher,
    ) -> None:
        self.codec: TokenCodec = codec
        self.hasher: PasswordHasher = hasher

    # --- 내부 헬퍼 (Internal helpers) ---

    def _kind_of(self, principal: Principal) -> str:
        return PRINCIPAL_CUSTOMER if isinstance(principal, Customer) else PRINCIPAL_USER

    def _build_claims(self, principal: Principal) -> dict[str, str | None]:
        """액세스 토큰 클레임을 생성합니다.

        Build the access token claims. ``sub`` is always a string.
        """
        if isinstance(principal, Customer):
            return {
                "sub": str(principal.id),
                "email": principal.email,
                "role": ROLE_CUSTOMER,
                "kind": PRINCIPAL_CUSTOMER,
            }
        return {
            "sub": str(principal.id),
            "email": principal.email,
            "role": principal.role,
            "kind": PRINCIPAL_USER,
            "store_id": str(principal.store_id) if principal.store_id else None,
        }

    def summarize(self, principal: Principal) -> PrincipalSummary:
        """주체를 신원 요약으로 변환합니다 (Normalize a principal into an identity summary)."""
        if isinstance(principal, Customer):
            return PrincipalSummary(
                id=str(principal.id),
                name=principal.name,
                email=principal.email,
                role=ROLE_CUSTOMER,
                type=PRINCIPAL_CUSTOMER,
            )
        return PrincipalSummary(
            id=str(principal.id),
            name=principal.name,
            email=principal.email,
            role=principal.role,
            store_id=str(principal.store_id) if principal.store_id else None,
            type=PRINCIPAL_USER,
        )

    async def _get_principal(
        self,
        db: AsyncSession,
        kind: str,
        principal_id: UUID,
    ) -> Principal | None:
        if kind == PRINCIPAL_CUSTOMER:
            return await customer_repository.get_by_id(db, principal_id)
        return await user_repository.get_by_id(db, principal_id)

    async def _issue_session(
        self,
        db: AsyncSession,
        principal: Principal,
        device_info: str | None,
    ) -> AuthResponse:
        """토큰 쌍을 발급하고 새 ACTIVE 리프레시 레코드를 저장합니다.

        Mint a token pair and persist a new ACTIVE refresh record for it.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            principal: 토큰 소유 주체 (Principal the tokens belong to)
            device_info: 디바이스 설명 (Device descriptor, e.g. User-Agent)

        Returns:
            AuthResponse: 토큰 응답 (Token response with identity summary)
        """
        pair: TokenPair = self.codec.issue_token_pair(self._build_claims(principal))
        await refresh_token_repository.save(
            db,
            principal_id=principal.id,
            principal_type=self._kind_of(principal),
            secret=pair.refresh_secret,
            expires_at=self.codec.refresh_expiry_date(),
            device_info=device_info,
        )
        return AuthResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_secret,
            expires_in=pair.access_ttl,
            user=self.summarize(principal),
        )

    # --- 회원가입 (Registration) ---

    async def register_user(
        self,
        db: AsyncSession,
        data: UserRegisterRequest,
        device_info: str | None = None,
    ) -> AuthResponse:
        """웹 패널 사용자 회원가입을 처리합니다.

        Register a web panel user and open a first session.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 회원가입 요청 데이터 (Registration request data)
            device_info: 디바이스 설명 (Device descriptor)

        Returns:
            AuthResponse: 토큰 응답 (Token response)

        Raises:
            EmailInUseError: 이미 등록된 이메일 (Email already registered)
            StoreNotFoundError: 지정한 매장이 없음 (Supplied store does not exist)
        """
        email: str = data.email.strip().lower()
        if await user_repository.get_by_email(db, email) is not None:
            raise EmailInUseError()

        store_id: UUID | None = None
        if data.store_id:
            try:
                store_id = UUID(data.store_id)
            except ValueError:
                raise StoreNotFoundError()
            if await store_repository.get_by_id(db, store_id) is None:
                raise StoreNotFoundError()

        user: User = await user_repository.create(
            db,
            {
                "name": data.name,
                "email": email,
                "password_hash": await self.hasher.hash(data.password),
                "role": data.role,
                "store_id": store_id,
            },
        )
        logger.info("User registered", extra={"principal_id": str(user.id)})
        return await self._issue_session(db, user, device_info)

    async def register_customer(
        self,
        db: AsyncSession,
        data: CustomerRegisterRequest,
        device_info: str | None = None,
    ) -> AuthResponse:
        """모바일 고객 회원가입을 처리합니다.

        Register a mobile customer and open a first session.

        Raises:
            EmailInUseError: 이미 등록된 이메일 (Email already registered)
        """
        email: str = data.email.strip().lower()
        if await customer_repository.get_by_email(db, email) is not None:
            raise EmailInUseError()

        customer: Customer = await customer_repository.create(
            db,
            {
                "name": data.name,
                "email": email,
                "password_hash": await self.hasher.hash(data.password),
                "phone": data.phone,
            },
        )
        logger.info("Customer registered", extra={"principal_id": str(customer.id)})
        return await self._issue_session(db, customer, device_info)

    # --- 로그인 (Login) ---

    async def _login(
        self,
        db: AsyncSession,
        principal: Principal | None,
        password: str,
        device_info: str | None,
    ) -> AuthResponse:
        """로그인 공통 검사 — 미존재, 비활성, 비밀번호 순서.

        Shared login checks in order: unknown email, inactive account, wrong
        password. Unknown email and wrong password raise the same error.
        """
        if principal is None:
            raise InvalidCredentialsError()
        if not principal.is_active:
            raise AccountInactiveError()
        if not await self.hasher.compare(password, principal.password_hash):
            raise InvalidCredentialsError()
        return await self._issue_session(db, principal, device_info)

    async def login_user(
        self,
        db: AsyncSession,
        data: LoginRequest,
        device_info: str | None = None,
    ) -> AuthResponse:
        """웹 패널 사용자 로그인 (Web panel user login).

        Raises:
            InvalidCredentialsError: 이메일 미존재 또는 비밀번호 불일치
                                     (Unknown email or wrong password)
            AccountInactiveError: 비활성 계정 (Deactivated account)
        """
        user: User | None = await user_repository.get_by_email(db, data.email)
        return await self._login(db, user, data.password, device_info)

    async def login_customer(
        self,
        db: AsyncSession,
        data: LoginRequest,
        device_info: str | None = None,
    ) -> AuthResponse:
        """모바일 고객 로그인 (Mobile customer login). Same errors as ``login_user``."""
        customer: Customer | None = await customer_repository.get_by_email(db, data.email)
        return await self._login(db, customer, data.password, device_info)

    # --- 토큰 갱신 (Refresh rotation) ---

    async def refresh(
        self,
        db: AsyncSession,
        secret: str,
        device_info: str | None = None,
    ) -> AuthResponse:
        """리프레시 시크릿을 새 토큰 쌍으로 교환합니다 (회전).

        Exchange a refresh secret for a new token pair. The presented secret
        is revoked and can never be used again, even if unexpired.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            secret: 리프레시 시크릿 (Refresh secret presented by the client)
            device_info: 디바이스 설명, 없으면 기존 값 유지
                         (Device descriptor; carried forward from the old record when None)

        Returns:
            AuthResponse: 새 토큰 응답 (New token pair)

        Raises:
            RefreshTokenNotFoundError: 알 수 없는 시크릿 (Unknown secret)
            RefreshTokenInvalidError: 만료/폐기된 시크릿, 레코드는 삭제됨
                                      (Expired or revoked; the record is deleted)
            PrincipalUnavailableError: 소유자 없음/비활성, 레코드는 폐기됨
                                       (Owner missing or inactive; the record is revoked)
        """
        record: RefreshToken | None = await refresh_token_repository.get_by_secret(db, secret)
        if record is None:
            raise RefreshTokenNotFoundError()

        if not record.is_valid():
            await refresh_token_repository.delete(db, record.id)
            await db.commit()
            logger.info("Stale refresh token presented and purged", extra={"principal_id": str(record.principal_id)})
            raise RefreshTokenInvalidError()

        principal: Principal | None = await self._get_principal(
            db, record.principal_type, record.principal_id
        )
        if principal is None or not principal.is_active:
            await refresh_token_repository.revoke(db, record.id)
            await db.commit()
            raise PrincipalUnavailableError()

        # 동시 회전 중 하나만 성공 — Only one concurrent rotation may win
        if not await refresh_token_repository.revoke_if_active(db, record.id):
            logger.warning(
                "Refresh token rotated concurrently", extra={"principal_id": str(record.principal_id)}
            )
            raise RefreshTokenInvalidError()
        return await self._issue_session(db, principal, device_info or record.device_info)

    # --- 로그아웃/폐기 (Logout and revocation) ---

    async def logout(
        self,
        db: AsyncSession,
        access_token: str | None = None,
        refresh_secret: str | None = None,
    ) -> LogoutResponse:
        """로그아웃 — 항상 성공을 보고합니다.

        Best-effort logout that always reports success. The access token is
        stateless and stays live until it expires. A supplied refresh secret
        is revoked so the session cannot be renewed.
        """
        claims = self.codec.verify_access_token(access_token)
        if refresh_secret:
            await self.revoke(db, refresh_secret)
        if claims is not None:
            logger.info("Principal logged out", extra={"principal_id": claims.get("sub")})
        return LogoutResponse(success=True, message="Logged out successfully")

    async def revoke(self, db: AsyncSession, secret: str) -> bool:
        """리프레시 시크릿 하나를 폐기합니다.

        Revoke one refresh secret. An unknown secret returns False instead of
        raising; it is treated as already revoked.
        """
        record: RefreshToken | None = await refresh_token_repository.get_by_secret(db, secret)
        if record is None:
            return False
        return await refresh_token_repository.revoke(db, record.id)

    async def revoke_all(
        self,
        db: AsyncSession,
        principal_id: UUID,
        kind: str,
    ) -> int:
        """주체의 모든 세션을 폐기하고 전환된 수를 반환합니다 (Revoke every active session)."""
        count: int = await refresh_token_repository.revoke_all_for_principal(db, principal_id, kind)
        logger.info("Revoked all sessions", extra={"principal_id": str(principal_id), "count": count})
        return count

    # --- 검증/조회 (Validation and listing) ---

    async def validate(
        self,
        db: AsyncSession,
        access_token: str | None,
    ) -> ValidateTokenResponse:
        """액세스 토큰을 검증하고 신원 요약을 반환합니다.

        Verify an access token and resolve its principal by the embedded
        ``kind`` claim. Never raises; failures come back with ``valid=False``.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            access_token: Bearer 액세스 토큰 (Bearer access token)

        Returns:
            ValidateTokenResponse: 검증 결과 (Validation outcome with identity summary)
        """
        claims = self.codec.verify_access_token(access_token)
        if claims is None:
            return ValidateTokenResponse(valid=False, message="Invalid or expired token")

        try:
            principal_id = UUID(str(claims["sub"]))
        except ValueError:
            return ValidateTokenResponse(valid=False, message="Invalid or expired token")

        kind: str = PRINCIPAL_CUSTOMER if claims.get("kind") == PRINCIPAL_CUSTOMER else PRINCIPAL_USER
        principal: Principal | None = await self._get_principal(db, kind, principal_id)
        if principal is None or not principal.is_active:
            return ValidateTokenResponse(valid=False, message="User not found or inactive")

        return ValidateTokenResponse(valid=True, user=self.summarize(principal))

    async def list_sessions(
        self,
        db: AsyncSession,
        principal_id: UUID,
        kind: str,
    ) -> SessionListResponse:
        """주체의 활성 세션 목록 (Active sessions of a principal, newest first)."""
        records = await refresh_token_repository.list_by_principal(db, principal_id, kind)
        active_count: int = await refresh_token_repository.count_active_for_principal(
            db, principal_id, kind
        )
        return SessionListResponse(
            active_count=active_count,
            sessions=[
                SessionItem(
                    id=str(r.id),
                    device_info=r.device_info,
                    created_at=r.created_at,
                    expires_at=r.expires_at,
                )
                for r in records
            ],
        )

    async def sweep(self, db: AsyncSession) -> int:
        """만료/폐기 레코드를 일괄 삭제합니다 (Purge expired or revoked records)."""
        removed: int = await refresh_token_repository.delete_expired_or_revoked(db)
        logger.info("Refresh token sweep finished", extra={"count": removed})
        return removed


# 싱글턴 인스턴스 — Singleton instance
session_service: SessionService = SessionService()
