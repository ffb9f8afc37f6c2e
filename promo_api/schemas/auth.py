"""인증 관련 Pydantic 요청/응답 스키마 정의.

Authentication-related Pydantic request/response schema definitions.
Covers user/customer registration and login, token refresh and
revocation, logout, session listing and token validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from promo_api.models.user import ROLE_ADMIN, ROLE_STORE_MANAGER, ROLE_STORE_OPERATOR


class UserRegisterRequest(BaseModel):
    """웹 패널 사용자 회원가입 요청 스키마.

    Web panel user registration request schema.

    Attributes:
        name: 표시 이름 (Display name)
        email: 이메일, 전역 고유 (Login email, globally unique)
        password: 비밀번호 (Plain text, bcrypt-hashed on the server)
        role: 역할 (ADMIN | STORE_MANAGER | STORE_OPERATOR)
        store_id: 소속 매장 UUID, 선택 (Optional store affiliation; must exist)
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)
    role: str = Field(
        default=ROLE_STORE_OPERATOR,
        pattern=f"^({ROLE_ADMIN}|{ROLE_STORE_MANAGER}|{ROLE_STORE_OPERATOR})$",
    )
    store_id: str | None = None


class CustomerRegisterRequest(BaseModel):
    """모바일 고객 회원가입 요청 스키마.

    Mobile customer registration request schema.
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)
    phone: str | None = None  # 전화번호, 선택 (Optional phone number)


class LoginRequest(BaseModel):
    """로그인 요청 스키마 — 사용자/고객 공통.

    Login request schema shared by users and customers.

    Attributes:
        email: 로그인 이메일 (Login email)
        password: 비밀번호 (Plain text password, verified against bcrypt hash)
    """

    email: str
    password: str


class RefreshRequest(BaseModel):
    """토큰 갱신/폐기 요청 스키마.

    Token refresh and revoke request schema.

    Attributes:
        refresh_token: 기존 리프레시 시크릿 (Existing refresh secret)
    """

    refresh_token: str


class LogoutRequest(BaseModel):
    """로그아웃 요청 스키마 — 리프레시 시크릿은 선택 (Refresh secret is optional)."""

    refresh_token: str | None = None


class PrincipalSummary(BaseModel):
    """신원 요약 — 토큰 응답과 토큰 검증에서 반환.

    Normalized identity summary returned with tokens and by token validation.

    Attributes:
        id: 주체 UUID (Principal identifier)
        name: 표시 이름 (Display name)
        email: 이메일 (Email)
        role: 역할, 고객은 "CUSTOMER" (Role; "CUSTOMER" for customers)
        store_id: 소속 매장, 사용자만 (Store affiliation, users only)
        type: 주체 종류 (Principal kind: "user" | "customer")
    """

    id: str
    name: str
    email: str
    role: str
    store_id: str | None = None
    type: str


class AuthResponse(BaseModel):
    """토큰 발급 응답 스키마.

    Token issuance response returned by register, login and refresh.

    Attributes:
        access_token: JWT 액세스 토큰 (Short-lived access token)
        refresh_token: 불투명 리프레시 시크릿 (Opaque refresh secret)
        expires_in: 액세스 토큰 유효 시간(초) (Access token TTL in seconds)
        token_type: 토큰 유형 (Always "Bearer")
        user: 신원 요약 (Identity summary)
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"
    user: PrincipalSummary


class RevokeResponse(BaseModel):
    success: bool  # 이번 호출로 폐기되었는지 여부 (Whether a record was found and is now revoked)


class RevokeAllResponse(BaseModel):
    revoked: int  # 활성에서 폐기로 전환된 레코드 수 (Records transitioned from active)


class LogoutResponse(BaseModel):
    """로그아웃 응답 — 항상 성공 (Logout always reports success)."""

    success: bool = True
    message: str


class SessionItem(BaseModel):
    """활성 세션 항목 (One active refresh-token record)."""

    id: str
    device_info: str | None
    created_at: datetime
    expires_at: datetime


class SessionListResponse(BaseModel):
    """활성 세션 목록 응답 (Active sessions, newest first)."""

    active_count: int
    sessions: list[SessionItem]


class ValidateTokenResponse(BaseModel):
    """토큰 검증 응답 스키마.

    Token validation response. ``user`` is present only when ``valid``.
    """

    valid: bool
    user: PrincipalSummary | None = None
    message: str | None = None
