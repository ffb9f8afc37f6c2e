"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Provides pre-configured HTTPException subclasses for common error patterns,
plus the closed set of named error kinds raised by the session and device
services. Routers never translate these themselves; FastAPI renders them.

Usage:
    from promo_api.utils.exceptions import InvalidCredentialsError, NotFoundError
    raise InvalidCredentialsError()
    raise NotFoundError("Store not found")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 리소스를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised when a requested resource (store, customer, etc.) does not exist.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DuplicateError(HTTPException):
    """409 Conflict 예외 — 중복 리소스 생성 시도 시 사용.

    409 Conflict exception.
    Raised when attempting to create a resource that violates a uniqueness constraint.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource already exists")
    """

    def __init__(self, detail: str = "Resource already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ForbiddenError(HTTPException):
    """403 Forbidden 예외 — 권한 부족 시 사용.

    403 Forbidden exception.
    Raised when the authenticated principal may not perform the operation.

    Args:
        detail: 오류 메시지 (Error message, default: "Insufficient permissions")
    """

    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class UnauthorizedError(HTTPException):
    """401 Unauthorized 예외 — 인증 실패 시 사용.

    401 Unauthorized exception.
    Raised when authentication is missing, invalid, or expired.

    Args:
        detail: 오류 메시지 (Error message, default: "Authentication required")
    """

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 잘못된 요청 데이터 시 사용.

    400 Bad Request exception.
    Raised when the request data is invalid beyond what Pydantic validation catches.

    Args:
        detail: 오류 메시지 (Error message, default: "Bad request")
    """

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# ---------------------------------------------------------------------------
# 세션/디바이스 도메인 오류 — Named error kinds of the session and device services
# ---------------------------------------------------------------------------


class EmailInUseError(DuplicateError):
    """이미 등록된 이메일 (Email already registered)."""

    def __init__(self) -> None:
        super().__init__("Email already in use")


class StoreNotFoundError(NotFoundError):
    """회원가입 시 지정한 매장이 없음 (Store supplied at registration does not exist)."""

    def __init__(self) -> None:
        super().__init__("Store not found")


class InvalidCredentialsError(UnauthorizedError):
    """잘못된 인증 정보 — 이메일 미존재와 비밀번호 불일치를 구분하지 않음.

    Invalid credentials. Unknown email and wrong password share this exact
    error so callers cannot enumerate accounts.
    """

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class AccountInactiveError(ForbiddenError):
    """비활성 계정 (Account is deactivated)."""

    def __init__(self) -> None:
        super().__init__("Account is inactive")


class RefreshTokenNotFoundError(UnauthorizedError):
    """알 수 없는 리프레시 토큰 (Unknown refresh secret)."""

    def __init__(self) -> None:
        super().__init__("Invalid refresh token")


class RefreshTokenInvalidError(UnauthorizedError):
    """만료 또는 폐기된 리프레시 토큰 (Expired or revoked refresh secret)."""

    def __init__(self) -> None:
        super().__init__("Refresh token expired or revoked")


class PrincipalUnavailableError(UnauthorizedError):
    """토큰 소유자가 없거나 비활성 (Token owner missing or inactive)."""

    def __init__(self) -> None:
        super().__init__("User not found or inactive")


class InvalidPushTokenError(BadRequestError):
    """푸시 토큰 형식 오류 (Malformed push token)."""

    def __init__(self) -> None:
        super().__init__("Invalid push token format")


class PromotionNotFoundError(NotFoundError):
    """즐겨찾기 대상 프로모션이 없음 (Promotion to favorite does not exist)."""

    def __init__(self) -> None:
        super().__init__("Promotion not found")
