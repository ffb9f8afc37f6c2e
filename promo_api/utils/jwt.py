"""토큰 코덱 — JWT 액세스 토큰 및 불투명 리프레시 시크릿 유틸리티 모듈.

Token codec — Access-token JWT creation/verification and opaque refresh
secret generation.

Access token payload:
    {
        "sub": "principal_uuid",   # 주체 ID (User or customer identifier)
        "email": "a@x.com",        # 이메일 (Email)
        "role": "ADMIN",           # 역할 (Role, "CUSTOMER" for customers)
        "kind": "user",            # 주체 종류 (Principal kind: user | customer)
        "store_id": "uuid",        # 소속 매장, 선택 (Optional store affiliation)
        "exp": 1234567890,         # 만료 시간 UNIX timestamp (Expiration)
        "type": "access"           # 토큰 유형 (Token type discriminator)
    }

Refresh tokens are NOT JWTs: they are random bearer secrets tracked in the
database, so a leaked signing key cannot forge one. At rest only their
HMAC-SHA256 fingerprint (keyed by REFRESH_TOKEN_SECRET) is stored.
"""

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import jwt

from promo_api.config import Settings, settings
from promo_api.utils.clock import utcnow

# 기간 문자열 패턴 — Duration strings such as "15m", "7d", "2w"
_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw])\s*$", re.IGNORECASE)

_UNIT_SECONDS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}

# 인식 불가 기간의 기본값 — Fallback when a duration string is not recognised
DEFAULT_DURATION: timedelta = timedelta(minutes=15)

# 리프레시 시크릿 엔트로피 — 48 bytes = 384 bits of randomness
REFRESH_SECRET_BYTES: int = 48


def parse_duration(value: str) -> timedelta:
    """기간 문자열을 timedelta로 변환합니다.

    Resolve a duration string ("30s", "15m", "12h", "7d", "2w") to a timedelta.
    Unrecognised input falls back to 15 minutes instead of failing.

    Args:
        value: 기간 문자열 (Duration string)

    Returns:
        timedelta: 변환된 기간 (Resolved duration)
    """
    match = _DURATION_PATTERN.match(value or "")
    if match is None:
        return DEFAULT_DURATION
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit.lower()])


@dataclass(frozen=True)
class TokenPair:
    """액세스 토큰 + 리프레시 시크릿 쌍.

    Access token plus refresh secret, with their TTLs in seconds.
    """

    access_token: str
    refresh_secret: str
    access_ttl: int
    refresh_ttl: int


class TokenCodec:
    """상태 없는 토큰 생성/검증기.

    Stateless creation and verification of access tokens and refresh secrets.

    Attributes:
        settings: 서명 키와 TTL을 담은 설정 (Settings carrying keys and TTLs)
    """

    def __init__(self, config: Settings = settings) -> None:
        self.settings: Settings = config

    @property
    def access_ttl(self) -> timedelta:
        return parse_duration(self.settings.JWT_EXPIRES_IN)

    @property
    def refresh_ttl(self) -> timedelta:
        return parse_duration(self.settings.REFRESH_TOKEN_EXPIRES_IN)

    def access_expiry_date(self) -> datetime:
        """현재 시각 기준 액세스 토큰 만료 시각 (Access token expiry from now)."""
        return utcnow() + self.access_ttl

    def refresh_expiry_date(self) -> datetime:
        """현재 시각 기준 리프레시 토큰 만료 시각 (Refresh token expiry from now)."""
        return utcnow() + self.refresh_ttl

    def sign_access_token(self, claims: dict[str, Any]) -> str:
        """JWT 액세스 토큰을 생성합니다.

        Generate a signed, expiring access token carrying the given claims.

        Args:
            claims: 페이로드 데이터 (Payload claims: sub, email, role, kind, store_id)

        Returns:
            str: 인코딩된 JWT 문자열 (Encoded JWT token string)
        """
        to_encode: dict[str, Any] = {k: v for k, v in claims.items() if v is not None}
        to_encode.update({"exp": self.access_expiry_date(), "type": "access"})
        return jwt.encode(to_encode, self.settings.JWT_SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def verify_access_token(self, token: str | None) -> dict[str, Any] | None:
        """액세스 토큰을 검증하고 클레임을 반환합니다.

        Verify signature and expiry and return the decoded claims.
        Never raises: malformed, expired, or non-access tokens yield None.

        Args:
            token: JWT 문자열 (Encoded JWT token string)

        Returns:
            dict[str, Any] | None: 클레임 또는 None (Claims, or None when invalid)
        """
        if not token:
            return None
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.settings.JWT_SECRET_KEY,
                algorithms=[self.settings.JWT_ALGORITHM],
            )
        except jwt.PyJWTError:
            return None
        if payload.get("type") != "access" or not payload.get("sub"):
            return None
        return payload

    def generate_refresh_secret(self) -> str:
        """암호학적으로 안전한 리프레시 시크릿을 생성합니다.

        Generate an opaque, URL-safe refresh secret with 384 bits of randomness.
        """
        return secrets.token_urlsafe(REFRESH_SECRET_BYTES)

    def fingerprint(self, secret: str) -> str:
        """저장용 리프레시 시크릿 지문 (HMAC-SHA256 hex digest used as the lookup key)."""
        return hmac.new(
            self.settings.REFRESH_TOKEN_SECRET.encode("utf-8"),
            secret.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def issue_token_pair(self, claims: dict[str, Any]) -> TokenPair:
        """액세스 토큰과 리프레시 시크릿을 함께 발급합니다.

        Convenience combinator of ``sign_access_token`` and ``generate_refresh_secret``.
        """
        return TokenPair(
            access_token=self.sign_access_token(claims),
            refresh_secret=self.generate_refresh_secret(),
            access_ttl=int(self.access_ttl.total_seconds()),
            refresh_ttl=int(self.refresh_ttl.total_seconds()),
        )


# 싱글턴 인스턴스 — Singleton instance
token_codec: TokenCodec = TokenCodec()
