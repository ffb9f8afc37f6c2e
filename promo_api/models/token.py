"""리프레시 토큰 모델 — 발급된 리프레시 시크릿 저장.

Refresh Token model — Stores issued refresh secrets for session management.
Each record belongs to either a user or a customer (``principal_type``),
so there is no foreign key on ``principal_id``. Multiple concurrent records
per principal are allowed (multi-device sessions).

Lifecycle:
    ACTIVE -> ROTATED / REVOKED (is_revoked=True) or EXPIRED (expires_at passed)
    -> PURGED (deleted by the sweep). A record never returns to ACTIVE.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from promo_api.database import Base
from promo_api.utils.clock import ensure_utc, utcnow


class RefreshToken(Base):
    """리프레시 토큰 테이블.

    Refresh token table for managing long-lived authentication sessions.

    Attributes:
        id: 고유 식별자 (Primary key UUID)
        principal_id: 소유 주체 ID (Owning user or customer UUID)
        principal_type: 주체 종류 (Principal kind: "user" | "customer")
        token: 리프레시 시크릿의 HMAC 지문 (HMAC fingerprint of the bearer secret)
        expires_at: 만료 일시 (Expiration timestamp)
        is_revoked: 폐기 여부 (Revoked flag; rotated tokens are revoked too)
        device_info: 디바이스 설명, 선택 (Optional device descriptor, e.g. User-Agent)
        created_at: 생성 일시 (Creation timestamp)
        updated_at: 수정 일시 (Last update timestamp)
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    principal_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    principal_type: Mapped[str] = mapped_column(String(20), nullable=False)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    device_info: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_refresh_tokens_principal", "principal_id", "principal_type"),
    )

    def is_valid(self, now: datetime | None = None) -> bool:
        """폐기되지 않았고 만료 전이면 유효합니다.

        A record is valid iff it is not revoked and ``now < expires_at``.
        """
        current: datetime = now or utcnow()
        return not self.is_revoked and current < ensure_utc(self.expires_at)
