"""디바이스 토큰 모델 — 고객의 푸시 수신 엔드포인트.

Device Token model — One push-capable endpoint of a customer.
At most one row per (customer, push token) pair; re-registering the same
token updates the existing row in place.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promo_api.database import Base
from promo_api.utils.clock import utcnow

# 지원 플랫폼 — Supported platforms
PLATFORM_IOS: str = "ios"
PLATFORM_ANDROID: str = "android"
PLATFORMS: tuple[str, ...] = (PLATFORM_IOS, PLATFORM_ANDROID)


class DeviceToken(Base):
    """디바이스 토큰 테이블.

    Device token table.

    Attributes:
        id: 고유 식별자 (Primary key UUID)
        customer_id: 소유 고객 FK (Owning customer)
        token: 푸시 토큰 문자열 (Opaque push token, e.g. "ExponentPushToken[...]")
        platform: 플랫폼 (ios | android)
        created_at: 최초 등록 일시 (First registration timestamp)
        updated_at: 마지막 등록/갱신 일시 (Last (re-)registration timestamp, drives LRU eviction)
    """

    __tablename__ = "device_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    token: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("customer_id", "token", name="uq_device_token_customer_token"),
    )

    # 관계 — Relationships
    customer = relationship("Customer", back_populates="device_tokens")
