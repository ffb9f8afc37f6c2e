"""즐겨찾기 SQLAlchemy ORM 모델.

Favorite SQLAlchemy ORM model — links a customer to a promotion they follow.
Managed by customers and read by the notification dispatcher to find
"favorite store" recipients.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promo_api.database import Base
from promo_api.utils.clock import utcnow


class Favorite(Base):
    """즐겨찾기 테이블.

    Favorite table. One row per (customer, promotion) pair.

    Attributes:
        id: 고유 식별자 (Primary key UUID)
        customer_id: 고객 FK (Customer who follows the promotion)
        promotion_id: 프로모션 FK (Followed promotion)
        created_at: 생성 일시 (Creation timestamp)
    """

    __tablename__ = "favorites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    promotion_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("customer_id", "promotion_id", name="uq_favorite_customer_promotion"),
    )

    # 관계 — Relationships
    customer = relationship("Customer", back_populates="favorites")
    promotion = relationship("Promotion", back_populates="favorites")
