"""사용자 및 고객 관련 SQLAlchemy ORM 모델 정의.

User and Customer SQLAlchemy ORM model definitions.
The two principal kinds share the session mechanics (refresh tokens,
access tokens) but live in separate tables: users sign in to the web
admin panel, customers sign in to the mobile app.

Tables:
    - users: 웹 관리자 패널 사용자 (Web admin panel users, optional store affiliation)
    - customers: 모바일 앱 고객 (Mobile app customers)
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promo_api.database import Base
from promo_api.utils.clock import utcnow

# 주체 종류 — Principal kind discriminators stored on refresh tokens and access token claims
PRINCIPAL_USER: str = "user"
PRINCIPAL_CUSTOMER: str = "customer"
PRINCIPAL_KINDS: tuple[str, ...] = (PRINCIPAL_USER, PRINCIPAL_CUSTOMER)

# 사용자 역할 — Web panel user roles
ROLE_ADMIN: str = "ADMIN"
ROLE_STORE_MANAGER: str = "STORE_MANAGER"
ROLE_STORE_OPERATOR: str = "STORE_OPERATOR"
# 고객 신원 요약에 사용되는 역할 — Role reported in customer identity summaries
ROLE_CUSTOMER: str = "CUSTOMER"


class User(Base):
    """사용자 모델 — 웹 관리자 패널 계정.

    User model — Web admin panel account.
    Email is globally unique. A user may be affiliated with one store.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 표시 이름 (Display name)
        email: 이메일, 전역 고유 (Email, globally unique login identifier)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        role: 역할 (ADMIN | STORE_MANAGER | STORE_OPERATOR)
        store_id: 소속 매장 FK, 선택 (Optional store affiliation)
        is_active: 활성 상태 (Active status, soft-delete pattern)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)
    """

    __tablename__ = "users"

    # 사용자 고유 식별자 — User unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 표시 이름 — Display name
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 이메일 — Login email (전역 고유, globally unique)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # 비밀번호 해시 — bcrypt hashed password (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    # 역할 — Role name (ADMIN | STORE_MANAGER | STORE_OPERATOR)
    role: Mapped[str] = mapped_column(String(30), nullable=False, default=ROLE_STORE_OPERATOR)
    # 소속 매장 FK — Optional store affiliation (매장 삭제 시 NULL)
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("stores.id", ondelete="SET NULL"), nullable=True)
    # 활성 상태 — Whether the account is active
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    # 수정 일시 — Last modification timestamp (UTC, auto-updated)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # 관계 — Relationships
    store = relationship("Store", back_populates="users")


class Customer(Base):
    """고객 모델 — 모바일 앱 계정.

    Customer model — Mobile app account. Customers own device tokens
    and favorites.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 표시 이름 (Display name)
        email: 이메일, 전역 고유 (Email, globally unique)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        phone: 전화번호, 선택 (Optional phone number)
        is_active: 활성 상태 (Active status)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)

    Relationships:
        device_tokens: 등록된 푸시 디바이스 (Registered push devices, cascade delete)
        favorites: 즐겨찾기한 프로모션 (Favorited promotions, cascade delete)
    """

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # 관계 — Relationships
    device_tokens = relationship("DeviceToken", back_populates="customer", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="customer", cascade="all, delete-orphan")
