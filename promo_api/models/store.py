"""회사, 매장, 프로모션 관련 SQLAlchemy ORM 모델 정의.

Company, Store and Promotion SQLAlchemy ORM model definitions.
Stores push their promotions to the central database through the sync
endpoint; companies and stores are matched by CNPJ (Brazilian tax id).

Tables:
    - companies: 회사 (Companies owning stores)
    - stores: 매장 (Stores, unique by CNPJ)
    - promotions: 프로모션 (Promotions published by a store)
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Numeric, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promo_api.database import Base
from promo_api.utils.clock import utcnow


class Company(Base):
    """회사 모델 — 매장을 소유하는 법인.

    Company model — Legal entity owning one or more stores.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 법인명 (Legal name)
        trading_name: 상호 (Trading name)
        cnpj: 사업자 번호, 고유 (Tax id, unique)
        is_active: 활성 상태 (Active status)
    """

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trading_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cnpj: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # 관계 — Relationships
    stores = relationship("Store", back_populates="company", cascade="all, delete-orphan")


class Store(Base):
    """매장 모델 — 프로모션을 게시하는 개별 매장.

    Store model — Individual store publishing promotions.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        company_id: 소속 회사 FK (Parent company)
        name: 매장 이름 (Store display name, used in notification text)
        cnpj: 사업자 번호, 고유 (Tax id, unique)
        address/city/state/zip_code: 주소 정보 (Address fields)
        is_active: 활성 상태 (Active status)
    """

    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 소속 회사 FK — Parent company (CASCADE: 회사 삭제 시 매장도 삭제)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cnpj: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # 관계 — Relationships
    company = relationship("Company", back_populates="stores")
    promotions = relationship("Promotion", back_populates="store", cascade="all, delete-orphan")
    users = relationship("User", back_populates="store")


class Promotion(Base):
    """프로모션 모델 — 매장에서 동기화된 할인 상품.

    Promotion model — Discounted product synced from a store.
    The id is assigned by the store's own system and preserved on sync.

    Attributes:
        id: 매장 시스템이 부여한 UUID (Store-assigned UUID)
        store_id: 매장 FK (Owning store)
        name: 프로모션 이름 (Promotion name)
        description: 설명, 선택 (Optional description)
        original_price: 정가 (Original price)
        promotional_price: 할인가 (Promotional price)
        start_date/end_date: 유효 기간 (Validity window)
        product_id: 매장 상품 코드 (Store product code)
        is_active: 활성 상태 (Active status)
    """

    __tablename__ = "promotions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    promotional_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    product_id: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # 관계 — Relationships
    store = relationship("Store", back_populates="promotions")
    favorites = relationship("Favorite", back_populates="promotion", cascade="all, delete-orphan")
