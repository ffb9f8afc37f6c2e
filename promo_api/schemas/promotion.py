"""프로모션 동기화 Pydantic 스키마 정의.

Promotion sync Pydantic schema definitions.
Store systems post camelCase JSON; field names are snake_case with
camelCase aliases, and either spelling is accepted.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _SyncModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SyncCompany(_SyncModel):
    """동기화 대상 회사 (Company sent by the store system)."""

    id: str | None = None
    name: str
    trading_name: str | None = None
    cnpj: str = Field(..., min_length=1, max_length=20)
    active: bool = True


class SyncStore(_SyncModel):
    """동기화 대상 매장 (Store sent by the store system)."""

    id: str | None = None
    name: str
    cnpj: str = Field(..., min_length=1, max_length=20)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    active: bool = True


class SyncPromotion(_SyncModel):
    """동기화 대상 프로모션.

    Promotion sent by the store system. ``id`` is assigned by the store and
    preserved, so re-sending the same promotion updates it.
    """

    id: str
    name: str
    description: str | None = None
    original_price: Decimal
    promotional_price: Decimal
    start_date: datetime
    end_date: datetime
    product_id: str
    active: bool = True


class SyncRequest(_SyncModel):
    """프로모션 동기화 요청 스키마.

    Promotion sync request: one company, one store, many promotions.
    """

    timestamp: datetime | None = None
    company: SyncCompany
    store: SyncStore
    promotions: list[SyncPromotion] = []


class SyncResponse(BaseModel):
    """프로모션 동기화 응답 스키마.

    Sync outcome. Failures are reported in the body with ``success=False``.
    """

    success: bool
    message: str
    timestamp: datetime
    total_synced: int
    errors: list[str] | None = None
