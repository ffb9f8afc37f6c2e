"""테스트 인프라 — 테스트별 SQLite DB, 세션, httpx 클라이언트, 가짜 Expo 게이트웨이.

Test infrastructure — Per-test SQLite file database (aiosqlite), session,
httpx client fixtures and a fake Expo push gateway on httpx.MockTransport.
Schema is created with ``Base.metadata.create_all`` for every test.
"""

import json
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from promo_api.api.deps import get_sync_service
from promo_api.config import Settings
from promo_api.database import Base, get_db
from promo_api.main import app
from promo_api.models import *  # noqa: F401,F403 — register all models with metadata
from promo_api.models.user import PRINCIPAL_CUSTOMER, PRINCIPAL_USER, ROLE_ADMIN, ROLE_CUSTOMER
from promo_api.services.sync_service import SyncService
from promo_api.utils.expo_push import ExpoPushClient
from promo_api.utils.jwt import token_codec
from promo_api.utils.password import hash_password


def make_settings(**overrides: Any) -> Settings:
    """테스트용 설정 — 배치 지연과 영수증 확인 비활성화 (No pacing, no receipt checks)."""
    values: dict[str, Any] = {
        "PUSH_BATCH_DELAY_SECONDS": 0,
        "PUSH_RECEIPT_DELAY_SECONDS": 0,
    }
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 SQLite 엔진. 매 테스트마다 새 파일과 스키마를 생성합니다."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션과 동기화 서비스를 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_sync_service] = lambda: SyncService(dispatcher=None)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 가짜 Expo 게이트웨이 — Fake Expo push gateway
# ---------------------------------------------------------------------------
class FakeExpoGateway:
    """Expo 푸시 API 흉내 — 요청을 기록하고 설정에 따라 티켓/영수증을 반환합니다.

    Records every request and answers with ok tickets, except for tokens
    listed in ``dead_tokens`` (DeviceNotRegistered ticket) and receipt ids
    listed in ``dead_receipts``. The first ``fail_batches`` send requests
    answer HTTP 500.
    """

    def __init__(
        self,
        dead_tokens: tuple[str, ...] = (),
        dead_receipts: tuple[str, ...] = (),
        fail_batches: int = 0,
    ) -> None:
        self.dead_tokens: set[str] = set(dead_tokens)
        self.dead_receipts: set[str] = set(dead_receipts)
        self.fail_batches: int = fail_batches
        self.sent_batches: list[list[str]] = []
        self.messages: list[dict[str, Any]] = []
        self.receipt_requests: list[list[str]] = []
        self.headers: list[httpx.Headers] = []

    @property
    def sent_tokens(self) -> list[str]:
        return [token for batch in self.sent_batches for token in batch]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.headers.append(request.headers)
        payload: Any = json.loads(request.content)

        if request.url.path.endswith("/getReceipts"):
            ids: list[str] = payload["ids"]
            self.receipt_requests.append(ids)
            data: dict[str, Any] = {}
            for receipt_id in ids:
                if receipt_id in self.dead_receipts:
                    data[receipt_id] = {
                        "status": "error",
                        "message": "The device is no longer registered",
                        "details": {"error": "DeviceNotRegistered"},
                    }
                else:
                    data[receipt_id] = {"status": "ok"}
            return httpx.Response(200, json={"data": data})

        tokens: list[str] = [message["to"] for message in payload]
        self.sent_batches.append(tokens)
        self.messages.extend(payload)
        if self.fail_batches > 0:
            self.fail_batches -= 1
            return httpx.Response(500, json={"errors": [{"code": "INTERNAL_SERVER_ERROR"}]})

        tickets: list[dict[str, Any]] = []
        for token in tokens:
            if token in self.dead_tokens:
                tickets.append({
                    "status": "error",
                    "message": f"{token} is not a registered push notification recipient",
                    "details": {"error": "DeviceNotRegistered"},
                })
            else:
                tickets.append({"status": "ok", "id": f"receipt-{token}"})
        return httpx.Response(200, json={"data": tickets})

    def client(self, config: Settings | None = None) -> ExpoPushClient:
        return ExpoPushClient(
            config=config or make_settings(),
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def gateway() -> FakeExpoGateway:
    return FakeExpoGateway()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def company(db: AsyncSession):
    """테스트 회사를 생성합니다."""
    from promo_api.models.store import Company
    c = Company(name="Test Holding", trading_name="Test", cnpj="11111111000111")
    db.add(c)
    await db.flush()
    await db.refresh(c)
    return c


@pytest_asyncio.fixture
async def store(db: AsyncSession, company):
    """테스트 매장을 생성합니다."""
    from promo_api.models.store import Store
    s = Store(company_id=company.id, name="Test Store", cnpj="22222222000122", city="Recife")
    db.add(s)
    await db.flush()
    await db.refresh(s)
    return s


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession, store):
    """관리자 사용자를 생성합니다."""
    from promo_api.models.user import User
    user = User(
        name="Test Admin",
        email="admin@test.com",
        password_hash=hash_password("admin123!"),
        role=ROLE_ADMIN,
        store_id=store.id,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def customer(db: AsyncSession):
    """고객을 생성합니다 (a@x.com / secret1)."""
    from promo_api.models.user import Customer
    c = Customer(
        name="Customer One",
        email="a@x.com",
        password_hash=hash_password("secret1"),
    )
    db.add(c)
    await db.flush()
    await db.refresh(c)
    return c


async def make_customer(db: AsyncSession, email: str, is_active: bool = True):
    """추가 고객 생성 헬퍼 (Extra customer helper; password is "secret1")."""
    from promo_api.models.user import Customer
    c = Customer(
        name=email.split("@")[0],
        email=email,
        password_hash=hash_password("secret1"),
        is_active=is_active,
    )
    db.add(c)
    await db.flush()
    await db.refresh(c)
    return c


def make_user_token(user) -> str:
    """웹 사용자용 액세스 토큰을 생성합니다."""
    return token_codec.sign_access_token({
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "kind": PRINCIPAL_USER,
        "store_id": str(user.store_id) if user.store_id else None,
    })


def make_customer_token(customer) -> str:
    """고객용 액세스 토큰을 생성합니다."""
    return token_codec.sign_access_token({
        "sub": str(customer.id),
        "email": customer.email,
        "role": ROLE_CUSTOMER,
        "kind": PRINCIPAL_CUSTOMER,
    })


@pytest.fixture
def admin_token(admin_user) -> str:
    return make_user_token(admin_user)


@pytest.fixture
def customer_token(customer) -> str:
    return make_customer_token(customer)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
