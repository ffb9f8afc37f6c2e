"""즐겨찾기 API 테스트 — 추가, 조회, 삭제, 접근 제어, 알림 연결.

Favorites API tests — Add, list and remove, customer-only access, and the
hand-off to the dispatcher's favorite store path.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy import func, select

from promo_api.models.device import DeviceToken
from promo_api.models.favorite import Favorite
from promo_api.models.store import Promotion
from promo_api.services.device_service import DeviceService
from promo_api.services.notification_service import FAVORITES_TITLE, NotificationDispatcher
from promo_api.utils.clock import utcnow
from tests.conftest import auth_header, make_customer, make_customer_token, make_settings

FAVORITES = "/api/v1/favorites"


async def _add_promotion(db, store, name: str = "Café 500g") -> Promotion:
    promotion = Promotion(
        store_id=store.id,
        name=name,
        original_price=Decimal("18.90"),
        promotional_price=Decimal("14.99"),
        start_date=utcnow(),
        end_date=utcnow() + timedelta(days=7),
        product_id="SKU-001",
    )
    db.add(promotion)
    await db.flush()
    return promotion


async def _favorite_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(Favorite))).scalar()


class TestAddFavorite:
    """즐겨찾기 추가 API 테스트."""

    async def test_add(self, client: AsyncClient, db, store, customer, customer_token):
        """즐겨찾기 추가 201."""
        promotion = await _add_promotion(db, store)
        res = await client.post(FAVORITES, json={"promotion_id": str(promotion.id)},
                                headers=auth_header(customer_token))
        assert res.status_code == 201
        data = res.json()
        assert data["customer_id"] == str(customer.id)
        assert data["promotion_id"] == str(promotion.id)

    async def test_add_twice_keeps_one_record(self, client: AsyncClient, db, store, customer_token):
        """같은 프로모션 두 번 추가해도 레코드 하나."""
        promotion = await _add_promotion(db, store)
        body = {"promotion_id": str(promotion.id)}
        first = await client.post(FAVORITES, json=body, headers=auth_header(customer_token))
        second = await client.post(FAVORITES, json=body, headers=auth_header(customer_token))
        assert first.json()["id"] == second.json()["id"]
        assert await _favorite_count(db) == 1

    async def test_add_unknown_promotion(self, client: AsyncClient, db, customer_token):
        """없는 프로모션 404."""
        res = await client.post(FAVORITES, json={"promotion_id": str(uuid.uuid4())},
                                headers=auth_header(customer_token))
        assert res.status_code == 404
        assert await _favorite_count(db) == 0

    async def test_malformed_promotion_id(self, client: AsyncClient, customer_token):
        """UUID 형식 오류 422."""
        res = await client.post(FAVORITES, json={"promotion_id": "nope"}, headers=auth_header(customer_token))
        assert res.status_code == 422

    async def test_requires_auth(self, client: AsyncClient):
        """인증 없이 401."""
        res = await client.post(FAVORITES, json={"promotion_id": str(uuid.uuid4())})
        assert res.status_code == 401

    async def test_web_user_forbidden(self, client: AsyncClient, admin_token):
        """웹 사용자 토큰은 403."""
        res = await client.get(FAVORITES, headers=auth_header(admin_token))
        assert res.status_code == 403


class TestListAndRemove:
    """즐겨찾기 조회 및 삭제 API 테스트."""

    async def test_list_only_own(self, client: AsyncClient, db, store, customer, customer_token):
        """다른 고객의 즐겨찾기는 보이지 않음."""
        mine = await _add_promotion(db, store, "mine")
        theirs = await _add_promotion(db, store, "theirs")
        other = await make_customer(db, "b@x.com")
        db.add_all([
            Favorite(customer_id=customer.id, promotion_id=mine.id),
            Favorite(customer_id=other.id, promotion_id=theirs.id),
        ])
        await db.flush()

        res = await client.get(FAVORITES, headers=auth_header(customer_token))
        assert res.status_code == 200
        assert [f["promotion_id"] for f in res.json()] == [str(mine.id)]

    async def test_remove(self, client: AsyncClient, db, store, customer, customer_token):
        """삭제 후 success=true, 레코드 없음."""
        promotion = await _add_promotion(db, store)
        favorite = Favorite(customer_id=customer.id, promotion_id=promotion.id)
        db.add(favorite)
        await db.flush()

        res = await client.delete(f"{FAVORITES}/{favorite.id}", headers=auth_header(customer_token))
        assert res.status_code == 200
        assert res.json() == {"success": True}
        assert await _favorite_count(db) == 0

    async def test_remove_unknown(self, client: AsyncClient, customer_token):
        """없는 ID 삭제는 success=false."""
        res = await client.delete(f"{FAVORITES}/{uuid.uuid4()}", headers=auth_header(customer_token))
        assert res.status_code == 200
        assert res.json() == {"success": False}

    async def test_remove_other_customers_favorite(self, client: AsyncClient, db, store, customer_token):
        """다른 고객의 즐겨찾기 삭제는 403, 레코드 유지."""
        promotion = await _add_promotion(db, store)
        other = await make_customer(db, "b@x.com")
        favorite = Favorite(customer_id=other.id, promotion_id=promotion.id)
        db.add(favorite)
        await db.flush()

        res = await client.delete(f"{FAVORITES}/{favorite.id}", headers=auth_header(customer_token))
        assert res.status_code == 403
        assert await _favorite_count(db) == 1


class TestFavoritesFeedDispatcher:
    """즐겨찾기와 알림 연결 테스트."""

    async def test_added_favorite_receives_store_notification(
        self, client: AsyncClient, db, session_factory, store, gateway,
    ):
        """API로 추가한 즐겨찾기 고객에게 매장 알림 발송."""
        promotion = await _add_promotion(db, store)
        fan = await make_customer(db, "fan@x.com")
        db.add(DeviceToken(customer_id=fan.id, token="ExponentPushToken[fan]", platform="ios"))
        await db.flush()

        res = await client.post(FAVORITES, json={"promotion_id": str(promotion.id)},
                                headers=auth_header(make_customer_token(fan)))
        assert res.status_code == 201

        config = make_settings()
        push_client = gateway.client(config)
        dispatcher = NotificationDispatcher(
            session_factory=session_factory,
            push_client=push_client,
            device_registry=DeviceService(push_client=push_client, config=config),
            config=config,
        )
        report = await dispatcher.dispatch([promotion], store)

        assert report.favorites.sent == 1
        assert [m["to"] for m in gateway.messages if m["title"] == FAVORITES_TITLE] == [
            "ExponentPushToken[fan]"
        ]
