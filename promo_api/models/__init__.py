"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for relationship resolution and
``Base.metadata.create_all``.

Modules:
    user: 웹 사용자 및 모바일 고객 (Web users and mobile customers)
    store: 회사, 매장, 프로모션 (Companies, stores, promotions)
    favorite: 고객 즐겨찾기 (Customer favorites)
    token: 리프레시 토큰 (Refresh tokens)
    device: 푸시 디바이스 토큰 (Push device tokens)
"""

from promo_api.models.user import User, Customer
from promo_api.models.store import Company, Store, Promotion
from promo_api.models.favorite import Favorite
from promo_api.models.token import RefreshToken
from promo_api.models.device import DeviceToken

__all__ = [
    "User", "Customer",
    "Company", "Store", "Promotion",
    "Favorite",
    "RefreshToken",
    "DeviceToken",
]
