"""즐겨찾기 관련 Pydantic 요청/응답 스키마 정의.

Favorite-related Pydantic request/response schema definitions.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class FavoriteCreateRequest(BaseModel):
    """즐겨찾기 추가 요청 (Add a promotion to the caller's favorites)."""

    promotion_id: UUID


class FavoriteResponse(BaseModel):
    """즐겨찾기 응답 스키마 (Favorite record)."""

    id: str
    customer_id: str
    promotion_id: str
    created_at: datetime


class FavoriteRemoveResponse(BaseModel):
    success: bool  # 삭제 여부, 없는 ID면 False (False for an unknown id)
