"""즐겨찾기 라우터 — 고객 즐겨찾기 추가, 삭제, 조회.

Favorite Router — Customer favorite promotions.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.api.deps import get_current_customer
from promo_api.database import get_db
from promo_api.models.favorite import Favorite
from promo_api.schemas.auth import PrincipalSummary
from promo_api.schemas.favorite import (
    FavoriteCreateRequest,
    FavoriteRemoveResponse,
    FavoriteResponse,
)
from promo_api.services.favorite_service import favorite_service

router: APIRouter = APIRouter()


def _to_response(favorite: Favorite) -> FavoriteResponse:
    return FavoriteResponse(
        id=str(favorite.id),
        customer_id=str(favorite.customer_id),
        promotion_id=str(favorite.promotion_id),
        created_at=favorite.created_at,
    )


@router.post("", response_model=FavoriteResponse, status_code=201)
async def add_favorite(
    data: FavoriteCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    customer: Annotated[PrincipalSummary, Depends(get_current_customer)],
) -> FavoriteResponse:
    """즐겨찾기 추가 — 같은 프로모션 재추가는 기존 레코드 반환.

    Add a favorite. Adding the same promotion again returns the existing record.
    """
    favorite: Favorite = await favorite_service.add(db, UUID(customer.id), data.promotion_id)
    await db.commit()
    return _to_response(favorite)


@router.get("", response_model=list[FavoriteResponse])
async def list_favorites(
    db: Annotated[AsyncSession, Depends(get_db)],
    customer: Annotated[PrincipalSummary, Depends(get_current_customer)],
) -> list[FavoriteResponse]:
    """내 즐겨찾기 목록, 최신순 (The caller's favorites, newest first)."""
    favorites = await favorite_service.list_for_customer(db, UUID(customer.id))
    return [_to_response(f) for f in favorites]


@router.delete("/{favorite_id}", response_model=FavoriteRemoveResponse)
async def remove_favorite(
    favorite_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    customer: Annotated[PrincipalSummary, Depends(get_current_customer)],
) -> FavoriteRemoveResponse:
    """즐겨찾기 삭제 (Remove a favorite; an unknown id reports success=false)."""
    success: bool = await favorite_service.remove(db, UUID(customer.id), favorite_id)
    await db.commit()
    return FavoriteRemoveResponse(success=success)
