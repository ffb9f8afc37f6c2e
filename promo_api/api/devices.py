"""디바이스 라우터 — 고객 푸시 디바이스 등록, 통계, 정리.

Device Router — Customer push device registration, statistics and cleanup.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.api.deps import get_current_customer
from promo_api.database import get_db
from promo_api.models.device import DeviceToken
from promo_api.schemas.auth import PrincipalSummary
from promo_api.schemas.device import (
    DeviceCleanupResponse,
    DeviceRegisterRequest,
    DeviceResponse,
    DeviceStatsResponse,
)
from promo_api.services.device_service import device_service

router: APIRouter = APIRouter()


@router.post("", response_model=DeviceResponse, status_code=201)
async def register_device(
    data: DeviceRegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    customer: Annotated[PrincipalSummary, Depends(get_current_customer)],
) -> DeviceResponse:
    """푸시 디바이스 등록 — 같은 토큰 재등록은 갱신.

    Register a push device. Re-registering the same token updates it.
    """
    device: DeviceToken = await device_service.register(
        db, UUID(customer.id), data.token, data.platform
    )
    await db.commit()
    return DeviceResponse(
        id=str(device.id),
        customer_id=str(device.customer_id),
        token=device.token,
        platform=device.platform,
        created_at=device.created_at,
        updated_at=device.updated_at,
    )


@router.get("/stats", response_model=DeviceStatsResponse)
async def device_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    customer: Annotated[PrincipalSummary, Depends(get_current_customer)],
) -> DeviceStatsResponse:
    """디바이스 통계 (Device statistics for the caller and globally)."""
    return await device_service.get_stats(db, UUID(customer.id))


@router.post("/cleanup", response_model=DeviceCleanupResponse)
async def cleanup_devices(
    db: Annotated[AsyncSession, Depends(get_db)],
    customer: Annotated[PrincipalSummary, Depends(get_current_customer)],
) -> DeviceCleanupResponse:
    """형식 오류 토큰 정리 (Remove the caller's malformed tokens)."""
    result: DeviceCleanupResponse = await device_service.validate_and_clean(db, UUID(customer.id))
    await db.commit()
    return result
