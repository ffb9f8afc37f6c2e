"""디바이스 관련 Pydantic 요청/응답 스키마 정의.

Device-related Pydantic request/response schema definitions.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class DeviceRegisterRequest(BaseModel):
    """디바이스 등록 요청 스키마.

    Device registration request schema.

    Attributes:
        token: 푸시 토큰 (Expo push token, shape-checked by the service)
        platform: 플랫폼 (ios | android)
    """

    token: str = Field(..., min_length=1, max_length=255)
    platform: str = Field(..., pattern="^(ios|android)$")


class DeviceResponse(BaseModel):
    """디바이스 응답 스키마 (Registered device record)."""

    id: str
    customer_id: str
    token: str
    platform: str
    created_at: datetime
    updated_at: datetime


class DeviceStatsResponse(BaseModel):
    """디바이스 통계 응답 스키마.

    Device statistics for the calling customer and globally.

    Attributes:
        customer: 고객 통계 — total, valid, invalid, by_platform (Per-customer counts)
        total: 전체 디바이스 수 (All device records)
        active: 활성 고객 소유 수 (Records of active customers)
        by_platform: 플랫폼별 전체 수 (Global count per platform)
        max_devices_per_customer: 고객당 최대 디바이스 수 (Device cap)
    """

    customer: dict[str, int | dict[str, int]]
    total: int
    active: int
    by_platform: dict[str, int]
    max_devices_per_customer: int


class DeviceCleanupResponse(BaseModel):
    valid: int  # 형식 검증 통과 수 (Tokens that passed the shape check)
    removed: int  # 삭제된 수 (Tokens removed)
