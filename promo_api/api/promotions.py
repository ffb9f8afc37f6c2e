"""프로모션 라우터 — 매장 시스템의 프로모션 동기화.

Promotion Router — Promotion sync entry point for store systems.
Callers authenticate with the shared API key or a web user's access token.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.api.deps import get_sync_service, require_sync_credentials
from promo_api.database import get_db
from promo_api.schemas.auth import PrincipalSummary
from promo_api.schemas.promotion import SyncRequest, SyncResponse
from promo_api.services.sync_service import SyncService

router: APIRouter = APIRouter()


@router.post("/sync", response_model=SyncResponse)
async def sync_promotions(
    data: SyncRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[SyncService, Depends(get_sync_service)],
    _caller: Annotated[PrincipalSummary | None, Depends(require_sync_credentials)],
) -> SyncResponse:
    """프로모션 동기화 — 결과는 본문으로 보고, 알림은 백그라운드 실행.

    Sync promotions. The outcome is reported in the body; notifications run
    in the background after the commit.
    """
    return await service.sync(db, data)
