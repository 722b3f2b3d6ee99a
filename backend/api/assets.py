"""Asset refresh API endpoints."""

import logging
import threading
from functools import partial

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from api.cancellation import run_cancellable
from api.deps import get_asset_refresh_service, get_user_id
from database import get_db
from schemas.assets import RefreshResponse
from services.asset_refresh_service import AssetRefreshService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assets", tags=["assets"])


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_assets(
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    service: AssetRefreshService = Depends(get_asset_refresh_service),
):
    """Re-collect balances from every active exchange account and wallet.

    Rewrites the non-manual holdings and appends a new snapshot. Sources
    that fail are listed under ``errors``. A refresh whose client
    disconnected is rolled back rather than committed half-collected.
    """
    cancel_event = threading.Event()
    result = await run_cancellable(
        request, partial(service.refresh_all, user_id, cancel_event=cancel_event), cancel_event
    )
    response = RefreshResponse.model_validate(result)
    if cancel_event.is_set():
        logger.info("Refresh for %s abandoned by client; rolling back", user_id)
        await run_in_threadpool(db.rollback)
    else:
        await run_in_threadpool(db.commit)
    return response
