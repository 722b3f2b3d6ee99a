"""DeFi position API endpoints."""

import logging
import threading
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.cancellation import run_cancellable
from api.deps import get_position_aggregator, get_snapshot_store, get_user_id
from integrations.exceptions import ProtocolNotFoundError
from schemas.defi import DeFiStatsResponse, PositionsResponse, ProtocolInfoResponse
from services.position_aggregator_service import PositionAggregatorService
from services.snapshot_store import SqlSnapshotStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/defi", tags=["defi"])


@router.get("/positions", response_model=PositionsResponse)
async def get_positions(
    request: Request,
    chain: Optional[str] = Query(None, description="Query this chain instead of each wallet's own"),
    protocol: Optional[str] = Query(None, description="Restrict to one protocol"),
    user_id: str = Depends(get_user_id),
    store: SqlSnapshotStore = Depends(get_snapshot_store),
    service: PositionAggregatorService = Depends(get_position_aggregator),
):
    """Positions across all of the user's active wallets.

    Wallets whose query fails are listed under ``errors``; the rest are
    still returned. If the client disconnects mid-query, slow wallets are
    abandoned and the response is marked ``cancelled``.
    """
    if protocol:
        try:
            service.get_protocol(protocol)
        except ProtocolNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    cancel_event = threading.Event()

    def collect():
        wallets = store.list_active_wallets(user_id)
        return service.get_positions(wallets, chain=chain, protocol=protocol, cancel_event=cancel_event)

    result = await run_cancellable(request, collect, cancel_event)
    return PositionsResponse.model_validate(result)


@router.get("/stats", response_model=DeFiStatsResponse)
async def get_stats(
    request: Request,
    user_id: str = Depends(get_user_id),
    store: SqlSnapshotStore = Depends(get_snapshot_store),
    service: PositionAggregatorService = Depends(get_position_aggregator),
):
    cancel_event = threading.Event()

    def collect():
        return service.get_stats(store.list_active_wallets(user_id), cancel_event=cancel_event)

    stats = await run_cancellable(request, collect, cancel_event)
    return DeFiStatsResponse.model_validate(stats)


@router.get("/protocols", response_model=list[ProtocolInfoResponse])
def list_protocols(service: PositionAggregatorService = Depends(get_position_aggregator)):
    return [ProtocolInfoResponse.model_validate(p) for p in service.get_protocols()]
