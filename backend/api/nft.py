"""NFT holdings API endpoints."""

import logging
import threading
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.cancellation import run_cancellable
from api.deps import get_nft_service, get_user_id
from schemas.nft import CollectionsResponse, NFTAssetsResponse
from services.nft_service import NFTService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/nft", tags=["nft"])


@router.get("/assets", response_model=NFTAssetsResponse)
async def get_assets(
    request: Request,
    chain: Optional[str] = Query(None, description="Only NFTs on this chain"),
    collection: Optional[str] = Query(None, description="Collection name or slug"),
    user_id: str = Depends(get_user_id),
    service: NFTService = Depends(get_nft_service),
):
    """NFTs held by the user's wallets, valued at collection floor.

    Wallets that could not be read and have no cached holdings are listed
    under ``errors``.
    """
    cancel_event = threading.Event()
    result = await run_cancellable(
        request,
        partial(service.get_nfts, user_id, chain=chain, collection=collection, cancel_event=cancel_event),
        cancel_event,
    )
    return NFTAssetsResponse.model_validate(result)


@router.get("/collections", response_model=CollectionsResponse)
async def get_collections(
    request: Request,
    user_id: str = Depends(get_user_id),
    service: NFTService = Depends(get_nft_service),
):
    cancel_event = threading.Event()
    result = await run_cancellable(
        request, partial(service.get_collections, user_id, cancel_event=cancel_event), cancel_event
    )
    return CollectionsResponse.model_validate(result)
