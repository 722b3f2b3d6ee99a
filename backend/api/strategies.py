"""Strategy API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_strategy_service, get_user_id
from schemas.strategy import StrategyAnalysisResponse
from services.exceptions import InvalidInputError, NotFoundError
from services.strategy_service import StrategyService

router = APIRouter(prefix="/api/strategies", tags=["strategies"])


@router.get("/{strategy_id}/analysis", response_model=StrategyAnalysisResponse)
def get_strategy_analysis(
    strategy_id: str,
    user_id: str = Depends(get_user_id),
    service: StrategyService = Depends(get_strategy_service),
):
    """Drift of a rebalance strategy from its targets, with suggested trades."""
    try:
        analysis = service.analyze(user_id, strategy_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return StrategyAnalysisResponse.model_validate(analysis)
