import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.deps.deps import get_weight_store
from app.deps.supabase_client import CurrentUser, require_admin
from app.schemas import WeightsUpdateRequest, WeightsUpdateResponse, WeightsView
from cineai_core.errors import NotFound, WeightValidationError, ZeroWeightSumError
from cineai_weights.weight_store import WeightConfigStore

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/weights", tags=["admin"])


@router.get("", response_model=WeightsView)
async def get_weights(
    _admin: CurrentUser = Depends(require_admin),
    store: WeightConfigStore = Depends(get_weight_store),
):
    try:
        config = await store.read_current()
    except NotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Weights config not found")
    except Exception as e:
        log.exception("Failed to read weights config: %s", e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to read weights config"
        )

    return WeightsView(
        current=config.weights.model_dump(),
        boosts=config.boosts.model_dump(by_alias=True),
        thresholds=config.thresholds.model_dump(by_alias=True),
        meta=config.meta,
        version=config.version,
        lastUpdated=config.last_updated,
    )


@router.post("", response_model=WeightsUpdateResponse)
async def update_weights(
    req: WeightsUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    store: WeightConfigStore = Depends(get_weight_store),
):
    try:
        config = await store.update_weights(
            req.weights, updated_by=admin.email or admin.id
        )
    except WeightValidationError as e:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, {"error": str(e), "field": e.field}
        )
    except ZeroWeightSumError as e:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, {"error": str(e), "field": "weights"}
        )
    except Exception as e:
        log.exception("Failed to update weights: %s", e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update weights"
        )

    return WeightsUpdateResponse(
        updated=config.weights.model_dump(),
        version=config.version,
        message="Weights updated successfully",
    )
