from typing import Any, cast
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from cineai_logging.rec_logger import TelemetryLogger
from cineai_weights.weight_store import WeightConfigStore


def _get_state_attr(request: Request, name: str, error_detail: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail,
        )
    return value


def get_settings(request: Request) -> Any:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Settings not initialized",
        )
    return settings


def get_weight_store(request: Request) -> WeightConfigStore:
    return cast(
        WeightConfigStore,
        _get_state_attr(request, "weight_store", "Weight store not initialized"),
    )


def get_telemetry(request: Request) -> TelemetryLogger | None:
    # optional: recommendations still work without telemetry
    return getattr(request.app.state, "telemetry", None)


@dataclass(frozen=True)
class SupabaseCreds:
    url: str
    api_key: str


def get_supabase_creds(request: Request) -> SupabaseCreds:
    return SupabaseCreds(
        url=getattr(request.app.state, "supabase_url", ""),
        api_key=getattr(request.app.state, "supabase_api_key", ""),
    )
