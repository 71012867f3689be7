import logging
from contextlib import asynccontextmanager

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from pydantic_settings import BaseSettings, SettingsConfigDict

from cineai_core.config import (
    NOVELTY_WINDOW_HOURS,
    WEIGHTS_CACHE_TTL_S,
    WEIGHTS_CONFIG_PATH,
)
from cineai_logging.rec_logger import TelemetryLogger
from cineai_weights.config_source import FileWeightConfigSource
from cineai_weights.weight_store import WeightConfigStore
from .routers import all_routers

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "CineAI Recommender API"
    # credentials
    supabase_url: str | None = None
    supabase_api_key: str | None = None
    # weights config
    weights_config_path: str = str(WEIGHTS_CONFIG_PATH)
    weights_cache_ttl_s: float = WEIGHTS_CACHE_TTL_S
    # admin access, comma-separated emails
    admin_emails: str = ""
    # recommendation tuning
    novelty_window_hours: float = NOVELTY_WINDOW_HOURS
    telemetry_sample: float = 1.0
    # env conifg
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def admin_email_set(self) -> set[str]:
        return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}


def _init_recommendation_stack(app: FastAPI) -> None:
    settings: Settings = app.state.settings

    app.state.supabase_url = settings.supabase_url or ""
    app.state.supabase_api_key = settings.supabase_api_key or ""

    app.state.weight_store = WeightConfigStore(
        FileWeightConfigSource(settings.weights_config_path),
        ttl_s=settings.weights_cache_ttl_s,
    )
    app.state.telemetry = TelemetryLogger(
        app.state.supabase_url,
        app.state.supabase_api_key,
        sample=settings.telemetry_sample,
    )
    if not app.state.telemetry._enabled():
        log.warning("Supabase credentials missing; recommendation telemetry disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv(find_dotenv(), override=False)

    settings = Settings()
    app.state.settings = settings
    _init_recommendation_stack(app)

    try:
        yield
    finally:
        # Place for cleanup if needed in future
        pass


app = FastAPI(title="CineAI Recommender API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version="0.1.0",
        description="CineAI personalized recommendation API",
        routes=app.routes,
    )
    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    for path_item in schema.get("paths", {}).values():
        for operation in path_item.values():
            operation.setdefault("security", []).append({"BearerAuth": []})
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = _custom_openapi


@app.get("/health")
def health():
    s = app.state.settings
    return {"status": "ok", "service": s.app_name}


@app.get("/")
def read_root():
    return {"status": "ok"}


for r in all_routers:
    app.include_router(r)
