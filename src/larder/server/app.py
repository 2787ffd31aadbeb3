"""ASGI application for Larder."""

from __future__ import annotations

import logging
from datetime import date, datetime
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import Field

from larder import __version__, metrics
from larder.barcode import BarcodeLookup, resolve_barcode_lookup
from larder.config import Settings, get_settings
from larder.logging_utils import configure_from_settings
from larder.models.barcode import BarcodeResolution
from larder.models.base import WireModel
from larder.models.pantry import InventoryItem, MealPlanEntry, PantrySnapshot, Recipe
from larder.models.plan import DemandRow, RankedRecommendations
from larder.models.retention import RetentionReport
from larder.models.shopping import ShoppingItem
from larder.models.sync import SyncEnvelope, SyncResolution
from larder.planner.meal_plan import DEFAULT_DRAFT_LIMIT, draft_weekly_meal_plan
from larder.planner.pipeline import demand_for_snapshot, shopping_list_for_snapshot
from larder.planner.recipes import RecipeNormalization, validate_and_normalize_recipe
from larder.planner.recommendations import rank_recipe_recommendations
from larder.planner.shopping import group_shopping_items_by_store_section
from larder.retention import run_retention_jobs
from larder.server import deps
from larder.sync.envelope import create_sync_envelope, migrate_sync_envelope, resolve_sync_conflict

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Ensure validation error payloads can be serialized to JSON."""

    return [{key: _json_safe(value) for key, value in error.items()} for error in errors]


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    configure_from_settings(settings)

    application = FastAPI(title="Larder Pantry Planner", version=__version__)
    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("larder.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            path = request.url.path
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
            return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(),
            **log_kwargs,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": _normalize_validation_errors(exc.errors())},
        )

    @application.get("/healthz", summary="Liveness check")
    def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @application.post(
        "/recommendations",
        response_model=RankedRecommendations,
        summary="Rank recipes against current inventory",
    )
    def recommendations_endpoint(
        payload: RecommendationRequest,
        auth: None = Depends(deps.require_api_token),
    ) -> RankedRecommendations:
        return rank_recipe_recommendations(payload.recipes, payload.inventory, now=payload.now)

    @application.post(
        "/recipes/validate",
        response_model=RecipeNormalization,
        summary="Check a recipe against inventory and normalize its units",
    )
    def recipe_validate_endpoint(
        payload: RecipeValidationRequest,
        auth: None = Depends(deps.require_api_token),
    ) -> RecipeNormalization:
        return validate_and_normalize_recipe(payload.recipe, payload.inventory)

    @application.post(
        "/meal-plan/draft",
        response_model=list[MealPlanEntry],
        summary="Draft a week of meals from ranked recipes",
    )
    def meal_plan_draft_endpoint(
        payload: MealPlanDraftRequest,
        auth: None = Depends(deps.require_api_token),
    ) -> list[MealPlanEntry]:
        ranked = rank_recipe_recommendations(payload.recipes, payload.inventory, now=payload.now)
        return draft_weekly_meal_plan(ranked, payload.week_start, limit=payload.limit)

    @application.post(
        "/meal-plan/demand",
        response_model=list[DemandRow],
        summary="Aggregate ingredient demand for planned meals",
    )
    def meal_plan_demand_endpoint(
        payload: PlanWindowRequest,
        auth: None = Depends(deps.require_api_token),
    ) -> list[DemandRow]:
        return demand_for_snapshot(payload, week_start=payload.week_start, week_end=payload.week_end)

    @application.post(
        "/shopping-list",
        response_model=ShoppingListResponse,
        summary="Derive shopping gaps from planned meals",
    )
    def shopping_list_endpoint(
        payload: PlanWindowRequest,
        auth: None = Depends(deps.require_api_token),
    ) -> ShoppingListResponse:
        items = shopping_list_for_snapshot(
            payload, week_start=payload.week_start, week_end=payload.week_end
        )
        return ShoppingListResponse(items=items, sections=group_shopping_items_by_store_section(items))

    @application.post(
        "/sync/envelope",
        response_model=SyncEnvelope,
        summary="Wrap state in a sync envelope",
    )
    def sync_envelope_endpoint(
        payload: EnvelopeExportRequest,
        auth: None = Depends(deps.require_api_token),
        settings: Settings = Depends(get_settings),
    ) -> SyncEnvelope:
        return create_sync_envelope(
            payload.state,
            device_id=payload.device_id or settings.device_id,
            source=payload.source or settings.sync_source,
        )

    @application.post(
        "/sync/migrate",
        response_model=SyncEnvelope,
        summary="Upgrade a stored envelope to the current schema",
    )
    def sync_migrate_endpoint(
        payload: Any = Body(default=None),
        auth: None = Depends(deps.require_api_token),
    ) -> SyncEnvelope:
        return migrate_sync_envelope(payload)

    @application.post(
        "/sync/resolve",
        response_model=SyncResolution,
        summary="Pick the winning snapshot between local and remote",
    )
    def sync_resolve_endpoint(
        payload: SyncResolveRequest,
        auth: None = Depends(deps.require_api_token),
        settings: Settings = Depends(get_settings),
    ) -> SyncResolution:
        local = migrate_sync_envelope(payload.local) if payload.local is not None else None
        remote = migrate_sync_envelope(payload.remote) if payload.remote is not None else None
        tolerance = (
            payload.drift_tolerance_ms
            if payload.drift_tolerance_ms is not None
            else settings.sync_drift_tolerance_ms
        )
        return resolve_sync_conflict(local, remote, drift_tolerance_ms=tolerance)

    @application.post(
        "/retention/run",
        response_model=RetentionResponse,
        summary="Archive stale records and drop expired data",
    )
    def retention_endpoint(
        payload: RetentionRequest,
        auth: None = Depends(deps.require_api_token),
        settings: Settings = Depends(get_settings),
    ) -> RetentionResponse:
        outcome = run_retention_jobs(
            payload.state,
            now=payload.now,
            archive_after_days=settings.retention_archive_after_days,
            delete_after_archive_days=settings.retention_delete_after_archive_days,
            retain_months=settings.pricing_retain_months,
        )
        return RetentionResponse(state=outcome.state, report=outcome.report)

    @application.get(
        "/barcode/{code}",
        response_model=BarcodeResolution,
        summary="Look up a barcode with the product provider",
    )
    def barcode_endpoint(
        code: str,
        auth: None = Depends(deps.require_api_token),
        lookup: BarcodeLookup = Depends(deps.get_barcode_lookup),
        settings: Settings = Depends(get_settings),
    ) -> BarcodeResolution:
        return resolve_barcode_lookup(code, None, lookup, max_attempts=settings.barcode_max_attempts)

    return application


class RecommendationRequest(WireModel):
    inventory: list[InventoryItem] = Field(default_factory=list)
    recipes: list[Recipe] = Field(default_factory=list)
    now: Optional[datetime] = Field(default=None)


class RecipeValidationRequest(WireModel):
    recipe: Recipe
    inventory: list[InventoryItem] = Field(default_factory=list)


class MealPlanDraftRequest(RecommendationRequest):
    week_start: date
    limit: int = Field(default=DEFAULT_DRAFT_LIMIT, ge=1, le=28)


class PlanWindowRequest(PantrySnapshot):
    """Pantry snapshot plus an optional inclusive date window over its meal plan."""

    week_start: Optional[date] = Field(default=None)
    week_end: Optional[date] = Field(default=None)


class ShoppingListResponse(WireModel):
    items: list[ShoppingItem] = Field(default_factory=list)
    sections: dict[str, list[ShoppingItem]] = Field(default_factory=dict)


class EnvelopeExportRequest(WireModel):
    state: dict[str, Any] = Field(default_factory=dict)
    device_id: Optional[str] = Field(default=None)
    source: Optional[str] = Field(default=None)


class SyncResolveRequest(WireModel):
    """Raw envelopes as stored; both sides are migrated before comparison."""

    local: Optional[Any] = Field(default=None)
    remote: Optional[Any] = Field(default=None)
    drift_tolerance_ms: Optional[int] = Field(default=None, ge=0)


class RetentionRequest(WireModel):
    state: dict[str, Any] = Field(default_factory=dict)
    now: Optional[datetime] = Field(default=None)


class RetentionResponse(WireModel):
    state: dict[str, Any]
    report: RetentionReport


app = create_app()

__all__ = ["app", "create_app"]
