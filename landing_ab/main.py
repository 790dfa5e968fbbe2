import logging
import random
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request, Path
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
import uvicorn
from sqlalchemy.orm import Session
from starlette import status

from landing_ab.core.auth import require_auth_token
from landing_ab.core.db import get_db, init_db
from landing_ab.core.middleware import variant_routing_middleware
from landing_ab.core.settings import Settings, config_settings
from landing_ab.models.schemas.catalog import VariantCatalog
from landing_ab.models.schemas.event import (
    AnalyticsErrorModel,
    AnalyticsEventCreateModel,
    AnalyticsEventResponseModel,
    VariantEventSummaryModel,
)
from landing_ab.services.assignment_service import AssignmentService
from landing_ab.services.emitter_service import EventEmitter
from landing_ab.services.event_service import AnalyticsError, EventService
from landing_ab.services.page_service import render_landing_page
from landing_ab.services.router_service import RequestRouter

logger = logging.getLogger(__name__)

ANALYTICS_PATH = "/api/analytics"


def create_app(
    settings: Settings = config_settings,
    catalog: Optional[VariantCatalog] = None,
    rng: Optional[random.Random] = None,
    event_emitter: Optional[EventEmitter] = None,
) -> FastAPI:
    """
    Builds the landing site application.

    Raises ValueError if the variant weights are unusable; the site must not
    start serving with a catalog it cannot assign from.
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    catalog = catalog or VariantCatalog.from_weight_string(settings.VARIANT_WEIGHTS)
    assignment_service = AssignmentService(catalog, rng=rng)
    request_router = RequestRouter(
        assignment_service,
        entry_path=settings.ENTRY_PATH,
        host_routing=settings.HOST_ROUTING,
        path_routing=settings.PATH_ROUTING,
    )
    if event_emitter is None:
        event_emitter = EventEmitter(
            settings.ANALYTICS_ENDPOINT,
            timeout=settings.ANALYTICS_TIMEOUT,
            debug=settings.ANALYTICS_DEBUG,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        logger.info(
            "Serving variants %s (host routing=%s, path routing=%s)",
            ", ".join(f"{v}:{catalog.weights[v]}" for v in catalog.variants),
            request_router.host_routing,
            request_router.path_routing,
        )
        yield
        event_emitter.close()

    app = FastAPI(
        title="Landing page split test",
        description="Variant assignment, routing and analytics collection for the landing site",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.catalog = catalog
    app.state.request_router = request_router
    app.state.event_emitter = event_emitter

    app.middleware("http")(variant_routing_middleware)

    @app.exception_handler(AnalyticsError)
    async def analytics_error_handler(request: Request, exc: AnalyticsError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # The collector speaks {"error": ...}; everything else keeps FastAPI's 422.
        if request.url.path.startswith(ANALYTICS_PATH):
            logger.debug("Rejected analytics payload: %s", exc.errors())
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid event data"},
            )
        return await request_validation_exception_handler(request, exc)

    @app.get("/", include_in_schema=False)
    def home():
        # The entry path decides the variant.
        return RedirectResponse(url=request_router.entry_path)

    @app.get(
        f"{request_router.entry_path}/{{variant}}",
        response_class=HTMLResponse,
        status_code=status.HTTP_200_OK,
        summary="Render a landing page variant",
    )
    def get_landing_page(
        variant: str = Path(..., description="The variant identifier, e.g. 'A'."),
    ):
        if not catalog.is_valid(variant):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Variant {variant} not found.",
            )
        return HTMLResponse(render_landing_page(variant))

    @app.post(
        ANALYTICS_PATH,
        response_model=AnalyticsEventResponseModel,
        status_code=status.HTTP_200_OK,
        responses={400: {"model": AnalyticsErrorModel}, 500: {"model": AnalyticsErrorModel}},
        summary="Record a client-side analytics event.",
    )
    def post_analytics_event(
        event_data: AnalyticsEventCreateModel,
        db: Session = Depends(get_db),
    ):
        event_service = EventService(db)
        return event_service.record_event(event_data)

    @app.get(
        f"{ANALYTICS_PATH}/summary",
        response_model=VariantEventSummaryModel,
        status_code=status.HTTP_200_OK,
        summary="Event counts per variant",
        dependencies=[Depends(require_auth_token)],
    )
    def get_analytics_summary(
        event: str | None = Query(None, description="Only count this event name."),
        db: Session = Depends(get_db),
    ):
        event_service = EventService(db)
        return event_service.get_variant_summary(event)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("landing_ab.main:app", host="0.0.0.0", port=8000, reload=True)
