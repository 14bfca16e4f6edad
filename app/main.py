"""FastAPI application routes, middleware, and metrics."""

import os
import time
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from app.catalog.cache import CatalogCache
from app.catalog.source import HttpCatalogSource
from app.health.health_check import catalog_cache_status, is_catalog_api_available
from app.location_service.autocomplete import is_searchable, normalize_query
from app.location_service.errors import (
    CatalogUnavailableError,
    InvalidCoordinatesError,
    LocationServiceError,
    NoCitiesAvailableError,
)
from app.location_service.service import ResolutionService
from app.logging_config import logger
from app.models.health import Dependencies, HealthResponse, ServiceStatus
from app.models.location import (
    AutocompleteResponse,
    CitySuggestion,
    Coordinates,
    DetectResponse,
)
from structlog.contextvars import bind_contextvars, clear_contextvars

CATALOG_PRELOAD = os.getenv("CATALOG_PRELOAD", "false").lower() in ("1", "true", "yes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the resolution service and close the upstream client on shutdown."""
    async with httpx.AsyncClient() as client:
        app.state.http_client = client
        cache = CatalogCache(HttpCatalogSource(client))
        app.state.resolution_service = ResolutionService(cache)
        if CATALOG_PRELOAD:
            try:
                await cache.get()
            except CatalogUnavailableError:
                logger.warning("CATALOG_PRELOAD_FAILED")
        yield


app = FastAPI(lifespan=lifespan)

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


def get_resolution_service(request: Request) -> ResolutionService:
    """Return the service instance built during application startup."""
    return request.app.state.resolution_service


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Return the HTTP client shared with the catalog source."""
    return request.app.state.http_client


def parse_coordinate(raw: str | None) -> float:
    """Parse a query-string coordinate.

    Raises:
        InvalidCoordinatesError: If the value is missing or not a number.
    """
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinatesError(f"Coordinate is not a number: {raw!r}") from exc


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=request.url.path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=request.url.path).observe(duration_s)
        clear_contextvars()


@app.exception_handler(InvalidCoordinatesError)
async def invalid_coordinates_handler(request: Request, exc: InvalidCoordinatesError):
    """Convert coordinate validation errors into 400 responses."""
    logger.info("INVALID_COORDINATES", error=str(exc))
    return JSONResponse(status_code=400, content={"detail": "Invalid coordinates"})


@app.exception_handler(NoCitiesAvailableError)
async def no_cities_handler(request: Request, exc: NoCitiesAvailableError):
    """Convert empty-catalog errors into 404 responses."""
    return JSONResponse(status_code=404, content={"detail": "No cities found"})


@app.exception_handler(CatalogUnavailableError)
async def catalog_unavailable_handler(request: Request, exc: CatalogUnavailableError):
    """Convert missing-catalog errors into 500 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised catalog error.

    Returns:
        A JSON response with a generic error message.
    """
    return JSONResponse(
        status_code=500, content={"detail": "Location service unavailable"}
    )


@app.exception_handler(LocationServiceError)
async def location_service_error_handler(request: Request, exc: LocationServiceError):
    """Convert unexpected location service errors into 500 responses."""
    return JSONResponse(status_code=500, content={"detail": "Unexpected error"})


@app.get("/")
async def root():
    """Return a basic liveness response."""
    return {"message": "Location resolver"}


@app.get(
    "/location/autocomplete",
    response_model=AutocompleteResponse,
    response_model_exclude_none=True,
)
async def autocomplete(
    term: str | None = None,
    service: ResolutionService = Depends(get_resolution_service),
) -> AutocompleteResponse:
    """Suggest catalog cities for a partial search term.

    Args:
        term: Free-text query from the location search box.
        service: Resolution service injected by FastAPI.

    Returns:
        Up to ten suggestions; no timestamp when the term is too short.
    """
    if not is_searchable(normalize_query(term)):
        return AutocompleteResponse(suggestions=[])
    records = await service.autocomplete(term)
    return AutocompleteResponse(
        suggestions=[CitySuggestion.from_record(record) for record in records],
        timestamp=int(time.time() * 1000),
    )


@app.get("/location/detect", response_model=DetectResponse)
async def detect(
    latitude: str | None = None,
    longitude: str | None = None,
    service: ResolutionService = Depends(get_resolution_service),
) -> DetectResponse:
    """Resolve a device position to the nearest catalog city.

    Args:
        latitude: Latitude in degrees, as sent by the browser.
        longitude: Longitude in degrees, as sent by the browser.
        service: Resolution service injected by FastAPI.

    Returns:
        The nearest city, its state, distance in km and coordinates.
    """
    nearest = await service.resolve_nearest(
        parse_coordinate(latitude), parse_coordinate(longitude)
    )
    record = nearest.record
    return DetectResponse(
        city=record.name,
        state=record.region,
        distance=nearest.distance_km,
        coordinates=Coordinates(latitude=record.latitude, longitude=record.longitude),
    )


@app.get("/health", response_model=HealthResponse)
async def health(
    service: ResolutionService = Depends(get_resolution_service),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> HealthResponse:
    """Report API health and dependency availability.

    Returns:
        A HealthResponse containing dependency status.
    """
    catalog_api_available = await is_catalog_api_available(client)
    return HealthResponse(
        status="ok",
        dependencies=Dependencies(
            catalog_api=ServiceStatus.available
            if catalog_api_available
            else ServiceStatus.not_available,
            catalog_cache=catalog_cache_status(service.cache),
        ),
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
