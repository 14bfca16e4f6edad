"""Health checks for the upstream catalog API and the in-process cache."""

import httpx

from app.catalog.cache import CatalogCache
from app.catalog.source import CATALOG_URL
from app.logging_config import logger
from app.models.health import ServiceStatus


def catalog_cache_status(cache: CatalogCache) -> ServiceStatus:
    """Report whether the cache holds a catalog snapshot.

    Returns:
        ServiceStatus.available once a catalog has been fetched, else not_available.
    """
    if cache.is_warm:
        return ServiceStatus.available
    logger.info("CATALOG_CACHE_COLD")
    return ServiceStatus.not_available


async def is_catalog_api_available(
    client: httpx.AsyncClient, url: str = CATALOG_URL
) -> bool:
    """Check the upstream catalog API for availability with a HEAD request.

    Args:
        client: Shared HTTP client created at application startup.
        url: Catalog endpoint to probe.

    Returns:
        True if the endpoint answers without an error status.
    """
    try:
        response = await client.head(url, timeout=5)
        return response.status_code < 400
    except Exception as exc:
        logger.error("CATALOG_API_UNAVAILABLE", error=str(exc))
        return False
