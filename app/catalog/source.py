"""Upstream city catalog client with retry logic."""

import asyncio
import os
from typing import Protocol

import httpx
from pydantic import ValidationError

from app.logging_config import logger
from app.models.city import CityRecord

CATALOG_URL = os.getenv(
    "CATALOG_URL",
    "https://wordpress-1415499-5388954.cloudwaysapps.com/wp-admin/admin-ajax.php"
    "?action=get_all_cities&posts_per_page=-1",
)
CATALOG_REQUEST_TIMEOUT_S = float(os.getenv("CATALOG_REQUEST_TIMEOUT_S", "5"))

RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY_S = 0.3
RETRY_MAX_DELAY_S = 2.0
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class CatalogSourceError(Exception):
    """Raised when the upstream catalog cannot be fetched or parsed."""
    pass


class CatalogSource(Protocol):
    """Anything able to return the complete city catalog in one call."""

    async def fetch_all(self) -> list[CityRecord]:
        ...


class HttpCatalogSource:
    """Fetch the city catalog from the content service's admin-ajax endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = CATALOG_URL,
        request_timeout_s: float = CATALOG_REQUEST_TIMEOUT_S,
        retry_base_delay_s: float = RETRY_BASE_DELAY_S,
    ):
        self.client = client
        self.url = url
        self.request_timeout_s = request_timeout_s
        self.retry_base_delay_s = retry_base_delay_s

    async def _request_with_retry(self) -> httpx.Response:
        """Execute the catalog GET with retry/backoff and consistent logging.

        Returns:
            The successful HTTP response.

        Raises:
            CatalogSourceError: When the request fails after retries.
        """
        for attempt in range(1, RETRY_ATTEMPTS + 1):
            try:
                response = await self.client.get(
                    self.url, timeout=self.request_timeout_s
                )
                logger.info(
                    "CATALOG_FETCH_RESPONSE",
                    status=response.status_code,
                    attempt=attempt,
                )
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                retryable = status_code in RETRYABLE_STATUS_CODES
                logger.error(
                    "CATALOG_FETCH_BAD_STATUS",
                    status=status_code,
                    attempt=attempt,
                    retryable=retryable,
                )
                if not retryable or attempt == RETRY_ATTEMPTS:
                    raise CatalogSourceError("Catalog fetch failed") from exc
            except httpx.RequestError as exc:
                logger.error(
                    "CATALOG_FETCH_REQUEST_FAILED",
                    error=str(exc),
                    attempt=attempt,
                )
                if attempt == RETRY_ATTEMPTS:
                    raise CatalogSourceError("Catalog fetch failed") from exc

            delay = min(self.retry_base_delay_s * (2 ** (attempt - 1)), RETRY_MAX_DELAY_S)
            logger.info("CATALOG_FETCH_RETRY", attempt=attempt + 1, delay_s=delay)
            await asyncio.sleep(delay)

        raise CatalogSourceError("Catalog fetch failed")

    async def fetch_all(self) -> list[CityRecord]:
        """Fetch and validate every city in the upstream catalog.

        Records that fail validation are skipped; a payload that does not
        carry a city list at all is rejected.

        Returns:
            City records in upstream order.

        Raises:
            CatalogSourceError: If the request fails or the payload is malformed.
        """
        response = await self._request_with_retry()

        try:
            payload = response.json()
            if not payload.get("success"):
                raise CatalogSourceError("Catalog payload reported failure")
            raw_cities = payload["data"]["cities"]
            if not isinstance(raw_cities, list):
                raise TypeError("cities is not a list")
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.error("CATALOG_BAD_PAYLOAD", error=str(exc))
            raise CatalogSourceError("Catalog payload malformed") from exc

        records = []
        skipped = 0
        for raw in raw_cities:
            try:
                records.append(CityRecord.from_api_response(raw))
            except (ValidationError, TypeError, KeyError, AttributeError):
                skipped += 1
        if skipped:
            logger.warning(
                "CATALOG_RECORD_SKIPPED", skipped=skipped, total=len(raw_cities)
            )
        logger.info("CATALOG_FETCHED", records=len(records))
        return records
