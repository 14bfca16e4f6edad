"""Location resolution facade used by the HTTP layer."""

from app.catalog.cache import CatalogCache
from app.location_service.autocomplete import (
    AutocompleteMatcher,
    SuggestionMatcher,
    is_searchable,
    normalize_query,
)
from app.location_service.nearest import (
    NearestCity,
    NearestCityResolver,
    NearestResolver,
    validate_coordinates,
)
from app.logging_config import logger
from app.models.city import CityRecord


class ResolutionService:
    """Serve nearest-city and autocomplete queries from the cached catalog."""

    def __init__(
        self,
        cache: CatalogCache,
        nearest_resolver: NearestResolver | None = None,
        matcher: SuggestionMatcher | None = None,
    ):
        self.cache = cache
        self.nearest_resolver = nearest_resolver or NearestCityResolver()
        self.matcher = matcher or AutocompleteMatcher()

    async def resolve_nearest(self, latitude: float, longitude: float) -> NearestCity:
        """Return the catalog city closest to a coordinate.

        Args:
            latitude: Latitude in degrees.
            longitude: Longitude in degrees.

        Returns:
            The nearest city and its distance in kilometres.

        Raises:
            InvalidCoordinatesError: If the coordinates are unusable.
            NoCitiesAvailableError: If the catalog is empty.
            CatalogUnavailableError: If the catalog could never be fetched.
        """
        # Checked before the cache so bad input never triggers an upstream fetch.
        validate_coordinates(latitude, longitude)
        snapshot = await self.cache.get()
        nearest = self.nearest_resolver.resolve(snapshot, latitude, longitude)
        logger.info(
            "NEAREST_CITY_RESOLVED",
            city=nearest.record.name,
            distance_km=nearest.distance_km,
        )
        return nearest

    async def autocomplete(self, query: str) -> list[CityRecord]:
        """Return up to ten catalog cities matching a partial query.

        Args:
            query: Raw search term.

        Returns:
            Matching records in catalog order; empty for queries shorter
            than two characters.
        """
        if not is_searchable(normalize_query(query)):
            return []
        snapshot = await self.cache.get()
        matches = self.matcher.match(snapshot, query)
        logger.info("AUTOCOMPLETE_MATCHED", term=query, matches=len(matches))
        return [match.record for match in matches]
