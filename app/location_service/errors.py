"""Exceptions raised by the location resolution service."""


class LocationServiceError(Exception):
    """Base exception for location service failures."""
    pass


class InvalidCoordinatesError(LocationServiceError):
    """Raised when a coordinate pair is non-numeric, non-finite or out of range."""
    pass


class CatalogUnavailableError(LocationServiceError):
    """Raised when no catalog snapshot has ever been fetched successfully."""
    pass


class NoCitiesAvailableError(LocationServiceError):
    """Raised when the catalog was fetched but holds no cities."""
    pass
