"""Response payloads for the location endpoints."""

from pydantic import BaseModel

from app.models.city import CityRecord


class CitySuggestion(BaseModel):
    """Autocomplete entry in the shape the site front-end expects."""

    id: int | str
    city: str
    state: str
    isUrban: bool
    isPopular: bool
    longitude: float
    latitude: float

    @classmethod
    def from_record(cls, record: CityRecord) -> "CitySuggestion":
        return cls(
            id=record.id,
            city=record.name,
            state=record.region,
            isUrban=record.is_urban,
            isPopular=record.is_popular,
            longitude=record.longitude,
            latitude=record.latitude,
        )


class AutocompleteResponse(BaseModel):
    """Payload for GET /location/autocomplete."""

    suggestions: list[CitySuggestion]
    timestamp: int | None = None


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class DetectResponse(BaseModel):
    """Payload for GET /location/detect."""

    city: str
    state: str
    distance: float
    coordinates: Coordinates
