"""City catalog models."""

from pydantic import BaseModel, ConfigDict, Field


class CityRecord(BaseModel):
    """One entry of the city catalog."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    name: str = Field(min_length=1)
    region: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    is_urban: bool = False
    is_popular: bool = False

    @classmethod
    def from_api_response(cls, api_data: dict) -> "CityRecord":
        """Create a CityRecord from one upstream catalog entry.

        Args:
            api_data: Raw city dict as returned by the content service.

        Returns:
            A validated CityRecord.
        """
        return cls(
            id=api_data["ID"],
            name=api_data["title"],
            region=api_data["state"],
            latitude=api_data["latitude"],
            longitude=api_data["longitude"],
            is_urban=api_data.get("isUrban") or False,
            is_popular=api_data.get("isPopular") or False,
        )


class CatalogSnapshot(BaseModel):
    """An immutable copy of the catalog as fetched at one point in time."""

    model_config = ConfigDict(frozen=True)

    records: tuple[CityRecord, ...]
    fetched_at: float

    @property
    def is_empty(self) -> bool:
        return not self.records
