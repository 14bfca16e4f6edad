import pytest

from app.models.city import CatalogSnapshot, CityRecord


def make_city(id, name, region, latitude, longitude, **kwargs):
    return CityRecord(
        id=id,
        name=name,
        region=region,
        latitude=latitude,
        longitude=longitude,
        **kwargs,
    )


@pytest.fixture
def sample_records():
    return [
        make_city(1, "Mumbai", "Maharashtra", 19.07, 72.87, is_urban=True, is_popular=True),
        make_city(2, "Pune", "Maharashtra", 18.52, 73.85, is_urban=True),
        make_city(3, "Delhi", "Delhi", 28.6, 77.2, is_popular=True),
    ]


@pytest.fixture
def sample_snapshot(sample_records):
    return CatalogSnapshot(records=tuple(sample_records), fetched_at=0.0)


@pytest.fixture
def city_factory():
    return make_city
