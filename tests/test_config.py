"""
Tests for settings validation and the Animal DTO.
"""

import pytest
from pydantic import ValidationError

from farm_sync.config import Settings
from farm_sync.dto import Animal


def test_resource_key():
    """Resource keys follow the api/<resource> convention."""
    settings = Settings(cache_key_prefix="api/")
    assert settings.resource_key("health-records") == "api/health-records"
    assert settings.resource_key("/orders/") == "api/orders"


@pytest.mark.parametrize(
    "overrides",
    [
        {"cache_default_ttl_ms": 0},
        {"backend_timeout": 0},
        {"cache_key_prefix": ""},
        {"log_level": "LOUD"},
    ],
)
def test_invalid_settings(overrides):
    """Out-of-range settings are rejected at construction."""
    with pytest.raises(ValueError):
        Settings(**overrides)


def test_animal_round_trips_wire_names():
    """Wire names in, wire names out, unknown fields preserved."""
    animal = Animal.model_validate(
        {
            "_id": "g1",
            "tagId": "GT-001",
            "class": "Doe",
            "images": [{"full": "/uploads/g1.jpg", "thumb": "/uploads/g1_t.jpg"}],
        }
    )

    wire = animal.to_wire()
    assert wire["_id"] == "g1"
    assert wire["tagId"] == "GT-001"
    assert wire["class"] == "Doe"
    assert wire["images"][0]["thumb"] == "/uploads/g1_t.jpg"


def test_animal_requires_identifier():
    """An empty identifier is invalid."""
    with pytest.raises(ValidationError):
        Animal.model_validate({"_id": "", "name": "Nameless"})


def test_merged_keeps_other_fields():
    """merged() is a shallow merge returning a new model."""
    animal = Animal.model_validate({"_id": "c1", "name": "Bessie", "currentWeight": 410})

    merged = animal.merged({"currentWeight": 425, "notes": "weighed"})

    assert merged.current_weight == 425
    assert merged.notes == "weighed"
    assert merged.name == "Bessie"
    assert animal.current_weight == 410
