"""Animal DTO, the entity held by the canonical collection.

The backend speaks camelCase JSON with a Mongo-style ``_id``. Models accept
both the wire names and the Python field names, and keep any field they do
not declare so nothing the backend sends is lost on a round trip.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnimalImage(BaseModel):
    """Uploaded image reference (full size and thumbnail URLs)."""

    full: str
    thumb: str
    uploaded_at: datetime | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Animal(BaseModel):
    """A farm animal as returned by ``GET /api/animals``."""

    id: str = Field(..., alias="_id", min_length=1, description="Stable unique identifier")
    tag_id: str | None = Field(None, description="Ear tag, unique per farm")
    name: str | None = None
    species: str | None = None
    breed: str | None = None
    gender: str | None = None
    status: str | None = Field(None, description="Alive, Dead, Sold or Quarantined")
    dob: datetime | None = None
    color: str | None = None
    origin: str | None = None

    location: str | dict[str, Any] | None = Field(
        None,
        description="Location id, or the populated location document",
    )
    paddock: str | None = None
    is_archived: bool = False

    current_weight: float = 0
    projected_max_weight: float = 0

    # Financial tracking
    purchase_cost: float = 0
    margin_percent: float = 30
    projected_sales_price: float = 0
    total_feed_cost: float = 0
    total_medication_cost: float = 0

    images: list[AnimalImage] = Field(default_factory=list)
    notes: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    @classmethod
    def wire_name(cls, name: str) -> str:
        """Map a Python field name to its wire alias; unknown names pass through."""
        field = cls.model_fields.get(name)
        if field is None:
            return name
        if field.alias:
            return field.alias
        generator = cls.model_config.get("alias_generator")
        return generator(name) if callable(generator) else name

    def merged(self, fields: Mapping[str, Any]) -> "Animal":
        """Return a copy with ``fields`` shallow-merged over this animal.

        Fields present in ``fields`` overwrite, every other field is kept.
        Keys may use either Python or wire names.

        Raises:
            ValueError: If ``fields`` tries to change the identifier
            pydantic.ValidationError: If a merged value is invalid
        """
        data = self.model_dump(by_alias=True)
        for name, value in fields.items():
            wire = self.wire_name(name)
            if wire == "_id" and value != self.id:
                raise ValueError(f"Cannot change animal identifier {self.id!r} to {value!r}")
            data[wire] = value
        return type(self).model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to the backend's JSON shape."""
        return self.model_dump(by_alias=True, mode="json")
