"""Base classes for domain models."""

from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable value object. Equality is structural."""

    model_config = ConfigDict(frozen=True)


class Entity(BaseModel):
    """Mutable domain object."""

    model_config = ConfigDict(validate_assignment=True)
