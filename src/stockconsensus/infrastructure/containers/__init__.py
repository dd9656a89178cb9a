"""Dependency injection container."""

from stockconsensus.infrastructure.containers.container import (
    Container,
    get_container,
    reset_container,
    set_container,
)

__all__ = ["Container", "get_container", "reset_container", "set_container"]
