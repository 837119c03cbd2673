"""Routers package."""

from . import (
    health,
    pet,
    submissions,
    analysis,
)
