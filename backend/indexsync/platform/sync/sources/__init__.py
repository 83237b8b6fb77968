"""Event sources feeding lifecycle notifications into a synchronizer."""

from .orm import SQLAlchemyEventSource

__all__ = ["SQLAlchemyEventSource"]
