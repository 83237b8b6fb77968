"""Builders wiring listeners together."""

from .listener import Listener, ListenerBuilder

__all__ = ["Listener", "ListenerBuilder"]
