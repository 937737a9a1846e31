"""Tracing and logging setup."""

from .config import setup_observability
from .middleware import add_observability_middleware

__all__ = ["setup_observability", "add_observability_middleware"]
