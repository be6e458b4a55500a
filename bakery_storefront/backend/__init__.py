"""HTTP access to the remote bakery backend."""

from __future__ import annotations

from ..errors import BackendAPIError
from .client import BackendClient, BackendResult

__all__ = ["BackendAPIError", "BackendClient", "BackendResult"]
