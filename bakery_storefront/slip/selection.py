"""Tracks which slip is currently selected at checkout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..models import SlipValidationResult, UploadedSlipImage


@dataclass
class SlipSelection:
    """Current slip plus its verdict.

    Each selection gets a ticket from a monotonic counter; a verdict is only
    applied if its ticket is still current, so a slow validation of a
    replaced or removed file never lands.
    """

    image: Optional[UploadedSlipImage] = None
    result: Optional[SlipValidationResult] = None
    _counter: int = field(default=0, repr=False)
    _pending: Optional[int] = field(default=None, repr=False)

    def select(self, image: UploadedSlipImage) -> int:
        self._counter += 1
        self.image = image
        self.result = None
        self._pending = self._counter
        return self._counter

    def apply(self, ticket: int, result: SlipValidationResult) -> bool:
        """Record ``result`` for ``ticket``; returns False if the ticket went stale."""
        if ticket != self._counter or self.image is None:
            return False
        self.result = result
        self._pending = None
        return True

    def remove(self) -> None:
        """Drop the selection and its bytes; in-flight verdicts become stale."""
        self._counter += 1
        self.image = None
        self.result = None
        self._pending = None

    @property
    def validating(self) -> bool:
        return self._pending is not None

    @property
    def valid(self) -> bool:
        return (
            self.image is not None
            and not self.validating
            and self.result is not None
            and self.result.valid
        )

    @property
    def reason(self) -> Optional[str]:
        return self.result.reason if self.result else None


__all__ = ["SlipSelection"]
