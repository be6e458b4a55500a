"""Slip models - the uploaded transfer slip and its validation verdict"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


def _infer_mime_type(path: Path, default: str = "application/octet-stream") -> str:
    """Guess the MIME type from the file extension."""
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or default


@dataclass(frozen=True)
class UploadedSlipImage:
    """A slip picked by the user; lives only for the checkout session"""

    content: bytes
    content_type: str = ""
    filename: str = "slip"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "UploadedSlipImage":
        resolved = Path(path).expanduser()
        return cls(
            content=resolved.read_bytes(),
            content_type=content_type or _infer_mime_type(resolved),
            filename=resolved.name,
        )


@dataclass(frozen=True)
class SlipValidationResult:
    """Outcome of checking a slip; ``reason`` is set only for rejections"""

    valid: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "SlipValidationResult":
        return cls(valid=True)

    @classmethod
    def reject(cls, reason: str) -> "SlipValidationResult":
        return cls(valid=False, reason=reason)


__all__ = ["SlipValidationResult", "UploadedSlipImage"]
