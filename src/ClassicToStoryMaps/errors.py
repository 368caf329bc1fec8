# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.errors",
#   "purpose": "Define the exception hierarchy used across classification, conversion, transfer, and validation",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "builder", "name": "Structural Errors", "anchor": "BLD", "kind": "api"},
#     {"id": "collaborators", "name": "Transfer & Enrichment Failures", "anchor": "COL", "kind": "api"},
#     {"id": "validation", "name": "Validation Errors", "anchor": "VAL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
"""Exception hierarchy shared across classification, conversion, and validation.

A conversion moves through a pure construction pass, two network-bound passes
(media transfer and map enrichment), and a final validation pass. Each pass has
its own failure mode: structural violations inside the builder are programmer
errors and abort immediately, per-item collaborator failures are recoverable,
cancellation is distinct from failure, and validation failures carry a
structured report so callers can tell which invariant broke.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .validation import ValidationReport

__all__ = [
    "ConversionError",
    "BuilderInvariantError",
    "ConversionCancelled",
    "UnsupportedTemplateError",
    "TransferFailure",
    "EnrichmentFailure",
    "MetadataFetchError",
    "ValidationFailure",
    "ConversionWarning",
    "CANCELLED_MESSAGE",
]

CANCELLED_MESSAGE = "Conversion cancelled by user intervention"


class ConversionError(RuntimeError):
    """Base exception for classic story conversion failures."""


class BuilderInvariantError(ConversionError):
    """Raised when a builder operation would break the document graph structure."""


class ConversionCancelled(ConversionError):
    """Raised at a checkpoint once the caller has requested cancellation."""

    def __init__(self, message: str = CANCELLED_MESSAGE, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class UnsupportedTemplateError(ConversionError):
    """Raised when a caller forces a template family no converter handles."""


class TransferFailure(ConversionError):
    """Raised by a transfer collaborator when a media URL cannot be relocated."""

    def __init__(self, message: str, *, url: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.url = url
        self.retryable = retryable


class EnrichmentFailure(ConversionError):
    """Raised when map or scene metadata cannot be fetched or interpreted."""

    def __init__(self, message: str, *, item_id: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.item_id = item_id
        self.retryable = retryable


class MetadataFetchError(EnrichmentFailure):
    """Raised by the portal client when an item data request fails."""

    def __init__(
        self,
        message: str,
        *,
        item_id: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, item_id=item_id, retryable=retryable)
        self.status_code = status_code


class ValidationFailure(ConversionError):
    """Raised when the produced document fails post-conversion validation."""

    def __init__(self, report: "ValidationReport") -> None:
        codes = sorted({issue.code for issue in report.issues})
        super().__init__(
            f"Document failed validation with {len(report.issues)} issue(s): {', '.join(codes)}"
        )
        self.report = report


@dataclass(frozen=True)
class ConversionWarning:
    """A recoverable per-item failure surfaced to the caller."""

    stage: str
    code: str
    message: str
    subject: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"stage": self.stage, "code": self.code, "message": self.message, "subject": self.subject}
