"""Public API for converting classic ArcGIS story maps into StoryMaps documents.

This facade exposes the conversion pipeline, its settings, the document
model it produces and the template classifier. Portal collaborators live in
:mod:`ClassicToStoryMaps.collaborators` so the core stays free of network
access.
"""

from __future__ import annotations

__version__ = "0.4.0"

from .builder import DocumentBuilder
from .cancellation import CancellationToken
from .classifier import TemplateFamily, detect_template
from .document import Action, Document, Node, NodeKind, Resource, ResourceKind, StoryMeta
from .errors import (
    BuilderInvariantError,
    ConversionCancelled,
    ConversionError,
    ConversionWarning,
    EnrichmentFailure,
    MetadataFetchError,
    TransferFailure,
    UnsupportedTemplateError,
    ValidationFailure,
)
from .media import TransferOutcome
from .pipeline import ConversionContext, ConversionPipeline, ConversionResult, ProgressEvent
from .settings import ArcGISSettings, ConverterSettings, Settings, ThemeChoice
from .validation import ValidationReport, validate_document

__all__ = [
    "__version__",
    "Action",
    "ArcGISSettings",
    "BuilderInvariantError",
    "CancellationToken",
    "ConversionCancelled",
    "ConversionContext",
    "ConversionError",
    "ConversionPipeline",
    "ConversionResult",
    "ConversionWarning",
    "ConverterSettings",
    "Document",
    "DocumentBuilder",
    "EnrichmentFailure",
    "MetadataFetchError",
    "Node",
    "NodeKind",
    "ProgressEvent",
    "Resource",
    "ResourceKind",
    "Settings",
    "StoryMeta",
    "TemplateFamily",
    "ThemeChoice",
    "TransferFailure",
    "TransferOutcome",
    "UnsupportedTemplateError",
    "ValidationFailure",
    "ValidationReport",
    "detect_template",
    "validate_document",
]
