# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.converters.base",
#   "purpose": "Four-phase converter skeleton shared by every template family",
#   "sections": [
#     {"id": "converteroutput", "name": "ConverterOutput", "anchor": "class-converteroutput", "kind": "class"},
#     {"id": "baseconverter", "name": "BaseConverter", "anchor": "class-baseconverter", "kind": "class"},
#     {"id": "panel-size", "name": "normalize_panel_size", "anchor": "function-normalize-panel-size", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""
Base converter.

Every template family converts through the same fixed sequence of phases:

1. ``extract_structure``: read the classic document into converter state;
2. ``convert_content``: drive the :class:`~ClassicToStoryMaps.builder.DocumentBuilder`;
3. ``apply_theme``: map legacy colors/fonts onto the theme resource;
4. ``collect_media``: return the external media URLs to relocate.

The cancellation token is checked before each phase and once more before the
graph is finalised. Phases report progress through the injected
``progress(stage, message)`` callback.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional

from ..builder import DocumentBuilder
from ..cancellation import CancellationToken, CancelPredicate, coerce_token
from ..classic import get_str, unwrap_values
from ..classifier import TemplateFamily
from ..document import Document
from ..media_nodes import MediaCollector, MediaNodeFactory
from ..settings import ThemeChoice
from ..theme import ThemeMapping, map_theme

LOGGER = logging.getLogger(__name__)

__all__ = ["BaseConverter", "ConverterOutput", "ProgressCallback", "normalize_panel_size"]

ProgressCallback = Callable[[str, str], None]

_PANEL_SIZES = {"small": "small", "medium": "medium", "large": "large", "wide": "large"}


def normalize_panel_size(value: Any, default: str = "medium") -> str:
    """Map a classic panel size onto ``small``/``medium``/``large``."""

    if not isinstance(value, str):
        return default
    return _PANEL_SIZES.get(value.strip().lower(), default)


@dataclass
class ConverterOutput:
    """A finalised document plus the external media URLs it references."""

    document: Document
    media_urls: List[str] = field(default_factory=list)
    style_blocks: List[str] = field(default_factory=list)


class BaseConverter(ABC):
    """Template-family converter driving one :class:`DocumentBuilder`."""

    family: ClassVar[TemplateFamily] = TemplateFamily.BASIC
    classic_type: str = "Basic"

    def __init__(
        self,
        document: Mapping[str, Any],
        *,
        theme: ThemeChoice = ThemeChoice.AUTO,
        suppress_metadata: bool = False,
        embedded_documents: Optional[Mapping[str, Any]] = None,
        cancel: "CancellationToken | CancelPredicate | None" = None,
        progress: Optional[ProgressCallback] = None,
        max_custom_css_chars: int = 6000,
        seed: Optional[int] = None,
        classic_type: Optional[str] = None,
    ) -> None:
        self.document = document
        if classic_type:
            self.classic_type = classic_type
        self.values: Dict[str, Any] = unwrap_values(document)
        self.theme_choice = ThemeChoice(theme)
        self.max_custom_css_chars = max_custom_css_chars
        self.token = coerce_token(cancel)
        self._progress = progress
        self.builder = DocumentBuilder(suppress_metadata=suppress_metadata, seed=seed)
        self.collector = MediaCollector()
        self.media = MediaNodeFactory(
            self.builder, self.collector, embedded_documents=embedded_documents
        )
        self.style_blocks: List[str] = []

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def convert(self) -> ConverterOutput:
        """Run the four phases and return the finalised document."""

        phases = (
            ("extract", self.extract_structure),
            ("convert", self.convert_content),
            ("theme", self.apply_theme),
        )
        for name, phase in phases:
            self.token.raise_if_cancelled(stage=name)
            phase()
        self.token.raise_if_cancelled(stage="collect")
        urls = self.collect_media()
        self.token.raise_if_cancelled(stage="finalize")
        document = self.builder.finalize()
        self.emit(
            f"{self.classic_type}: finalized {len(document.nodes)} node(s), "
            f"{len(document.resources)} resource(s), {len(urls)} media URL(s)"
        )
        return ConverterOutput(document=document, media_urls=urls, style_blocks=list(self.style_blocks))

    def emit(self, message: str) -> None:
        LOGGER.debug(message, extra={"extra_fields": {"template": self.family.value}})
        if self._progress is not None:
            self._progress("convert", message)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    @abstractmethod
    def extract_structure(self) -> None:
        """Read the classic document into converter state."""

    @abstractmethod
    def convert_content(self) -> None:
        """Build the node graph."""

    def apply_theme(self) -> None:
        mapping = self.map_theme()
        self.builder.apply_theme(mapping.base_theme_id, mapping.variables)
        self.record_metadata({"mappingDecisions": mapping.decisions})
        self.emit(
            f"{self.classic_type}: theme {mapping.base_theme_id} "
            f"with {len(mapping.variables)} override(s)"
        )

    def collect_media(self) -> List[str]:
        return self.collector.urls

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def map_theme(self) -> ThemeMapping:
        return map_theme(self.values, self.theme_choice)

    @property
    def title(self) -> str:
        return get_str(self.values, "title") or "Untitled Story"

    @property
    def subtitle(self) -> str:
        return get_str(self.values, "subtitle")

    def template_version(self) -> Optional[str]:
        return (
            get_str(self.document, "version")
            or get_str(self.values, "version")
            or get_str(self.values, "templateVersion")
            or None
        )

    def build_scaffold(self) -> str:
        """Create root, cover, hidden navigation and credits; return the root id."""

        root_id = self.builder.create_story_root()
        self.builder.add_cover(self.title, self.subtitle)
        self.builder.add_hidden_navigation()
        self.builder.add_credits()
        return root_id

    def record_metadata(self, classic_metadata: Mapping[str, Any], **extra: Any) -> None:
        payload: Dict[str, Any] = {"classicMetadata": dict(classic_metadata)}
        payload.update({key: value for key, value in extra.items() if value is not None})
        self.builder.add_converter_metadata(self.classic_type, payload)
