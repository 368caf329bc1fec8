# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.converters.swipe",
#   "purpose": "Convert Swipe/Spyglass stories into a swipe block over minimal map resources",
#   "sections": [
#     {"id": "sanitize-side-panel", "name": "sanitize_side_panel", "anchor": "function-sanitize-side-panel", "kind": "function"},
#     {"id": "swipeconverter", "name": "SwipeConverter", "anchor": "class-swipeconverter", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""
Swipe converter.

The classic app compares either two web maps (``TWO_WEBMAPS``) or one web map
with some layers toggled (``TWO_LAYERS``). Both become a single ``swipe`` node
whose two contents are ``webmap`` nodes. An optional side-panel description is
kept as a rich-text block ahead of the swipe, with inline styles removed and
reported as custom CSS.
"""

from __future__ import annotations

import logging
from typing import Any, List, Tuple

from bs4 import BeautifulSoup

from ..classic import get_str
from ..classifier import TemplateFamily
from ..media_nodes import build_swipe_block
from ..segmenter import has_visible_content
from .base import BaseConverter

LOGGER = logging.getLogger(__name__)

__all__ = ["SwipeConverter", "sanitize_side_panel"]

_ALLOWED_TAGS = {"p", "br", "strong", "b", "em", "i", "u", "a", "ul", "ol", "li"}
_GENERIC_TITLES = {"swipe", "spyglass"}


def sanitize_side_panel(html: str) -> Tuple[str, List[str]]:
    """Keep basic inline markup, drop other tags and attributes.

    Returns:
        Tuple of the sanitised markup and the inline ``style`` values removed.
    """

    soup = BeautifulSoup(html, "html.parser")
    styles: List[str] = []
    for element in soup.find_all(True):
        style = element.get("style")
        if style:
            styles.append(str(style).strip())
        if element.name not in _ALLOWED_TAGS:
            element.unwrap()
            continue
        href = element.get("href") if element.name == "a" else None
        element.attrs = {"href": href} if href else {}
    return str(soup).strip(), styles


class SwipeConverter(BaseConverter):
    family = TemplateFamily.SWIPE
    classic_type = "Swipe"

    def __init__(self, document, **kwargs: Any) -> None:
        super().__init__(document, **kwargs)
        self.layout = "swipe"
        self.data_model = "TWO_WEBMAPS"

    @property
    def title(self) -> str:
        title = get_str(self.values, "title").strip()
        if not title or title.lower() in _GENERIC_TITLES:
            title = get_str(self.values, "name").strip()
        return title or "Swipe"

    def extract_structure(self) -> None:
        if "spyglass" in get_str(self.values, "layout").lower():
            self.layout = "spyglass"
        self.data_model = get_str(self.values, "dataModel").upper() or "TWO_WEBMAPS"
        self.emit(f"{self.classic_type}: model={self.data_model}, layout={self.layout}")

    def convert_content(self) -> None:
        self.build_scaffold()
        self.builder.set_story_meta(self.title, get_str(self.values, "description") or self.subtitle)

        description = get_str(self.values, "sidePanelDescription").strip()
        if has_visible_content(description):
            if "<" in description:
                markup, styles = sanitize_side_panel(description)
                if styles:
                    self.record_metadata(
                        {"mappingDecisions": {"customCss": {"blockCount": len(styles), "combined": "\n".join(styles)}}}
                    )
                self.builder.append_to_root(self.builder.create_rich_text_node(markup))
            else:
                self.builder.append_to_root(self.builder.create_text_node(description))

        swipe_id = build_swipe_block(self.builder, self.document)
        if swipe_id is None:
            LOGGER.warning(
                "Swipe story declares no web map",
                extra={"extra_fields": {"data_model": self.data_model}},
            )
        else:
            self.builder.update_node_data(swipe_id, {"swipeType": self.layout})
            self.builder.append_to_root(swipe_id)
        self.record_metadata(
            {
                "templateVersion": self.template_version(),
                "swipe": {"dataModel": self.data_model, "layout": self.layout},
            }
        )
