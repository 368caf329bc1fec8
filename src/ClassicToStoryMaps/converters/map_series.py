"""Map Series converter: every entry becomes one slide of a single sidecar."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..classic import MediaView, get_list, get_mapping, get_str
from ..classifier import TemplateFamily
from ..segmenter import has_visible_content
from .base import BaseConverter, normalize_panel_size

LOGGER = logging.getLogger(__name__)

__all__ = ["MapSeriesConverter"]


class MapSeriesConverter(BaseConverter):
    family = TemplateFamily.MAP_SERIES
    classic_type = "MapSeries"

    def __init__(self, document, **kwargs: Any) -> None:
        super().__init__(document, **kwargs)
        self.entries: List[Dict[str, Any]] = []
        self.layout: Dict[str, str] = {}

    def extract_structure(self) -> None:
        raw = get_list(self.values, "story", "entries") or get_list(self.values, "story", "sections")
        self.entries = [dict(entry) for entry in raw if isinstance(entry, dict)]
        panel = get_mapping(self.values, "settings", "layoutOptions", "panel")
        position = get_str(panel, "position")
        self.layout = {
            "classicLayoutId": get_str(self.values, "settings", "layout", "id") or "tab",
            "classicPosition": position,
            "classicSize": get_str(panel, "size"),
            "mappedNarrativePanelPosition": "start" if position == "left" else "end",
            "mappedNarrativePanelSize": normalize_panel_size(get_str(panel, "size")),
        }
        self.emit(f"{self.classic_type}: {len(self.entries)} entr(ies)")

    def convert_content(self) -> None:
        self.build_scaffold()
        self.builder.set_story_meta(self.title, get_str(self.values, "description") or self.subtitle)
        scaffold = self.builder.add_sidecar_scaffold(
            "docked-panel",
            self.layout["mappedNarrativePanelPosition"],
            self.layout["mappedNarrativePanelSize"],
        )
        for index, entry in enumerate(self.entries):
            self.token.raise_if_cancelled(stage="convert")
            title = get_str(entry, "title") or f"Entry {index + 1}"
            narrative = [self.builder.create_text_node(title, "h3")]
            description = get_str(entry, "description") or get_str(entry, "content")
            if has_visible_content(description):
                narrative.append(self.builder.create_rich_text_node(description))
            media_id = self.media.from_view(MediaView.from_raw(entry.get("media")), section_title=title)
            self.builder.add_slide_to_sidecar(scaffold.container_id, narrative, media_id)
        self.builder.remove_node(scaffold.slide_id)
        self.builder.remove_node(scaffold.narrative_id)
        self.record_metadata(
            {
                "templateVersion": self.template_version(),
                "entryCount": len(self.entries),
                "layoutMapping": dict(self.layout),
            }
        )
        self.emit(f"{self.classic_type}: built {len(self.entries)} slide(s)")
