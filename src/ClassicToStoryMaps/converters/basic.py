"""Fallback converter for Shortlist, Crowdsource, Basic and unrecognised stories."""

from __future__ import annotations

from ..classic import MediaView, get_str
from ..classifier import TemplateFamily
from ..segmenter import has_visible_content
from .base import BaseConverter

__all__ = ["BasicConverter"]


class BasicConverter(BaseConverter):
    """Cover, an optional description block, and an optional primary web map."""

    family = TemplateFamily.BASIC
    classic_type = "Basic"

    def extract_structure(self) -> None:
        self.emit(f"{self.classic_type}: no family-specific structure; using basic layout")

    def convert_content(self) -> None:
        self.build_scaffold()
        description = get_str(self.values, "description")
        self.builder.set_story_meta(self.title, description or self.subtitle)
        if has_visible_content(description):
            self.builder.append_to_root(self.builder.create_rich_text_node(description))
        webmap = get_str(self.values, "webmap")
        if webmap:
            node_id = self.media.webmap(MediaView(kind="webmap", item_id=webmap))
            self.builder.append_to_root(node_id)
        self.record_metadata({"templateVersion": self.template_version()})
