# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.converters.map_journal",
#   "purpose": "Convert Map Journal and Cascade stories into a single sidecar with deferred action wiring",
#   "sections": [
#     {"id": "sectionstate", "name": "_SectionState", "anchor": "class-sectionstate", "kind": "class"},
#     {"id": "mapjournalconverter", "name": "MapJournalConverter", "anchor": "class-mapjournalconverter", "kind": "class"},
#     {"id": "cascadeconverter", "name": "CascadeConverter", "anchor": "class-cascadeconverter", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""
Map Journal converter.

Each classic section becomes one slide of a single immersive sidecar: an
``h3`` heading plus the segmented narrative in the panel, and the section's
primary media on the stage. Action anchors found by the segmenter are wired
after every section exists:

- navigate buttons link to ``#ref-<heading id>`` of the target section;
- inline navigate anchors get the same ``href`` patched into their markup;
- media buttons get a replacement media node added to their slide and a
  ``ImmersiveSlide_ReplaceMedia`` action.

Cascade stories share the section model and route through the same code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..builder import SidecarScaffold
from ..classic import SectionView, get_list, get_mapping, get_path, get_str
from ..classifier import TemplateFamily
from ..document import NodeKind
from ..geometry import viewpoint_for_extent
from ..segmenter import (
    InlineNavigateStub,
    MediaActionStub,
    NarrativeSegmenter,
    NavigateButtonStub,
    patch_inline_anchor,
)
from ..theme import summarize_custom_css
from .base import BaseConverter, normalize_panel_size

LOGGER = logging.getLogger(__name__)

__all__ = ["CascadeConverter", "MapJournalConverter"]


@dataclass
class _SectionState:
    view: SectionView
    heading_id: Optional[str] = None
    slide_id: Optional[str] = None
    stage_media_id: Optional[str] = None
    media_stubs: List[MediaActionStub] = field(default_factory=list)


class MapJournalConverter(BaseConverter):
    """Sections to sidecar slides, with navigate and media-swap resolution."""

    family = TemplateFamily.MAP_JOURNAL
    classic_type = "MapJournal"

    def __init__(self, document, **kwargs: Any) -> None:
        super().__init__(document, **kwargs)
        self.sections: List[_SectionState] = []
        self.navigate_buttons: List[NavigateButtonStub] = []
        self.inline_navigates: List[InlineNavigateStub] = []
        self.narrative_panels: List[str] = []
        self.layout: Dict[str, str] = {}
        self.scaffold: Optional[SidecarScaffold] = None

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    def extract_structure(self) -> None:
        raw_sections = get_list(self.values, "story", "sections") or get_list(self.values, "sections")
        self.sections = [_SectionState(SectionView.from_raw(raw)) for raw in raw_sections]

        layout_id = get_str(self.values, "settings", "layout", "id") or "side"
        layout_cfg = get_mapping(self.values, "settings", "layoutOptions", "layoutCfg")
        classic_size = get_str(layout_cfg, "size") or "medium"
        classic_position = get_str(layout_cfg, "position") or "right"
        self.layout = {
            "classicLayoutId": layout_id,
            "classicSize": classic_size,
            "classicPosition": classic_position,
            "mappedSubtype": "floating-panel" if layout_id == "float" else "docked-panel",
            "mappedNarrativePanelSize": normalize_panel_size(classic_size),
            "mappedNarrativePanelPosition": "start" if classic_position == "left" else "end",
        }
        self.emit(f"{self.classic_type}: {len(self.sections)} section(s), layout={layout_id}")

    # ------------------------------------------------------------------
    # Phase 2
    # ------------------------------------------------------------------

    def convert_content(self) -> None:
        self.build_scaffold()
        description = get_str(self.values, "description") or self.subtitle
        self.builder.set_story_meta(self.title, description.strip())

        self.scaffold = self.builder.add_sidecar_scaffold(
            self.layout["mappedSubtype"],
            self.layout["mappedNarrativePanelPosition"],
            self.layout["mappedNarrativePanelSize"],
        )
        container_id = self.scaffold.container_id

        intro = get_str(self.values, "description")
        if intro:
            intro_id = self.builder.create_text_node(intro, "paragraph")
            ref = self.builder.add_slide_to_sidecar(container_id, [intro_id])
            self.narrative_panels.append(ref.narrative_id)

        segmenter = NarrativeSegmenter(self.builder, self.media)
        for index, state in enumerate(self.sections):
            self.token.raise_if_cancelled(stage="convert")
            self._build_section(index, state, segmenter)

        self.builder.remove_node(self.scaffold.slide_id)
        self.builder.remove_node(self.scaffold.narrative_id)

        self._resolve_media_actions()
        self._resolve_navigation()
        self.emit(
            f"{self.classic_type}: built {len(self.sections)} slide(s); "
            f"{len(self.navigate_buttons)} navigate button(s), "
            f"{len(self.inline_navigates)} inline link(s)"
        )

    def _build_section(self, index: int, state: _SectionState, segmenter: NarrativeSegmenter) -> None:
        view = state.view
        narrative: List[str] = []
        if view.title:
            state.heading_id = self.builder.create_text_node(view.title, "h3")
            narrative.append(state.heading_id)

        if view.content.strip():
            result = segmenter.segment(view.content)
            narrative.extend(result.node_ids)
            state.media_stubs.extend(result.media_stubs)
            self.navigate_buttons.extend(result.navigate_buttons)
            self.inline_navigates.extend(result.inline_navigates)
            self.style_blocks.extend(result.style_blocks)

        state.stage_media_id = self.media.from_view(view.media, section_title=view.title)
        ref = self.builder.add_slide_to_sidecar(
            self.scaffold.container_id, narrative, state.stage_media_id
        )
        state.slide_id = ref.slide_id
        self.narrative_panels.append(ref.narrative_id)
        LOGGER.debug(
            "Built journal section",
            extra={"extra_fields": {"section": index, "narrative_nodes": len(narrative)}},
        )

    # ------------------------------------------------------------------
    # Deferred resolution
    # ------------------------------------------------------------------

    def _resolve_media_actions(self) -> None:
        for state in self.sections:
            for stub in state.media_stubs:
                action = state.view.action(stub.action_id)
                if action is None or action.media is None:
                    LOGGER.debug(
                        "Media action has no usable replacement media",
                        extra={"extra_fields": {"action_id": stub.action_id}},
                    )
                    continue
                media_id = self.media.from_view(action.media, image_size="standard")
                if media_id is None:
                    continue
                slide = self.builder.get_node(state.slide_id)
                if media_id not in (slide.children or []):
                    self.builder.add_child(state.slide_id, media_id)
                self._align_swipe(media_id, state.stage_media_id)
                self.builder.register_replace_media_action(stub.button_node_id, state.slide_id, media_id)

    def _align_swipe(self, media_id: str, stage_media_id: Optional[str]) -> None:
        """Give an inline swipe's maps the stage map's extent when they have none."""

        swipe = self.builder.get_node(media_id)
        if swipe.kind is not NodeKind.SWIPE or not stage_media_id:
            return
        stage_extent = get_path(self.builder.get_node(stage_media_id).data, "extent")
        if not isinstance(stage_extent, dict):
            return
        placement = viewpoint_for_extent(stage_extent)
        for content_id in get_mapping(swipe.data, "contents").values():
            data = self.builder.update_node_data(content_id, {})
            data.setdefault("extent", stage_extent)
            if "viewpoint" in placement:
                data.setdefault("viewpoint", placement["viewpoint"])
            data.setdefault("viewPlacement", "extent")

    def _navigate_targets(self) -> Dict[str, str]:
        """Map navigate action ids to the heading node of their target section."""

        targets: Dict[str, str] = {}
        for state in self.sections:
            for action in state.view.actions:
                if action.type != "navigate" or action.index is None:
                    continue
                if 0 <= action.index < len(self.sections):
                    heading = self.sections[action.index].heading_id
                    if heading:
                        targets[action.id] = heading
        return targets

    def _resolve_navigation(self) -> None:
        targets = self._navigate_targets()
        for stub in self.navigate_buttons:
            heading = targets.get(stub.action_id)
            if heading:
                self.builder.set_button_link(stub.button_node_id, f"#ref-{heading}")
        for stub in self.inline_navigates:
            heading = targets.get(stub.action_id)
            if not heading or not stub.rich_node_id:
                continue
            data = self.builder.update_node_data(stub.rich_node_id, {})
            if data.get("preserveHtml"):
                data["text"] = patch_inline_anchor(data.get("text", ""), stub.action_id, f"#ref-{heading}")

    # ------------------------------------------------------------------
    # Phase 3
    # ------------------------------------------------------------------

    def apply_theme(self) -> None:
        classic_theme = get_mapping(self.values, "settings", "theme")
        if not classic_theme and self.layout["classicLayoutId"] == "float":
            self._apply_float_fallback()
            return

        mapping = self.map_theme()
        decisions: Dict[str, Any] = dict(mapping.decisions)
        decisions["layoutMapping"] = dict(self.layout)
        custom_css = summarize_custom_css(self.style_blocks, self.max_custom_css_chars)
        if custom_css:
            decisions["customCss"] = custom_css
        decisions["videoEmbeds"] = self.media.video_embeds
        self.builder.apply_theme(mapping.base_theme_id, mapping.variables)
        self._record(classic_theme or None, decisions)
        self.emit(
            f"{self.classic_type}: theme {mapping.base_theme_id} "
            f"with {len(mapping.variables)} override(s)"
        )

    def _apply_float_fallback(self) -> None:
        for narrative_id in self.narrative_panels:
            self.builder.update_node_data(narrative_id, {"position": "end", "size": "medium"})
        if self.scaffold is not None:
            self.builder.update_node_data(
                self.scaffold.container_id,
                {"narrativePanelPosition": "end", "narrativePanelSize": "medium"},
            )
        mapping = self.map_theme()
        base = "obsidian" if self.theme_choice.value == "auto" else mapping.base_theme_id
        self.builder.apply_theme(base, {})
        layout = dict(self.layout)
        layout.update({"mappedNarrativePanelSize": "medium", "mappedNarrativePanelPosition": "end"})
        decisions = {
            "baseThemeId": base,
            "forcedByMissingClassicTheme": True,
            "variableOverridesApplied": [],
            "layoutMapping": layout,
            "videoEmbeds": self.media.video_embeds,
        }
        self._record(None, decisions)
        self.emit(f"{self.classic_type}: no classic theme on float layout; applied {base}")

    def _record(self, classic_theme: Optional[Dict[str, Any]], decisions: Dict[str, Any]) -> None:
        self.record_metadata(
            {
                "classicTheme": classic_theme,
                "mappingDecisions": decisions,
                "templateVersion": self.template_version(),
            },
            classicTemplateCreation=get_str(self.values, "templateCreation") or None,
            classicTemplateLastEdit=get_str(self.values, "templateLastEdit") or None,
        )


class CascadeConverter(MapJournalConverter):
    """Cascade sections share the journal section model."""

    family = TemplateFamily.CASCADE
    classic_type = "Cascade"
