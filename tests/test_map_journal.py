# === NAVMAP v1 ===
# {
#   "module": "tests.test_map_journal",
#   "purpose": "Pytest coverage for the journal converter and deferred action resolution",
#   "sections": [
#     {"id": "structure", "name": "Structure tests", "anchor": "STRUCT", "kind": "api"},
#     {"id": "navigation", "name": "Navigation resolution tests", "anchor": "NAV", "kind": "api"},
#     {"id": "theme", "name": "Theme and metadata tests", "anchor": "THEME", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""
Map Journal Converter Tests

Builds the two-section sample journal and checks the sidecar layout, the
navigate button and inline link targets, the media swap action and the
recorded provenance.

Usage:
    pytest tests/test_map_journal.py
"""

from __future__ import annotations

import pytest

from ClassicToStoryMaps.cancellation import CancellationToken
from ClassicToStoryMaps.converters import CascadeConverter, MapJournalConverter
from ClassicToStoryMaps.document import NodeKind, ResourceKind
from ClassicToStoryMaps.errors import ConversionCancelled


def _heading(document, title):
    for node in document.iter_kind(NodeKind.TEXT):
        if node.data.get("type") == "h3" and node.data.get("text") == title:
            return node.id
    raise AssertionError(f"no heading {title!r}")


def _metadata(document):
    return document.resources_of_kind(ResourceKind.CONVERTER_METADATA)[0].data


@pytest.fixture
def output(journal_document):
    return MapJournalConverter(journal_document, seed=21).convert()


def test_sidecar_replaces_placeholder_with_one_slide_per_section(output):
    document = output.document
    (container,) = document.iter_kind(NodeKind.IMMERSIVE)
    assert container.data["subtype"] == "docked-panel"
    assert container.data["narrativePanelPosition"] == "start"
    assert container.data["narrativePanelSize"] == "large"
    assert len(container.children) == 2
    for slide_id in container.children:
        slide = document.nodes[slide_id]
        assert slide.kind is NodeKind.IMMERSIVE_SLIDE
        assert document.nodes[slide.children[0]].kind is NodeKind.NARRATIVE_PANEL


def test_intro_slide_narrative_order(output):
    document = output.document
    (container,) = document.iter_kind(NodeKind.IMMERSIVE)
    slide = document.nodes[container.children[0]]
    narrative = document.nodes[slide.children[0]]
    kinds = [document.nodes[child].kind for child in narrative.children]
    assert kinds == [NodeKind.TEXT, NodeKind.TEXT, NodeKind.BUTTON]
    media = document.nodes[slide.children[1]]
    assert media.kind is NodeKind.WEBMAP
    assert media.data["map"] == "r-map0001"
    assert media.data["caption"] == "Map: Intro"
    assert media.data["legend"] == {"openByDefault": False}
    assert media.data["extent"]["spatialReference"]["wkid"] == 102100


def test_navigate_button_links_to_target_heading(output):
    document = output.document
    (button,) = document.iter_kind(NodeKind.BUTTON)
    details = _heading(document, "Details")
    assert button.data["link"] == f"#ref-{details}"
    assert button.data["text"] == "Go to details"


def test_inline_navigate_anchor_is_patched_not_a_button(output):
    document = output.document
    intro = _heading(document, "Intro")
    inline = [
        node
        for node in document.iter_kind(NodeKind.TEXT)
        if 'data-action="nav-2"' in node.data.get("text", "")
    ]
    assert len(inline) == 1
    assert f'href="#ref-{intro}"' in inline[0].data["text"]
    assert inline[0].data["preserveHtml"] is True
    assert len(list(document.iter_kind(NodeKind.BUTTON))) == 1


def test_media_action_swaps_into_section_slide(output):
    document = output.document
    (action,) = document.actions
    origin = document.nodes[action.origin]
    assert origin.kind is NodeKind.ACTION_BUTTON
    assert origin.data["text"] == "Show the pier"
    assert action.event == "ImmersiveSlide_ReplaceMedia"
    slide = document.nodes[action.target]
    assert slide.kind is NodeKind.IMMERSIVE_SLIDE
    assert action.data["media"] in slide.children
    swapped = document.nodes[action.data["media"]]
    assert document.resources[swapped.data["image"]].data["src"] == "https://example.com/pier.jpg"


def test_media_urls_are_collected_in_first_seen_order(output):
    assert output.media_urls == ["https://example.com/harbor.jpg", "https://example.com/pier.jpg"]
    assert output.style_blocks == [".sectionPanel { color: red; }"]


def test_theme_and_metadata(output):
    document = output.document
    (theme,) = document.resources_of_kind(ResourceKind.THEME)
    assert theme.data["themeId"] == "summit"
    overrides = theme.data["themeBaseVariableOverrides"]
    assert overrides["backgroundColor"] == "#123456"
    assert overrides["themeColor1"] == "#ff6600"
    assert overrides["titleFontId"] == "openSans"

    metadata = _metadata(document)
    assert metadata["classicType"] == "MapJournal"
    classic = metadata["classicMetadata"]
    assert classic["classicTheme"]["colors"]["panel"] == "#123456"
    decisions = classic["mappingDecisions"]
    assert decisions["layoutMapping"]["mappedSubtype"] == "docked-panel"
    assert decisions["customCss"]["blockCount"] == 1
    assert decisions["videoEmbeds"] == 0
    assert metadata["classicTemplateCreation"] == "1450000000000"


def test_story_meta_and_cover(output):
    document = output.document
    assert document.meta.title == "Harbor Story"
    (cover,) = document.iter_kind(NodeKind.STORY_COVER)
    assert cover.data["title"] == "Harbor Story"
    assert cover.data["summary"] == "Two sections about the harbor"


def test_description_adds_intro_slide(journal_document):
    journal_document["values"]["description"] = "Start here."
    document = MapJournalConverter(journal_document, seed=2).convert().document
    (container,) = document.iter_kind(NodeKind.IMMERSIVE)
    assert len(container.children) == 3
    first = document.nodes[document.nodes[container.children[0]].children[0]]
    assert document.nodes[first.children[0]].data["text"] == "Start here."


def test_float_layout_without_theme_falls_back_to_obsidian(journal_document):
    settings = journal_document["values"]["settings"]
    settings["layout"] = {"id": "float"}
    del settings["theme"]
    document = MapJournalConverter(journal_document, seed=4).convert().document

    (container,) = document.iter_kind(NodeKind.IMMERSIVE)
    assert container.data["subtype"] == "floating-panel"
    (theme,) = document.resources_of_kind(ResourceKind.THEME)
    assert theme.data["themeId"] == "obsidian"
    decisions = _metadata(document)["classicMetadata"]["mappingDecisions"]
    assert decisions["forcedByMissingClassicTheme"] is True
    assert decisions["layoutMapping"]["mappedNarrativePanelPosition"] == "end"


def test_navigate_to_missing_section_leaves_button_unlinked(journal_document):
    sections = journal_document["values"]["story"]["sections"]
    sections[0]["contentActions"] = [{"id": "nav-1", "type": "navigate", "index": 9}]
    document = MapJournalConverter(journal_document, seed=8).convert().document
    (button,) = document.iter_kind(NodeKind.BUTTON)
    assert button.data.get("link") is None


def test_swipe_app_iframe_is_inlined_when_embedded_document_supplied(journal_document, swipe_document):
    app_id = "0123456789abcdef0123456789abcdef"
    sections = journal_document["values"]["story"]["sections"]
    sections[1]["media"] = {
        "type": "webpage",
        "webpage": {"url": f"https://example.com/apps/swipe/index.html?appid={app_id}"},
    }
    document = MapJournalConverter(
        journal_document, seed=9, embedded_documents={app_id: swipe_document}
    ).convert().document
    (swipe,) = document.iter_kind(NodeKind.SWIPE)
    contents = swipe.data["contents"]
    assert {document.nodes[node_id].kind for node_id in contents.values()} == {NodeKind.WEBMAP}


def test_swipe_app_without_embedded_document_is_link_embed(journal_document):
    sections = journal_document["values"]["story"]["sections"]
    sections[1]["media"] = {
        "type": "webpage",
        "webpage": {"url": "https://example.com/apps/swipe/index.html?appid=0123456789abcdef0123456789abcdef"},
    }
    document = MapJournalConverter(journal_document, seed=9).convert().document
    assert not list(document.iter_kind(NodeKind.SWIPE))
    embeds = [node for node in document.iter_kind(NodeKind.EMBED) if node.data["embedType"] == "link"]
    assert len(embeds) == 1


def test_cancellation_between_phases(journal_document):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(ConversionCancelled) as excinfo:
        MapJournalConverter(journal_document, cancel=token).convert()
    assert excinfo.value.stage == "extract"


def test_cascade_uses_section_model(journal_document):
    output = CascadeConverter(journal_document, seed=1).convert()
    metadata = _metadata(output.document)
    assert metadata["classicType"] == "Cascade"
    assert len(list(output.document.iter_kind(NodeKind.IMMERSIVE_SLIDE))) == 2
