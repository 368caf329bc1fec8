"""Series, swipe and basic converters plus the converter factory."""

from __future__ import annotations

import pytest

from ClassicToStoryMaps.classifier import TemplateFamily
from ClassicToStoryMaps.converters import (
    BasicConverter,
    CascadeConverter,
    MapJournalConverter,
    MapSeriesConverter,
    SwipeConverter,
    converter_for,
    normalize_panel_size,
    sanitize_side_panel,
)
from ClassicToStoryMaps.document import NodeKind, ResourceKind


def _root_kinds(document):
    return [document.nodes[child].kind for child in document.nodes[document.root].children]


def test_series_builds_one_slide_per_entry(series_document):
    output = MapSeriesConverter(series_document, seed=3).convert()
    document = output.document
    (container,) = document.iter_kind(NodeKind.IMMERSIVE)
    assert container.data["narrativePanelPosition"] == "start"
    assert container.data["narrativePanelSize"] == "large"
    assert len(container.children) == 3

    media_kinds = []
    for slide_id in container.children:
        slide = document.nodes[slide_id]
        narrative = document.nodes[slide.children[0]]
        assert document.nodes[narrative.children[0]].data["type"] == "h3"
        media_kinds.append(document.nodes[slide.children[1]].kind)
    assert media_kinds == [NodeKind.IMAGE, NodeKind.WEBMAP, NodeKind.EMBED]
    assert output.media_urls == ["https://example.com/north.jpg"]


def test_series_empty_description_has_title_only(series_document):
    document = MapSeriesConverter(series_document, seed=3).convert().document
    (container,) = document.iter_kind(NodeKind.IMMERSIVE)
    south = document.nodes[container.children[1]]
    narrative = document.nodes[south.children[0]]
    assert len(narrative.children) == 1
    metadata = document.resources_of_kind(ResourceKind.CONVERTER_METADATA)[0].data
    assert metadata["classicMetadata"]["entryCount"] == 3


def test_swipe_two_webmaps_spyglass(swipe_document):
    document = SwipeConverter(swipe_document, seed=3).convert().document
    assert document.meta.title == "Before and after"
    (swipe,) = document.iter_kind(NodeKind.SWIPE)
    assert swipe.data["swipeType"] == "spyglass"
    maps = [document.nodes[node_id].data["map"] for node_id in swipe.data["contents"].values()]
    assert maps == ["r-before01", "r-after01"]
    assert _root_kinds(document) == [
        NodeKind.STORY_COVER,
        NodeKind.NAVIGATION,
        NodeKind.TEXT,
        NodeKind.SWIPE,
        NodeKind.CREDITS,
    ]


def test_swipe_side_panel_styles_are_recorded(swipe_document):
    document = SwipeConverter(swipe_document, seed=3).convert().document
    (panel,) = [
        node for node in document.iter_kind(NodeKind.TEXT) if node.data.get("preserveHtml")
    ]
    assert panel.data["text"] == "<p>Compare <b>both</b> maps.</p>"
    classic = document.resources_of_kind(ResourceKind.CONVERTER_METADATA)[0].data["classicMetadata"]
    assert classic["mappingDecisions"]["customCss"]["combined"] == "color:red"
    assert classic["swipe"] == {"dataModel": "TWO_WEBMAPS", "layout": "spyglass"}


def test_swipe_two_layers(swipe_document):
    values = swipe_document["values"]
    values.update({"dataModel": "TWO_LAYERS", "webmap": "base01", "layers": ["roads", "parcels"], "layout": "swipe"})
    del values["webmaps"]
    document = SwipeConverter(swipe_document, seed=3).convert().document
    (swipe,) = document.iter_kind(NodeKind.SWIPE)
    left, right = (document.nodes[node_id] for node_id in swipe.data["contents"].values())
    assert left.data["map"] == right.data["map"] == "r-base01"
    assert [layer["visible"] for layer in left.data["mapLayers"]] == [False, False]
    assert [layer["visible"] for layer in right.data["mapLayers"]] == [True, True]


def test_swipe_title_falls_back_to_default():
    document = SwipeConverter({"values": {"title": "Spyglass", "webmap": "one"}}, seed=1).convert().document
    assert document.meta.title == "Swipe"


def test_sanitize_side_panel_keeps_links_only():
    markup, styles = sanitize_side_panel(
        '<span class="x"><a href="https://example.com" onclick="evil()" style="color:blue">link</a></span>'
    )
    assert markup == '<a href="https://example.com">link</a>'
    assert styles == ["color:blue"]


def test_basic_description_and_webmap(basic_document):
    document = BasicConverter(basic_document, seed=3).convert().document
    assert _root_kinds(document) == [
        NodeKind.STORY_COVER,
        NodeKind.NAVIGATION,
        NodeKind.TEXT,
        NodeKind.WEBMAP,
        NodeKind.CREDITS,
    ]
    assert "r-basic01" in document.resources


@pytest.mark.parametrize(
    "family, expected_cls, classic_type",
    [
        (TemplateFamily.MAP_JOURNAL, MapJournalConverter, "MapJournal"),
        (TemplateFamily.CASCADE, CascadeConverter, "Cascade"),
        (TemplateFamily.MAP_SERIES, MapSeriesConverter, "MapSeries"),
        (TemplateFamily.SWIPE, SwipeConverter, "Swipe"),
        (TemplateFamily.SHORTLIST, BasicConverter, "Shortlist"),
        (TemplateFamily.UNKNOWN, BasicConverter, "Unknown"),
    ],
)
def test_converter_factory(family, expected_cls, classic_type):
    cls, recorded_type = converter_for(family)
    assert cls is expected_cls
    assert recorded_type == classic_type


@pytest.mark.parametrize(
    "value, expected",
    [("small", "small"), ("Wide", "large"), ("LARGE", "large"), (None, "medium"), ("huge", "medium")],
)
def test_normalize_panel_size(value, expected):
    assert normalize_panel_size(value) == expected
