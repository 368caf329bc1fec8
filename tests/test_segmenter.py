# === NAVMAP v1 ===
# {
#   "module": "tests.test_segmenter",
#   "purpose": "Pytest coverage for narrative HTML segmentation",
#   "sections": [
#     {"id": "ordering", "name": "Ordering tests", "anchor": "ORD", "kind": "api"},
#     {"id": "actions", "name": "Action stub tests", "anchor": "ACT", "kind": "api"},
#     {"id": "patch", "name": "Inline anchor patch tests", "anchor": "PATCH", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""
Narrative Segmenter Tests

Exercises order preservation across placeholder substitutions, empty-input
handling, paragraph splitting and the recording of action stubs.

Usage:
    pytest tests/test_segmenter.py
"""

from __future__ import annotations

import pytest

from ClassicToStoryMaps.builder import DocumentBuilder
from ClassicToStoryMaps.document import NodeKind, ResourceKind
from ClassicToStoryMaps.media_nodes import MediaCollector, MediaNodeFactory
from ClassicToStoryMaps.segmenter import NarrativeSegmenter, has_visible_content, patch_inline_anchor


@pytest.fixture
def builder() -> DocumentBuilder:
    instance = DocumentBuilder(seed=5)
    instance.create_story_root()
    return instance


@pytest.fixture
def collector() -> MediaCollector:
    return MediaCollector()


@pytest.fixture
def segmenter(builder, collector) -> NarrativeSegmenter:
    return NarrativeSegmenter(builder, MediaNodeFactory(builder, collector))


def _kinds(builder, node_ids):
    return [builder.get_node(node_id).kind for node_id in node_ids]


def _text(builder, node_id):
    return builder.get_node(node_id).data["text"]


def test_text_image_text_order_with_figure(builder, segmenter):
    result = segmenter.segment(
        '<p>Text A</p><figure><img src="https://example.com/a.jpg" alt="A">'
        "<figcaption>Caption A</figcaption></figure><p>Text B</p>"
    )
    assert _kinds(builder, result.node_ids) == [NodeKind.TEXT, NodeKind.IMAGE, NodeKind.TEXT]
    assert _text(builder, result.node_ids[0]) == "Text A"
    assert _text(builder, result.node_ids[2]) == "Text B"
    image = builder.get_node(result.node_ids[1])
    assert image.data["caption"] == "Caption A"
    assert image.data["alt"] == "A"


def test_inline_image_splits_paragraph_in_place(builder, segmenter, collector):
    result = segmenter.segment('<p><b>Text A</b> <img src="https://example.com/x.png"> then text B</p>')
    assert _kinds(builder, result.node_ids) == [NodeKind.TEXT, NodeKind.IMAGE, NodeKind.TEXT]
    assert _text(builder, result.node_ids[0]) == "<b>Text A</b>"
    assert _text(builder, result.node_ids[2]) == "then text B"
    assert collector.urls == ["https://example.com/x.png"]


@pytest.mark.parametrize("markup", ["", "   \n\t ", "<p>&nbsp;</p>", "<p> </p><div>\xa0</div>"])
def test_whitespace_only_yields_no_nodes(segmenter, markup):
    assert segmenter.segment(markup).node_ids == []


def test_multiple_paragraphs_become_separate_nodes(builder, segmenter):
    result = segmenter.segment("<div><p>One</p><p>&nbsp;</p><p>Two</p></div>")
    assert [_text(builder, node_id) for node_id in result.node_ids] == ["One", "Two"]


def test_loose_top_level_text_is_wrapped(builder, segmenter):
    result = segmenter.segment("Plain <i>lead</i> text<p>Next</p>")
    assert [_text(builder, node_id) for node_id in result.node_ids] == ["Plain <i>lead</i> text", "Next"]


def test_headings_become_typed_text_nodes(builder, segmenter):
    result = segmenter.segment("<h1>Big</h1><h3>Small</h3><h6>Tiny</h6>")
    types = [builder.get_node(node_id).data["type"] for node_id in result.node_ids]
    assert types == ["h2", "h3", "h4"]


def test_style_blocks_are_extracted_not_rendered(segmenter):
    result = segmenter.segment("<style>.a { color: red; }</style><p>Body</p><script>alert(1)</script>")
    assert result.style_blocks == [".a { color: red; }"]
    assert len(result.node_ids) == 1


def test_color_style_becomes_class(builder, segmenter):
    result = segmenter.segment('<p><span style="color: #FF0000;">Red</span></p>')
    assert _text(builder, result.node_ids[0]) == '<span class="sm-text-color-ff0000">Red</span>'


def test_iframes_become_video_or_link_embeds(builder, segmenter):
    result = segmenter.segment(
        '<iframe src="https://www.youtube.com/embed/abcdefghijk"></iframe>'
        '<iframe src="https://example.com/page"></iframe>'
    )
    first, second = (builder.get_node(node_id) for node_id in result.node_ids)
    assert first.data["embedType"] == "video"
    assert first.data["provider"] == "youtube"
    assert second.data["embedType"] == "link"


def test_media_anchor_becomes_action_button_stub(builder, segmenter):
    result = segmenter.segment(
        '<p>Before <a data-storymaps="act-1" data-storymaps-type="media">&gt; Show map</a> after</p>'
    )
    assert _kinds(builder, result.node_ids) == [NodeKind.TEXT, NodeKind.ACTION_BUTTON, NodeKind.TEXT]
    stub = result.media_stubs[0]
    assert stub.action_id == "act-1"
    assert stub.button_node_id == result.node_ids[1]
    assert builder.get_node(stub.button_node_id).data["text"] == "Show map"


def test_media_anchor_wrapping_image_becomes_button_only(builder, segmenter, collector):
    result = segmenter.segment(
        '<p>Look <a data-storymaps="act1" data-storymaps-type="media">'
        '<img src="https://x/a.jpg" alt="Harbour map"></a> here</p>'
    )
    assert _kinds(builder, result.node_ids) == [NodeKind.TEXT, NodeKind.ACTION_BUTTON, NodeKind.TEXT]
    button = builder.get_node(result.media_stubs[0].button_node_id)
    assert button.data["text"] == "Harbour map"
    assert collector.urls == []
    document = builder.finalize()
    assert list(document.iter_kind(NodeKind.IMAGE)) == []
    assert document.resources_of_kind(ResourceKind.IMAGE) == []


def test_media_anchor_wrapping_image_without_alt_gets_default_label(builder, segmenter):
    result = segmenter.segment(
        '<p>Look <a data-storymaps="act1" data-storymaps-type="media"><img src="https://x/a.jpg"></a> here</p>'
    )
    label = builder.get_node(result.media_stubs[0].button_node_id).data["text"]
    assert label == "View"
    assert "%%IMG" not in label


def test_button_styled_navigate_anchor_becomes_button(builder, segmenter):
    result = segmenter.segment(
        '<p><a data-action="go" data-kind="navigate" class="btn-orange">Next section</a></p>'
    )
    assert _kinds(builder, result.node_ids) == [NodeKind.BUTTON]
    assert result.navigate_buttons[0].action_id == "go"
    assert result.inline_navigates == []


def test_inline_navigate_anchor_stays_in_rich_text(builder, segmenter):
    result = segmenter.segment('<p>See <a data-action="x" data-kind="navigate">here</a> for more</p>')

    assert _kinds(builder, result.node_ids) == [NodeKind.TEXT]
    assert result.navigate_buttons == []
    stub = result.inline_navigates[0]
    assert stub.action_id == "x"
    assert stub.rich_node_id == result.node_ids[0]
    assert 'data-action="x"' in _text(builder, result.node_ids[0])


def test_empty_anchor_segment_is_kept(builder, segmenter):
    result = segmenter.segment('<p><a data-action="y" data-kind="navigate"></a></p>')
    assert len(result.node_ids) == 1
    assert result.inline_navigates[0].rich_node_id == result.node_ids[0]


def test_has_visible_content():
    assert has_visible_content("<b>x</b>")
    assert has_visible_content('<a data-action="z"></a>')
    assert has_visible_content('<img src="a.png">')
    assert not has_visible_content("<p>&nbsp;</p>")
    assert not has_visible_content("<style>p{}</style>")


def test_patch_inline_anchor_adds_internal_link():
    markup = 'See <a data-action="x" data-kind="navigate">here</a>'
    patched = patch_inline_anchor(markup, "x", "#ref-n-abc")
    assert 'href="#ref-n-abc"' in patched
    assert 'target="_self"' in patched
    assert patch_inline_anchor(patched, "x", "#ref-other") == patched


def test_patch_inline_anchor_ignores_other_actions():
    markup = '<a data-action="x1">one</a>'
    assert patch_inline_anchor(markup, "x", "#ref-n-1") == markup
