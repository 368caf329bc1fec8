"""Template classification from explicit names and structural fingerprints."""

from __future__ import annotations

import pytest

from ClassicToStoryMaps.classifier import TemplateFamily, detect_template, normalize_template_name


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Map Journal", TemplateFamily.MAP_JOURNAL),
        ("MAP TOUR", TemplateFamily.MAP_TOUR),
        ("Story Map Series", TemplateFamily.MAP_SERIES),
        ("Cascade", TemplateFamily.CASCADE),
        ("shortlist", TemplateFamily.SHORTLIST),
        ("Crowdsource", TemplateFamily.CROWDSOURCE),
        ("Something else", TemplateFamily.BASIC),
    ],
)
def test_normalize_template_name(name, expected):
    assert normalize_template_name(name) is expected


def test_template_name_wins_over_sections():
    document = {"values": {"templateName": "Map Tour", "story": {"sections": [{"title": "A"}]}}}
    assert detect_template(document) is TemplateFamily.MAP_TOUR


@pytest.mark.parametrize(
    "values, expected",
    [
        ({"story": {"sections": [{"type": "sequence"}]}}, TemplateFamily.CASCADE),
        ({"sections": [{"type": "sequence"}, {"type": "title"}]}, TemplateFamily.CASCADE),
        ({"sections": [{"type": "title"}, {"type": "immersive"}]}, TemplateFamily.MAP_JOURNAL),
        ({"story": {"sections": [{"title": "A"}]}}, TemplateFamily.MAP_JOURNAL),
        ({"sections": ["loose", 3]}, TemplateFamily.BASIC),
    ],
)
def test_section_fingerprints(values, expected):
    assert detect_template({"values": values}) is expected


def test_template_object_name_overrides_template_name_field():
    values = {"templateName": "Map Tour", "template": {"name": "Map Series"}}
    assert detect_template(values) is TemplateFamily.MAP_SERIES


def test_swipe_word_in_template_name():
    assert detect_template({"template": "Swipe and Spyglass"}) is TemplateFamily.SWIPE
    assert detect_template({"template": "Journal with swipe"}) is TemplateFamily.SWIPE


@pytest.mark.parametrize(
    "values, expected",
    [
        ({"settings": {"components": {}}}, TemplateFamily.CROWDSOURCE),
        ({"series": []}, TemplateFamily.MAP_SERIES),
        ({"story": {"entries": [{"title": "x"}]}}, TemplateFamily.MAP_SERIES),
        ({"tabs": {"one": {}}}, TemplateFamily.SHORTLIST),
        ({"order": [{"id": 1}]}, TemplateFamily.MAP_TOUR),
        ({"dataModel": "TWO_LAYERS"}, TemplateFamily.SWIPE),
        ({"webmaps": ["a", "b"]}, TemplateFamily.SWIPE),
        ({"components": {"contribute": {}}}, TemplateFamily.CROWDSOURCE),
        ({"story": {"sections": []}}, TemplateFamily.MAP_JOURNAL),
        ({}, TemplateFamily.BASIC),
    ],
)
def test_structural_fingerprints(values, expected):
    assert detect_template({"values": values}) is expected


def test_non_mapping_is_unknown():
    assert detect_template(["not", "a", "document"]) is TemplateFamily.UNKNOWN
    assert detect_template(None) is TemplateFamily.UNKNOWN


def test_sample_documents(journal_document, tour_document, series_document, swipe_document, basic_document):
    assert detect_template(journal_document) is TemplateFamily.MAP_JOURNAL
    assert detect_template(tour_document) is TemplateFamily.MAP_TOUR
    assert detect_template(series_document) is TemplateFamily.MAP_SERIES
    assert detect_template(swipe_document) is TemplateFamily.SWIPE
    assert detect_template(basic_document) is TemplateFamily.BASIC
