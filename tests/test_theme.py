"""Theme mapping and custom CSS summaries."""

from __future__ import annotations

from ClassicToStoryMaps.settings import ThemeChoice
from ClassicToStoryMaps.theme import CSS_TRUNCATION_MARKER, map_theme, parse_font_id, summarize_custom_css


def _values(colors=None, fonts=None, **extra):
    return {"settings": {"theme": {"colors": colors or {}, "fonts": fonts or {}}}, **extra}


def test_light_theme_defaults_to_summit_without_overrides():
    mapping = map_theme(_values({"themeMajor": "light"}))
    assert mapping.base_theme_id == "summit"
    assert mapping.variables == {}
    assert mapping.decisions["variableOverridesApplied"] == []


def test_dark_major_selects_obsidian():
    assert map_theme(_values({"themeMajor": "Dark"})).base_theme_id == "obsidian"
    assert map_theme({"settings": {"themeMajor": "black"}}).base_theme_id == "obsidian"


def test_color_and_font_fields_map_with_provenance():
    mapping = map_theme(
        _values(
            {"panel": "#101010", "dotNav": "#202020", "textLink": "#303030"},
            {
                "sectionTitle": {"value": "font-family:'open_sansregular', sans-serif;"},
                "sectionContent": {"value": "font-family: Roboto, Arial;"},
            },
        )
    )
    assert mapping.variables == {
        "backgroundColor": "#101010",
        "headerFooterBackgroundColor": "#202020",
        "themeColor1": "#303030",
        "titleFontId": "openSans",
        "bodyFontId": "roboto",
    }
    provenance = mapping.decisions["provenance"]
    assert provenance["themeColor1"] == "settings.theme.colors.textLink"
    assert provenance["bodyFontId"] == "settings.theme.fonts.sectionContent"


def test_values_equal_to_base_default_are_not_overrides():
    mapping = map_theme(_values({"panel": "#ffffff"}))
    assert "backgroundColor" not in mapping.variables


def test_packed_colors_string():
    mapping = map_theme({"colors": "#444444;#eeeeee;#ffffff"})
    assert mapping.variables == {"headerFooterBackgroundColor": "#444444", "backgroundColor": "#eeeeee"}
    assert mapping.decisions["provenance"]["backgroundColor"] == "values.colors[1]"


def test_explicit_choice_forces_base_and_keeps_overrides():
    mapping = map_theme(_values({"themeMajor": "dark", "panel": "#101010"}), ThemeChoice.SUMMIT)
    assert mapping.base_theme_id == "summit"
    assert mapping.decisions["derivedBaseThemeId"] == "obsidian"
    assert mapping.variables["backgroundColor"] == "#101010"


def test_parse_font_id_unknown_family():
    assert parse_font_id("font-family: Comic Sans;") is None
    assert parse_font_id("bold") is None
    assert parse_font_id(None) is None


def test_summarize_custom_css_truncates_and_cleans():
    summary = summarize_custom_css(["a{}\x07", "   ", "b{}" * 50], limit=20)
    assert summary["blockCount"] == 2
    assert summary["combined"].endswith(CSS_TRUNCATION_MARKER)
    assert "\x07" not in summary["combined"]
    assert summarize_custom_css([" ", ""]) is None
