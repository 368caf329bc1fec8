# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.theme",
#   "purpose": "Map classic color/font settings onto a base theme plus sparse variable overrides",
#   "sections": [
#     {"id": "base-themes", "name": "BASE_THEMES", "anchor": "BASE", "kind": "constants"},
#     {"id": "thememapping", "name": "ThemeMapping", "anchor": "class-thememapping", "kind": "class"},
#     {"id": "parse-font-id", "name": "parse_font_id", "anchor": "function-parse-font-id", "kind": "function"},
#     {"id": "map-theme", "name": "map_theme", "anchor": "function-map-theme", "kind": "function"},
#     {"id": "summarize-custom-css", "name": "summarize_custom_css", "anchor": "function-summarize-custom-css", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""
Theme mapping.

Classic stories carry a "major" light/dark flag plus a handful of color and
font settings. :func:`map_theme` turns those into one of two supported base
themes and a sparse set of variable overrides. Every override is recorded in
``decisions["provenance"]`` against the legacy field that produced it, so the
converter metadata explains each choice.

Key Scenarios:
- ``themeMajor`` of ``dark``/``black`` selects ``obsidian``; anything else ``summit``
- Journal-style ``settings.theme.colors``/``fonts`` map through fixed tables
- Tour and swipe pack colors into a ``;``-separated ``values.colors`` string
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .classic import get_mapping, get_path, get_str
from .settings import ThemeChoice

__all__ = [
    "BASE_THEMES",
    "CSS_TRUNCATION_MARKER",
    "ThemeMapping",
    "map_theme",
    "parse_font_id",
    "summarize_custom_css",
]

CSS_TRUNCATION_MARKER = "/*__CSS_TRUNCATED__*/"

BASE_THEMES: Dict[str, Dict[str, Any]] = {
    "summit": {
        "headerFooterBackgroundColor": "#ffffff",
        "backgroundColor": "#ffffff",
        "titleFontId": "avenirNext",
        "titleColor": "#002625",
        "bodyFontId": "notoSerif",
        "bodyColor": "#304e4e",
        "bodyMutedColor": "#3d6665",
        "themeColor1": "#087f9b",
        "themeColor2": "#fc3b36",
        "themeColor3": "#126057",
        "borderRadius": 0,
        "basemapPrimary": "humanGeographyLight",
    },
    "obsidian": {
        "headerFooterBackgroundColor": "#000000",
        "backgroundColor": "#0e1116",
        "titleFontId": "charterBT",
        "titleColor": "#f3f3f3",
        "bodyFontId": "arial",
        "bodyColor": "#e6f2f2",
        "bodyMutedColor": "#809e9d",
        "themeColor1": "#ea5b41",
        "themeColor2": "#4d6aff",
        "themeColor3": "#0ec2db",
        "borderRadius": 9999,
        "basemapPrimary": "darkGrayCanvas",
    },
}

_DARK_MAJORS = {"dark", "black"}

# legacy settings.theme.colors field -> theme variable
_COLOR_FIELDS = (
    ("panel", "backgroundColor"),
    ("dotNav", "headerFooterBackgroundColor"),
    ("textLink", "themeColor1"),
)

# legacy settings.theme.fonts field -> theme variable
_FONT_FIELDS = (
    ("sectionTitle", "titleFontId"),
    ("sectionContent", "bodyFontId"),
)

# positions inside a packed "a;b;c" values.colors string
_PACKED_COLOR_FIELDS = (
    (0, "headerFooterBackgroundColor"),
    (1, "backgroundColor"),
)

_FONT_IDS = {
    "open_sansregular": "openSans",
    "opensans": "openSans",
    "roboto": "roboto",
    "noto": "notoSerif",
    "notoserif": "notoSerif",
    "lato": "lato",
    "sourcesanspro": "sourceSansPro",
    "avenirnext": "avenirNext",
    "charterbt": "charterBT",
    "arial": "arial",
}

_QUOTED_FAMILY = re.compile(r"font-family:\s*['\"]([^'\"]+)['\"]", re.IGNORECASE)
_BARE_FAMILY = re.compile(r"font-family:\s*([^;]+);?", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f]")


@dataclass
class ThemeMapping:
    """Base theme, sparse overrides, and the reasons behind each override."""

    base_theme_id: str
    variables: Dict[str, Any] = field(default_factory=dict)
    decisions: Dict[str, Any] = field(default_factory=dict)


def parse_font_id(value: Any) -> Optional[str]:
    """Translate a CSS ``font-family`` declaration into a theme font id."""

    if not isinstance(value, str) or "font-family" not in value:
        return None
    match = _QUOTED_FAMILY.search(value)
    if match:
        family = match.group(1)
    else:
        bare = _BARE_FAMILY.search(value)
        if not bare:
            return None
        family = bare.group(1).split(",")[0].strip().strip("'\"")
    return _FONT_IDS.get(re.sub(r"\s+", "", family.lower()))


def _theme_major(values: Mapping[str, Any]) -> str:
    major = get_str(values, "settings", "theme", "colors", "themeMajor") or get_str(
        values, "settings", "themeMajor"
    )
    return major.lower()


def map_theme(values: Mapping[str, Any], choice: ThemeChoice = ThemeChoice.AUTO) -> ThemeMapping:
    """Derive the base theme and variable overrides from classic ``values``.

    Args:
        values: Classic ``values`` object.
        choice: ``auto`` keeps the derived base; ``summit`` or ``obsidian``
            force it while keeping the mapped overrides.

    Returns:
        ThemeMapping with ``decisions`` holding ``baseThemeId``,
        ``variableOverridesApplied`` and ``provenance``.
    """

    derived = "obsidian" if _theme_major(values) in _DARK_MAJORS else "summit"
    base = derived if choice is ThemeChoice.AUTO else ThemeChoice(choice).value
    defaults = BASE_THEMES[base]
    overrides: Dict[str, Any] = {}
    provenance: Dict[str, str] = {}

    def consider(variable: str, value: Any, source: str) -> None:
        if value in (None, "") or variable in overrides:
            return
        if defaults.get(variable) == value:
            return
        overrides[variable] = value
        provenance[variable] = source

    colors = get_mapping(values, "settings", "theme", "colors")
    for legacy, variable in _COLOR_FIELDS:
        consider(variable, get_str(colors, legacy).strip(), f"settings.theme.colors.{legacy}")

    fonts = get_mapping(values, "settings", "theme", "fonts")
    for legacy, variable in _FONT_FIELDS:
        consider(variable, parse_font_id(get_path(fonts, legacy, "value")), f"settings.theme.fonts.{legacy}")

    packed = values.get("colors")
    if isinstance(packed, str) and packed.strip():
        parts = [part.strip() for part in packed.split(";")]
        for index, variable in _PACKED_COLOR_FIELDS:
            if index < len(parts):
                consider(variable, parts[index], f"values.colors[{index}]")

    decisions = {
        "baseThemeId": base,
        "derivedBaseThemeId": derived,
        "variableOverridesApplied": list(overrides),
        "provenance": provenance,
    }
    return ThemeMapping(base_theme_id=base, variables=overrides, decisions=decisions)


def summarize_custom_css(blocks: Sequence[str], limit: int = 6000) -> Optional[Dict[str, Any]]:
    """Summarise extracted ``<style>`` blocks for provenance reporting."""

    cleaned: List[str] = [block for block in blocks if block and block.strip()]
    if not cleaned:
        return None
    combined = "\n\n".join(cleaned)
    sanitized = _CONTROL_CHARS.sub(" ", combined.replace("\r", "")).replace("\t", " ")
    sanitized = re.sub(r"\n{3,}", "\n\n", sanitized)
    if len(sanitized) > limit:
        sanitized = sanitized[:limit] + "\n" + CSS_TRUNCATION_MARKER
    return {"blockCount": len(cleaned), "approxBytes": len(combined), "combined": sanitized}
