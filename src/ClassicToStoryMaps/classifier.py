# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.classifier",
#   "purpose": "Pure template-family classification for classic story documents",
#   "sections": [
#     {"id": "templatefamily", "name": "TemplateFamily", "anchor": "class-templatefamily", "kind": "class"},
#     {"id": "normalize-template-name", "name": "normalize_template_name", "anchor": "function-normalize-template-name", "kind": "function"},
#     {"id": "detect-template", "name": "detect_template", "anchor": "function-detect-template", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""Template classification.

:func:`detect_template` inspects explicit template-name fields first and then
structural fingerprints. It performs no I/O so it can run before any network
access. ``BASIC`` is a legitimate outcome when no signal matches.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping, Optional

from .classic import get_list, get_path, unwrap_values

__all__ = ["TemplateFamily", "detect_template", "normalize_template_name"]

_SWIPE_WORD = re.compile(r"\bswipe\b", re.IGNORECASE)


class TemplateFamily(str, Enum):
    """Classic template families recognised by the converter."""

    MAP_JOURNAL = "Map Journal"
    MAP_TOUR = "Map Tour"
    MAP_SERIES = "Map Series"
    SWIPE = "Swipe"
    CASCADE = "Cascade"
    SHORTLIST = "Shortlist"
    CROWDSOURCE = "Crowdsource"
    BASIC = "Basic"
    UNKNOWN = "unknown"


# Substring checks run in this order, so "journal" wins over "series" in a
# name such as "Map Journal Series".
_NAME_FRAGMENTS = (
    ("journal", TemplateFamily.MAP_JOURNAL),
    ("tour", TemplateFamily.MAP_TOUR),
    ("series", TemplateFamily.MAP_SERIES),
    ("cascade", TemplateFamily.CASCADE),
    ("shortlist", TemplateFamily.SHORTLIST),
    ("swipe", TemplateFamily.SWIPE),
    ("crowdsource", TemplateFamily.CROWDSOURCE),
    ("basic", TemplateFamily.BASIC),
)


def normalize_template_name(name: str) -> TemplateFamily:
    """Map a free-form template name onto a family, defaulting to ``BASIC``."""

    lowered = name.lower()
    for fragment, family in _NAME_FRAGMENTS:
        if fragment in lowered:
            return family
    return TemplateFamily.BASIC


def _template_name(values: Mapping[str, Any]) -> Optional[str]:
    name = values.get("templateName") if isinstance(values.get("templateName"), str) else None
    template = values.get("template")
    if isinstance(template, str) and template:
        name = template
    elif isinstance(template, Mapping) and isinstance(template.get("name"), str):
        name = template["name"]
    return name or None


def _has_sequence(sections: Any) -> bool:
    return any(isinstance(s, Mapping) and s.get("type") == "sequence" for s in sections)


def detect_template(document: Any) -> TemplateFamily:
    """Classify classic item data into a :class:`TemplateFamily`.

    Args:
        document: Classic item data, either the ``{"values": ...}`` envelope
            or the values object itself.

    Returns:
        The detected family. Non-mapping input yields ``UNKNOWN``.
    """

    if not isinstance(document, Mapping):
        return TemplateFamily.UNKNOWN
    values = unwrap_values(document)

    name = _template_name(values)
    if name:
        if _SWIPE_WORD.search(name):
            return TemplateFamily.SWIPE
        return normalize_template_name(name)

    story_sections = get_list(values, "story", "sections")
    typed_sections = [
        s for s in get_list(values, "sections") if isinstance(s, Mapping) and s.get("type")
    ]
    if _has_sequence(story_sections) or _has_sequence(typed_sections):
        return TemplateFamily.CASCADE
    if story_sections or typed_sections:
        return TemplateFamily.MAP_JOURNAL

    if get_path(values, "settings", "components") is not None:
        return TemplateFamily.CROWDSOURCE
    if isinstance(values.get("series"), list) or get_list(values, "story", "entries"):
        return TemplateFamily.MAP_SERIES
    if values.get("tabs"):
        return TemplateFamily.SHORTLIST
    if isinstance(values.get("order"), list):
        return TemplateFamily.MAP_TOUR
    if any(values.get(key) for key in ("dataModel", "layers", "webmaps")):
        return TemplateFamily.SWIPE
    if get_path(values, "components", "contribute") is not None:
        return TemplateFamily.CROWDSOURCE

    # an empty story.sections array is still a journal shell
    if isinstance(get_path(values, "story", "sections"), list):
        return TemplateFamily.MAP_JOURNAL
    return TemplateFamily.BASIC
