# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.classic",
#   "purpose": "Narrow read-only views over loosely typed classic story documents",
#   "sections": [
#     {"id": "accessors", "name": "Fallible Accessors", "anchor": "ACC", "kind": "helpers"},
#     {"id": "mediaview", "name": "MediaView", "anchor": "class-mediaview", "kind": "class"},
#     {"id": "contentactionview", "name": "ContentActionView", "anchor": "class-contentactionview", "kind": "class"},
#     {"id": "sectionview", "name": "SectionView", "anchor": "class-sectionview", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""Views over classic story JSON.

Classic item data is arbitrary nested JSON whose shape depends on the template
family and on the builder version that saved it. Rather than modelling it as
one monolithic type, converters read it through the small accessors here and
through per-concept views (:class:`MediaView`, :class:`ContentActionView`,
:class:`SectionView`) that each claim only the fields they need. Every accessor
returns a typed default instead of raising when a field is missing or has an
unexpected type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

__all__ = [
    "ContentActionView",
    "MediaView",
    "SectionView",
    "first_present",
    "get_bool",
    "get_list",
    "get_mapping",
    "get_path",
    "get_str",
    "unwrap_values",
]

_MISSING = object()


def get_path(source: Any, *path: str, default: Any = None) -> Any:
    """Walk ``path`` through nested mappings, returning ``default`` on any miss."""

    current = source
    for key in path:
        if not isinstance(current, Mapping):
            return default
        current = current.get(key, _MISSING)
        if current is _MISSING:
            return default
    return current


def get_str(source: Any, *path: str, default: str = "") -> str:
    value = get_path(source, *path)
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def get_list(source: Any, *path: str) -> List[Any]:
    value = get_path(source, *path)
    return list(value) if isinstance(value, list) else []


def get_mapping(source: Any, *path: str) -> Dict[str, Any]:
    value = get_path(source, *path)
    return dict(value) if isinstance(value, Mapping) else {}


def get_bool(source: Any, *path: str, default: bool = False) -> bool:
    value = get_path(source, *path)
    return bool(value) if value is not None else default


def first_present(source: Any, keys: Sequence[str]) -> Any:
    """Return the first non-empty value among ``keys`` of a mapping."""

    if not isinstance(source, Mapping):
        return None
    for key in keys:
        value = source.get(key)
        if value not in (None, ""):
            return value
    return None


def unwrap_values(document: Any) -> Dict[str, Any]:
    """Return the ``values`` payload of classic item data.

    Item data is normally ``{"values": {...}}`` but some exports store the
    values object directly; both shapes are accepted.
    """

    if not isinstance(document, Mapping):
        return {}
    values = document.get("values")
    if isinstance(values, Mapping):
        return dict(values)
    return dict(document)


def _url_from(value: Any, *keys: str) -> str:
    if isinstance(value, str):
        return value
    for key in keys:
        candidate = get_str(value, key)
        if candidate:
            return candidate
    return ""


@dataclass
class MediaView:
    """One media declaration: a section's primary media or an action's replacement."""

    kind: str
    url: str = ""
    caption: str = ""
    alt: str = ""
    title: str = ""
    description: str = ""
    item_id: str = ""
    item_type: str = "Web Map"
    extent: Optional[Dict[str, Any]] = None
    layers: List[Dict[str, Any]] = field(default_factory=list)
    overview: Optional[Dict[str, Any]] = None
    legend: Optional[Dict[str, Any]] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["MediaView"]:
        """Interpret journal-style or series-style media, or return ``None``."""

        if not isinstance(raw, Mapping):
            return None
        media_type = get_str(raw, "type").lower()

        webmap = raw.get("webmap")
        webmap_id = webmap if isinstance(webmap, str) else get_str(webmap, "id")
        if webmap_id or media_type == "webmap":
            if not webmap_id:
                return None
            item_type = get_str(webmap, "itemType")
            extent = get_path(webmap, "extent")
            return cls(
                kind="webmap",
                item_id=webmap_id,
                item_type="Web Scene" if item_type == "Web Scene" else "Web Map",
                caption=get_str(webmap, "caption"),
                extent=dict(extent) if isinstance(extent, Mapping) else None,
                layers=[dict(layer) for layer in get_list(webmap, "layers") if isinstance(layer, Mapping)],
                overview=get_mapping(webmap, "overview") or None,
                legend=get_mapping(webmap, "legend") or None,
            )

        image = raw.get("image")
        image_url = _url_from(image, "url") or get_str(raw, "imageUrl") or get_str(raw, "photo")
        if image_url:
            return cls(
                kind="image",
                url=image_url,
                caption=get_str(image, "caption"),
                alt=get_str(image, "altText") or get_str(image, "alt"),
                title=get_str(image, "title"),
            )

        video = raw.get("video")
        video_url = _url_from(video, "url", "source") or get_str(raw, "videoUrl")
        if video_url:
            return cls(
                kind="video",
                url=video_url,
                caption=get_str(video, "caption"),
                alt=get_str(video, "altText"),
                title=get_str(video, "title"),
            )

        webpage = raw.get("webpage") if isinstance(raw.get("webpage"), Mapping) else raw.get("embed")
        page_url = get_str(webpage, "url") or get_str(raw, "url")
        if page_url:
            return cls(
                kind="webpage",
                url=page_url,
                caption=get_str(webpage, "caption"),
                alt=get_str(webpage, "altText"),
                title=get_str(webpage, "title"),
                description=get_str(webpage, "description"),
            )
        return None


@dataclass
class ContentActionView:
    """A section-level action declaration referenced by anchors in its narrative."""

    id: str
    type: str
    index: Optional[int] = None
    media: Optional[MediaView] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["ContentActionView"]:
        action_id = get_str(raw, "id")
        if not action_id:
            return None
        index = get_path(raw, "index")
        return cls(
            id=action_id,
            type=get_str(raw, "type").lower(),
            index=index if isinstance(index, int) and not isinstance(index, bool) else None,
            media=MediaView.from_raw(get_path(raw, "media")),
        )


@dataclass
class SectionView:
    """One journal or cascade section."""

    title: str
    content: str
    media: Optional[MediaView]
    actions: List[ContentActionView]
    type: str = ""

    @classmethod
    def from_raw(cls, raw: Any) -> "SectionView":
        actions = [ContentActionView.from_raw(item) for item in get_list(raw, "contentActions")]
        return cls(
            title=get_str(raw, "title"),
            content=get_str(raw, "content") or get_str(raw, "description"),
            media=MediaView.from_raw(get_path(raw, "media")),
            actions=[action for action in actions if action is not None],
            type=get_str(raw, "type"),
        )

    def action(self, action_id: str) -> Optional[ContentActionView]:
        for candidate in self.actions:
            if candidate.id == action_id:
                return candidate
        return None
