# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.media_nodes",
#   "purpose": "Shared construction of image, video, embed, map, and swipe nodes",
#   "sections": [
#     {"id": "providers", "name": "Video Provider Detection", "anchor": "VID", "kind": "helpers"},
#     {"id": "mediacollector", "name": "MediaCollector", "anchor": "class-mediacollector", "kind": "class"},
#     {"id": "build-swipe-block", "name": "build_swipe_block", "anchor": "function-build-swipe-block", "kind": "function"},
#     {"id": "medianodefactory", "name": "MediaNodeFactory", "anchor": "class-medianodefactory", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""
Media node construction shared by the segmenter and every converter.

Primary section media, replacement media behind action buttons, and inline
images found in narrative markup all go through :class:`MediaNodeFactory`, so
a given classic media declaration always produces the same nodes and
resources. External image/video URLs that will need relocating are recorded in
a :class:`MediaCollector`; web map item ids never are.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from .builder import DocumentBuilder
from .classifier import TemplateFamily, detect_template
from .classic import MediaView, get_list, get_path, get_str, unwrap_values
from .geometry import extent_center, normalize_extent, viewpoint_for_extent

LOGGER = logging.getLogger(__name__)

__all__ = [
    "MediaCollector",
    "MediaNodeFactory",
    "build_swipe_block",
    "detect_video_provider",
    "parse_app_id",
]

_YOUTUBE = re.compile(
    r"(?:youtube\.com/(?:watch\?v=|embed/)|youtu\.be/)([A-Za-z0-9_-]{6,})(?:[&#?].*)?$",
    re.IGNORECASE,
)
_VIMEO = re.compile(r"vimeo\.com/(?:video/)?(\d+)(?:[&#?].*)?$", re.IGNORECASE)
_APP_ID = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)


def detect_video_provider(url: str) -> Tuple[str, Optional[str]]:
    """Return ``(provider, video_id)`` for YouTube/Vimeo URLs, else ``("unknown", None)``."""

    if not url:
        return "unknown", None
    match = _YOUTUBE.search(url)
    if match:
        return "youtube", match.group(1)
    match = _VIMEO.search(url)
    if match:
        return "vimeo", match.group(1)
    return "unknown", None


def parse_app_id(url: str) -> Optional[str]:
    """Extract a classic app item id from an ``appid=`` query or fragment parameter."""

    if not url:
        return None
    parsed = urlparse(url)
    for chunk in (parsed.query, parsed.fragment):
        params = {key.lower(): value for key, value in parse_qs(chunk).items()}
        candidate = (params.get("appid") or [""])[0]
        if _APP_ID.match(candidate):
            return candidate.lower()
    return None


class MediaCollector:
    """Ordered, de-duplicated set of external media URLs."""

    def __init__(self) -> None:
        self._urls: Dict[str, None] = {}

    def add(self, url: str) -> None:
        if url:
            self._urls.setdefault(url, None)

    @property
    def urls(self) -> List[str]:
        return list(self._urls)

    def __len__(self) -> int:
        return len(self._urls)


def _layer_entries(raw_layers: List[Any], visible: Optional[bool] = None) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    for raw in raw_layers:
        if isinstance(raw, Mapping):
            layer_id = get_str(raw, "id")
            title = get_str(raw, "title") or layer_id
            shown = bool(raw.get("visibility", raw.get("visible"))) if visible is None else visible
        else:
            layer_id = title = str(raw)
            shown = bool(visible)
        if layer_id:
            entries.append({"id": layer_id, "title": title, "visible": shown})
    return entries


def build_swipe_block(
    builder: DocumentBuilder, document: Mapping[str, Any], *, caption: Optional[str] = None
) -> Optional[str]:
    """Build a detached swipe node from classic swipe item data.

    ``TWO_WEBMAPS`` documents compare the first two listed web maps;
    ``TWO_LAYERS`` documents compare one web map with the listed layers hidden
    (left) and shown (right). Returns ``None`` when no web map is declared.
    """

    values = unwrap_values(document)
    model = get_str(values, "dataModel").upper() or "TWO_WEBMAPS"
    base_id = get_str(values, "webmap")

    if model == "TWO_LAYERS":
        if not base_id:
            return None
        resource_id = builder.add_webmap_resource(base_id)
        raw_layers = get_list(values, "layers")
        left = builder.create_webmap_node(resource_id)
        right = builder.create_webmap_node(resource_id)
        builder.update_node_data(left, {"mapLayers": _layer_entries(raw_layers, visible=False)})
        builder.update_node_data(right, {"mapLayers": _layer_entries(raw_layers, visible=True)})
        return builder.create_swipe_node(left, right, "extent", caption)

    item_ids: List[str] = []
    for entry in get_list(values, "webmaps"):
        item_id = entry if isinstance(entry, str) else get_str(entry, "id")
        if item_id:
            item_ids.append(item_id)
    if not item_ids and base_id:
        item_ids.append(base_id)
    if not item_ids:
        return None
    left_id, right_id = item_ids[0], item_ids[1] if len(item_ids) > 1 else item_ids[0]
    left = builder.create_webmap_node(builder.add_webmap_resource(left_id))
    right = builder.create_webmap_node(builder.add_webmap_resource(right_id))
    return builder.create_swipe_node(left, right, "extent", caption)


class MediaNodeFactory:
    """Creates detached media nodes for one conversion."""

    def __init__(
        self,
        builder: DocumentBuilder,
        collector: MediaCollector,
        *,
        embedded_documents: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.builder = builder
        self.collector = collector
        self.embedded_documents = {
            str(key).lower(): value for key, value in dict(embedded_documents or {}).items()
        }
        self.video_embeds = 0
        self.inline_swipes = 0

    def image(self, url: str, caption: str = "", alt: str = "", size: str = "standard") -> str:
        resource_id = self.builder.add_image_resource(url)
        self.collector.add(url)
        return self.builder.create_image_node(resource_id, caption, alt, size)

    def video(self, url: str, caption: str = "", alt: str = "", title: str = "") -> str:
        provider, video_id = detect_video_provider(url)
        if provider != "unknown":
            self.video_embeds += 1
            return self.builder.create_video_embed_node(
                url, provider, video_id, caption=caption, title=title or caption, alt=alt
            )
        resource_id = self.builder.add_video_resource(url, "uri")
        self.collector.add(url)
        return self.builder.create_video_node(resource_id, caption, alt)

    def webpage(
        self, url: str, caption: str = "", title: str = "", description: str = "", alt: str = ""
    ) -> str:
        """Build an inline swipe for supplied swipe apps, else a video or link embed."""

        app_id = parse_app_id(url)
        if app_id and app_id in self.embedded_documents:
            embedded = self.embedded_documents[app_id]
            if detect_template(embedded) is TemplateFamily.SWIPE:
                swipe_id = build_swipe_block(self.builder, embedded, caption=caption or None)
                if swipe_id is not None:
                    self.inline_swipes += 1
                    return swipe_id
        provider, _ = detect_video_provider(url)
        if provider != "unknown":
            return self.video(url, caption, alt, title)
        return self.builder.create_embed_node(url, caption, title, description, alt)

    def webmap(self, view: MediaView, caption: Optional[str] = None) -> str:
        extent = normalize_extent(view.extent)
        layers = _layer_entries(view.layers)
        view_fields = viewpoint_for_extent(extent)
        initial_state: Dict[str, Any] = {
            "extent": extent,
            "center": extent_center(extent) if extent else None,
            "mapLayers": layers or None,
            **view_fields,
        }
        resource_id = self.builder.add_webmap_resource(view.item_id, view.item_type, initial_state)
        node_id = self.builder.create_webmap_node(resource_id, caption)
        node_fields: Dict[str, Any] = {"extent": extent, **view_fields}
        if layers:
            node_fields["mapLayers"] = layers
        for toggle in ("overview", "legend"):
            settings = getattr(view, toggle)
            if settings and get_path(settings, "enable"):
                node_fields[toggle] = {"openByDefault": bool(get_path(settings, "openByDefault"))}
        self.builder.update_node_data(node_id, {k: v for k, v in node_fields.items() if v is not None})
        return node_id

    def from_view(
        self, view: Optional[MediaView], *, section_title: str = "", image_size: str = "wide"
    ) -> Optional[str]:
        """Build the node for a classic media declaration, or ``None`` if unusable."""

        if view is None:
            return None
        if view.kind == "image":
            return self.image(view.url, view.caption, view.alt, image_size)
        if view.kind == "webmap":
            caption = view.caption or None
            if section_title and not caption:
                prefix = "Scene" if view.item_type == "Web Scene" else "Map"
                caption = f"{prefix}: {section_title}"
            return self.webmap(view, caption)
        if view.kind == "video":
            return self.video(view.url, view.caption, view.alt, view.title)
        if view.kind == "webpage":
            return self.webpage(view.url, view.caption, view.title, view.description, view.alt)
        LOGGER.debug("Ignoring unsupported media kind", extra={"extra_fields": {"kind": view.kind}})
        return None
