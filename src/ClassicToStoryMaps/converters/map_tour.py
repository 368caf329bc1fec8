# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.converters.map_tour",
#   "purpose": "Convert Map Tour stories into a tour-map plus guided or explorer tour",
#   "sections": [
#     {"id": "keys", "name": "Attribute Keys", "anchor": "KEYS", "kind": "constants"},
#     {"id": "helpers", "name": "Place Helpers", "anchor": "HLP", "kind": "helpers"},
#     {"id": "maptourconverter", "name": "MapTourConverter", "anchor": "class-maptourconverter", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""
Map Tour converter.

Places come from ``values.places`` (or the features of an embedded feature
collection) in the order given by ``values.order``. Each place becomes an
entry of a ``tour`` node with a title, a description, and a carousel of its
image and thumbnail; its point geometry lands in the ``tour-map`` node.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..classic import get_bool, get_list, get_mapping, get_str
from ..classifier import TemplateFamily
from ..geometry import looks_projected, mercator_to_lonlat
from .base import BaseConverter

LOGGER = logging.getLogger(__name__)

__all__ = ["MapTourConverter"]

TITLE_KEYS = ("name", "Name", "NAME", "title", "Title", "TITLE")
DESCRIPTION_KEYS = (
    "description", "Description", "DESCRIPTION", "desc", "Desc", "DESC",
    "desc1", "Desc1", "DESC1", "caption", "Caption", "CAPTION", "FULL_Caption",
)
IMAGE_KEYS = ("pic_url", "Pic_url", "PIC_URL", "url", "Url", "URL")
THUMB_KEYS = ("thumb_url", "Thumb_url", "THUMB_URL")
LON_KEYS = ("long", "Long", "LONG", "LON", "lon", "longitude", "Longitude", "LONGITUDE", "x")
LAT_KEYS = ("lat", "Lat", "LAT", "latitude", "Latitude", "LATITUDE", "y")
FEATURE_ID_KEYS = ("__OBJECTID", "objectid", "OBJECTID", "ObjectID", "id", "ID", "FID", "fid")

ACCENT_COLOR = "#f9f794"
PLACE_SCALE = 4514
EXPLORER_THRESHOLD = 15

# classic layout -> (tour type, subtype)
_LAYOUTS = {
    "three-panel": ("guided-tour", "media-focused"),
    "side-panel": ("guided-tour", "media-focused"),
    "integrated": ("guided-tour", "map-focused"),
}


def _first_text(place: Mapping[str, Any], keys: Sequence[str]) -> str:
    for key in keys:
        value = place.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def _coords(place: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    """Return ``(lon, lat)`` from attributes or geometry, unprojecting Web Mercator."""

    try:
        lon, lat = float(_first_text(place, LON_KEYS)), float(_first_text(place, LAT_KEYS))
    except ValueError:
        lon = lat = None
    if lon is not None and lat is not None and not looks_projected(lon, lat):
        return lon, lat
    geometry = get_mapping(place, "geometry")
    x, y = geometry.get("x"), geometry.get("y")
    if not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
        return None
    if looks_projected(x, y):
        x, y = mercator_to_lonlat(x, y)
    if looks_projected(x, y):
        return None
    return float(x), float(y)


def _features_to_places(features: Sequence[Any]) -> List[Dict[str, Any]]:
    places: List[Dict[str, Any]] = []
    for index, feature in enumerate(features):
        attributes = get_mapping(feature, "attributes")
        feature_id = _first_text(attributes, FEATURE_ID_KEYS) or str(index)
        places.append({**attributes, "id": feature_id, "geometry": get_mapping(feature, "geometry")})
    return places


class MapTourConverter(BaseConverter):
    """Ordered places to a ``tour`` node over a ``tour-map`` node."""

    family = TemplateFamily.MAP_TOUR
    classic_type = "MapTour"

    def __init__(self, document, **kwargs: Any) -> None:
        super().__init__(document, **kwargs)
        self.places: List[Dict[str, Any]] = []

    def extract_structure(self) -> None:
        raw_places = [dict(place) for place in get_list(self.values, "places") if isinstance(place, Mapping)]
        if not raw_places:
            features: List[Any] = []
            for layer in get_list(self.values, "featureCollection", "layers"):
                features.extend(get_list(layer, "featureSet", "features"))
            raw_places = _features_to_places(features)

        by_id = {str(place.get("id")): place for place in raw_places if place.get("id") is not None}
        order = get_list(self.values, "order") or [
            {"id": place.get("id"), "visible": place.get("visible", True) is not False}
            for place in raw_places
        ]
        for entry in order:
            place = by_id.get(str(entry.get("id"))) if isinstance(entry, Mapping) else None
            if place is None:
                continue
            self.places.append({**place, "visible": entry.get("visible", True) is not False})
        self.emit(f"{self.classic_type}: {len(self.places)} ordered place(s)")

    def convert_content(self) -> None:
        self.build_scaffold()
        geometries: Dict[str, Any] = {}
        tour_places: List[Dict[str, Any]] = []
        cover_resource: Optional[str] = None

        for index, place in enumerate(self.places):
            image_nodes: List[str] = []
            image_resource: Optional[str] = None
            for keys in (IMAGE_KEYS, THUMB_KEYS):
                url = _first_text(place, keys)
                if not url:
                    continue
                resource_id = self.builder.add_image_resource(url)
                self.collector.add(url)
                image_nodes.append(self.builder.create_image_node(resource_id, size="standard"))
                if image_resource is None:
                    image_resource = resource_id
            if index == 0 and get_bool(self.values, "firstRecordAsIntro") and image_resource:
                cover_resource = image_resource

            title_id = self.builder.create_text_node(
                _first_text(place, TITLE_KEYS) or f"Place {index + 1}", "h3"
            )
            content_id = self.builder.create_text_node(_first_text(place, DESCRIPTION_KEYS), "paragraph")
            feature_id = self.builder.new_node_id()
            coords = _coords(place)
            if coords is not None:
                geometries[feature_id] = {
                    "id": feature_id,
                    "type": "POINT_NUMBERED_TOUR",
                    "nodes": [{"long": coords[0], "lat": coords[1]}],
                    "viewpoint": {},
                    "scale": PLACE_SCALE,
                }
            else:
                LOGGER.debug(
                    "Tour place has no usable coordinates",
                    extra={"extra_fields": {"place": str(place.get("id"))}},
                )
            entry: Dict[str, Any] = {
                "id": self.builder.new_node_id(),
                "featureId": feature_id,
                "title": title_id,
                "contents": [content_id],
            }
            if image_nodes:
                entry["media"] = self.builder.create_carousel_node(image_nodes)
            if not place["visible"]:
                entry["config"] = {"isHidden": True}
            tour_places.append(entry)

        layout = get_str(self.values, "layout") or "integrated"
        if len(tour_places) > EXPLORER_THRESHOLD:
            tour_type, subtype = "explorer", "grid"
        else:
            tour_type, subtype = _LAYOUTS.get(layout, _LAYOUTS["integrated"])
        placard = "end" if get_str(self.values, "placardPosition") == "end" else "start"

        map_id = self.builder.create_tour_map_node(geometries, get_str(self.values, "webmap") or None)
        tour_id = self.builder.create_tour_node(
            tour_places, map_id, ACCENT_COLOR, placard, "large", tour_type, subtype
        )
        self.builder.append_to_root(map_id)
        self.builder.append_to_root(tour_id)

        self.builder.set_story_meta(self.title, self.subtitle, cover_resource)
        self.record_metadata(
            {"templateVersion": self.template_version(), "layoutMapping": {
                "classicLayout": layout, "tourType": tour_type, "subtype": subtype,
            }}
        )
        self.emit(f"{self.classic_type}: built {len(tour_places)} place(s); layout={layout} -> {tour_type}/{subtype}")
