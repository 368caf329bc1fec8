# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.enrichment",
#   "purpose": "Upgrade minimal web map/scene resources from fetched item data and record compatibility warnings",
#   "sections": [
#     {"id": "helpers", "name": "Summary Helpers", "anchor": "SUM", "kind": "helpers"},
#     {"id": "summarize-map-data", "name": "summarize_map_data", "anchor": "function-summarize-map-data", "kind": "function"},
#     {"id": "insecure-layer-urls", "name": "insecure_layer_urls", "anchor": "function-insecure-layer-urls", "kind": "function"},
#     {"id": "mapenrichmentservice", "name": "MapEnrichmentService", "anchor": "class-mapenrichmentservice", "kind": "class"},
#     {"id": "append-metadata-warnings", "name": "append_metadata_warnings", "anchor": "function-append-metadata-warnings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""
Map and scene enrichment.

Web map resources are created in a ``minimal`` state holding only an item id
and whatever the classic story declared. :class:`MapEnrichmentService` fetches
each item's data through the injected ``fetch_map_metadata(item_id)``
collaborator, concurrently, and rewrites the resource to the ``default`` state
with its extent, basemap and operational layer summaries and, for scenes, the
viewpoint and slides. Each task writes only the resource it owns.

A failed fetch leaves the resource minimal and becomes a warning. Two
compatibility checks run on every fetched map: a data-format version below the
configured minimum, and layer URLs served over plain ``http``. Both are
appended to the converter metadata resource under ``classicMetadata``.

Key Scenarios:
- One failing map never prevents a second map from being enriched
- Extent and viewpoint propagate to map nodes that were created without them
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .cancellation import CancellationToken, CancelPredicate, coerce_token
from .classic import first_present, get_list, get_mapping, get_path, get_str
from .concurrency import create_executor
from .document import Document, NodeKind, Resource, ResourceKind
from .errors import ConversionCancelled, ConversionWarning, EnrichmentFailure
from .geometry import WGS84_WKID, viewpoint_for_extent

LOGGER = logging.getLogger(__name__)

__all__ = [
    "FetchMapMetadata",
    "MapEnrichmentService",
    "append_metadata_warnings",
    "insecure_layer_urls",
    "parse_version",
    "summarize_map_data",
]

STAGE = "enrich"
MAP_ITEM_TYPES = ("Web Map", "Web Scene")

FetchMapMetadata = Callable[[str], Mapping[str, Any]]


def parse_version(value: Any) -> Optional[Tuple[int, ...]]:
    """Parse ``"2.10"`` style versions into comparable integer tuples."""

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        return None
    parts: List[int] = []
    for chunk in value.strip().split("."):
        if not chunk.isdigit():
            return None
        parts.append(int(chunk))
    return tuple(parts)


def _basemap_summary(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    summary = []
    for layer in get_list(raw, "baseMap", "baseMapLayers"):
        if not isinstance(layer, Mapping):
            continue
        summary.append(
            {
                "id": layer.get("id"),
                "title": layer.get("title"),
                "url": layer.get("url") or layer.get("styleUrl"),
                "opacity": layer.get("opacity"),
                "visibility": layer.get("visibility"),
                "layerType": layer.get("layerType"),
                "isReference": bool(layer.get("isReference", False)),
            }
        )
    return summary


def _operational_summary(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"id": layer.get("id"), "title": layer.get("title") or layer.get("id"), "visible": bool(layer.get("visibility", True))}
        for layer in get_list(raw, "operationalLayers")
        if isinstance(layer, Mapping)
    ]


def _center(raw: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    center = first_present(
        {
            "view": get_path(raw, "initialState", "view", "center"),
            "options": get_path(raw, "mapOptions", "center"),
            "top": raw.get("center"),
        },
        ("view", "options", "top"),
    )
    if isinstance(center, (list, tuple)) and len(center) >= 2:
        return {"x": center[0], "y": center[1], "spatialReference": {"wkid": WGS84_WKID}}
    if isinstance(center, Mapping):
        return dict(center)
    return None


def summarize_map_data(raw: Mapping[str, Any], item_type: str = "Web Map") -> Dict[str, Any]:
    """Return the ``default``-state fields for a web map or scene resource."""

    extent = first_present(
        {
            "view": get_path(raw, "initialState", "view", "extent"),
            "options": get_path(raw, "mapOptions", "extent"),
            "top": raw.get("extent"),
        },
        ("view", "options", "top"),
    )
    basemap_layers = _basemap_summary(raw)
    operational = _operational_summary(raw)
    fields: Dict[str, Any] = {
        "type": "default",
        "version": first_present(raw, ("version", "mapVersion", "webMapVersion")),
        "extent": dict(extent) if isinstance(extent, Mapping) else None,
        "center": _center(raw),
        "basemap": {"title": get_str(raw, "baseMap", "title") or None, "baseMapLayers": basemap_layers},
        "mapLayers": operational,
        "raw": {
            "summary": {
                "baseMapLayerCount": len(basemap_layers),
                "operationalLayerCount": len(operational),
            }
        },
    }
    if item_type == "Web Scene":
        viewpoint = get_path(raw, "initialState", "viewpoint")
        fields["viewpoint"] = dict(viewpoint) if isinstance(viewpoint, Mapping) else None
        fields["slides"] = [
            {"id": slide.get("id"), "title": get_str(slide, "title", "text") or None, "viewpoint": slide.get("viewpoint")}
            for slide in get_list(raw, "presentation", "slides")
            if isinstance(slide, Mapping)
        ]
        fields["environment"] = get_mapping(raw, "initialState", "environment") or None
    elif fields["extent"]:
        fields.update(viewpoint_for_extent(fields["extent"]))
    return fields


def insecure_layer_urls(raw: Mapping[str, Any]) -> List[str]:
    """Return every basemap/operational layer URL served over plain ``http``."""

    found: List[str] = []

    def visit(layers: Sequence[Any]) -> None:
        for layer in layers:
            if not isinstance(layer, Mapping):
                continue
            url = layer.get("url")
            if isinstance(url, str) and url.lower().startswith("http://") and url not in found:
                found.append(url)
            visit(get_list(layer, "layers"))

    visit(get_list(raw, "baseMap", "baseMapLayers"))
    visit(get_list(raw, "operationalLayers"))
    return found


def append_metadata_warnings(document: Document, key: str, entries: Sequence[Mapping[str, Any]]) -> None:
    """Append ``entries`` to ``classicMetadata[key]`` of the converter metadata resource.

    The resource is created (last in resource order) when the document has none.
    """

    if not entries:
        return
    resources = document.resources_of_kind(ResourceKind.CONVERTER_METADATA)
    if resources:
        resource = resources[0]
    else:
        resource_id = f"r-{uuid.uuid4().hex[:6]}"
        while resource_id in document.resources:
            resource_id = f"r-{uuid.uuid4().hex[:6]}"
        resource = Resource(
            resource_id,
            ResourceKind.CONVERTER_METADATA,
            {"typeConvertedTo": "storymap", "classicMetadata": {}},
        )
        document.resources[resource_id] = resource
    classic = resource.data.setdefault("classicMetadata", {})
    classic.setdefault(key, []).extend(dict(entry) for entry in entries)


@dataclass
class _Outcome:
    resource_id: str
    warning: Optional[ConversionWarning] = None
    version_warning: Optional[Dict[str, Any]] = None
    protocol_warning: Optional[Dict[str, Any]] = None
    enriched: bool = False


@dataclass
class EnrichmentReport:
    """Counts and warnings from one :meth:`MapEnrichmentService.enrich` call."""

    enriched: List[str] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)


class MapEnrichmentService:
    """Concurrently upgrades minimal map/scene resources of a document."""

    def __init__(
        self,
        fetch_fn: FetchMapMetadata,
        *,
        workers: int = 4,
        min_version: str = "2.0",
        cancel: "CancellationToken | CancelPredicate | None" = None,
        progress: Optional[Callable[[str, str], None]] = None,
        record_metadata: bool = True,
    ) -> None:
        self.fetch_fn = fetch_fn
        self.workers = max(1, int(workers))
        self.min_version = parse_version(min_version) or (2, 0)
        self.min_version_text = min_version
        self.token = coerce_token(cancel)
        self.progress = progress
        self.record_metadata = record_metadata

    def candidates(self, document: Document) -> List[Resource]:
        return [
            resource
            for resource in document.resources_of_kind(ResourceKind.WEBMAP)
            if resource.data.get("type") == "minimal"
            and resource.data.get("itemType", "Web Map") in MAP_ITEM_TYPES
            and resource.data.get("itemId")
        ]

    def enrich(self, document: Document) -> EnrichmentReport:
        """Enrich every minimal map resource of ``document`` in place.

        Raises:
            ConversionCancelled: If cancellation is requested before a fetch.
        """

        report = EnrichmentReport()
        targets = self.candidates(document)
        if not targets:
            return report
        outcomes: List[_Outcome] = []
        executor, needs_shutdown = create_executor(self.workers, thread_name_prefix="storymap-enrich")
        try:
            if executor is None:
                outcomes = [self._enrich_one(resource) for resource in targets]
            else:
                futures = [executor.submit(self._enrich_one, resource) for resource in targets]
                outcomes = [future.result() for future in as_completed(futures)]
        finally:
            if needs_shutdown and executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        by_id = {outcome.resource_id: outcome for outcome in outcomes}
        ordered = [by_id[resource.id] for resource in targets]
        report.enriched = [outcome.resource_id for outcome in ordered if outcome.enriched]
        report.warnings = [outcome.warning for outcome in ordered if outcome.warning is not None]
        if self.record_metadata:
            append_metadata_warnings(
                document, "webmapVersionWarnings", [o.version_warning for o in ordered if o.version_warning]
            )
            append_metadata_warnings(
                document, "webmapProtocolWarnings", [o.protocol_warning for o in ordered if o.protocol_warning]
            )
        self._propagate_to_nodes(document, report.enriched)
        LOGGER.info(
            "Map enrichment finished",
            extra={
                "extra_fields": {
                    "stage": STAGE,
                    "candidates": len(targets),
                    "enriched": len(report.enriched),
                    "failed": len(report.warnings),
                }
            },
        )
        return report

    def _enrich_one(self, resource: Resource) -> _Outcome:
        self.token.raise_if_cancelled(stage=STAGE)
        item_id = str(resource.data["itemId"])
        item_type = str(resource.data.get("itemType", "Web Map"))
        outcome = _Outcome(resource.id)
        try:
            raw = self.fetch_fn(item_id)
        except ConversionCancelled:
            raise
        except EnrichmentFailure as exc:
            outcome.warning = ConversionWarning(STAGE, "ENRICHMENT_FAILED", str(exc), item_id)
            return outcome
        except Exception as exc:
            LOGGER.warning(
                "Map metadata collaborator raised unexpectedly",
                extra={"extra_fields": {"stage": STAGE, "item_id": item_id, "error": repr(exc)}},
                exc_info=True,
            )
            outcome.warning = ConversionWarning(
                STAGE, "ENRICHMENT_FAILED", f"{type(exc).__name__}: {exc}", item_id
            )
            return outcome
        if not isinstance(raw, Mapping):
            outcome.warning = ConversionWarning(
                STAGE, "ENRICHMENT_FAILED", "Item data is not a JSON object", item_id
            )
            return outcome

        fields = summarize_map_data(raw, item_type)
        for key, value in fields.items():
            if value is None:
                continue
            if key in ("type", "version", "basemap", "raw", "slides", "environment"):
                resource.data[key] = value
            else:
                resource.data.setdefault(key, value)
        outcome.enriched = True

        version = parse_version(fields.get("version"))
        if version is not None and version < self.min_version:
            outcome.version_warning = {
                "itemId": item_id,
                "version": str(fields["version"]),
                "minimum": self.min_version_text,
            }
        insecure = insecure_layer_urls(raw)
        if insecure:
            outcome.protocol_warning = {"itemId": item_id, "insecureUrls": insecure}
        if self.progress is not None:
            self.progress(STAGE, f"enriched {item_type} {item_id}")
        return outcome

    @staticmethod
    def _propagate_to_nodes(document: Document, resource_ids: Sequence[str]) -> None:
        enriched = set(resource_ids)
        for node in document.iter_kind(NodeKind.WEBMAP):
            data = node.data or {}
            resource_id = data.get("map")
            if resource_id not in enriched:
                continue
            resource = document.resources[resource_id].data
            for key in ("extent", "viewpoint", "zoom"):
                if data.get(key) is None and resource.get(key) is not None:
                    data[key] = resource[key]
            node.data = data
