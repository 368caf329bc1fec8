# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.validation",
#   "purpose": "Post-conversion structural checks with a structured issue report",
#   "sections": [
#     {"id": "validationissue", "name": "ValidationIssue", "anchor": "class-validationissue", "kind": "class"},
#     {"id": "validationreport", "name": "ValidationReport", "anchor": "class-validationreport", "kind": "class"},
#     {"id": "validate-document", "name": "validate_document", "anchor": "function-validate-document", "kind": "function"},
#     {"id": "assert-valid", "name": "assert_valid", "anchor": "function-assert-valid", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""
Post-conversion validation.

The validator walks the finished graph once and reports every broken
invariant as a :class:`ValidationIssue` carrying a stable ``code`` and the
JSON-pointer-like ``path`` of the offending field. :func:`assert_valid` raises
:class:`~ClassicToStoryMaps.errors.ValidationFailure` with the full report so
callers can see which invariant broke.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from .document import Document, NodeKind, ResourceKind
from .errors import ValidationFailure

__all__ = ["ValidationIssue", "ValidationReport", "assert_valid", "validate_document"]

# node kind -> data fields that must be present
REQUIRED_FIELDS: Dict[NodeKind, Tuple[str, ...]] = {
    NodeKind.TEXT: ("text",),
    NodeKind.IMAGE: ("image",),
    NodeKind.WEBMAP: ("map",),
    NodeKind.BUTTON: ("text",),
    NodeKind.EMBED: ("url",),
}

# node kind -> data fields holding a resource id
RESOURCE_FIELDS: Dict[NodeKind, Tuple[str, ...]] = {
    NodeKind.IMAGE: ("image",),
    NodeKind.VIDEO: ("video",),
    NodeKind.WEBMAP: ("map",),
    NodeKind.STORY: ("storyTheme",),
}


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "path": self.path, "message": self.message}


@dataclass
class ValidationReport:
    """All issues found in one document."""

    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def codes(self) -> List[str]:
        return [issue.code for issue in self.issues]

    def add(self, code: str, path: str, message: str) -> None:
        self.issues.append(ValidationIssue(code, path, message))

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "issues": [issue.to_dict() for issue in self.issues]}


def _node_refs(kind: NodeKind, data: Mapping[str, Any]) -> Iterator[Tuple[str, Any]]:
    """Yield ``(path suffix, node id)`` for node ids held in node data."""

    if kind is NodeKind.SWIPE:
        contents = data.get("contents")
        if isinstance(contents, Mapping):
            for slot, node_id in contents.items():
                yield f"data/contents/{slot}", node_id
    elif kind is NodeKind.TOUR:
        yield "data/map", data.get("map")
        for index, place in enumerate(data.get("places") or []):
            if not isinstance(place, Mapping):
                continue
            for key in ("title", "media"):
                if place.get(key) is not None:
                    yield f"data/places/{index}/{key}", place[key]
            for offset, node_id in enumerate(place.get("contents") or []):
                yield f"data/places/{index}/contents/{offset}", node_id


def validate_document(document: Document) -> ValidationReport:
    """Check ``document`` for structural and referential problems."""

    report = ValidationReport()
    nodes = document.nodes
    resources = document.resources

    root = nodes.get(document.root)
    if root is None:
        report.add("ROOT_MISSING", "root", f"Root {document.root!r} is not a node")
    elif root.kind is not NodeKind.STORY:
        report.add("ROOT_NOT_STORY", "root", f"Root is {root.kind.value!r}, expected 'story'")
    story_count = sum(1 for node in nodes.values() if node.kind is NodeKind.STORY)
    if story_count > 1:
        report.add("MULTIPLE_STORY_NODES", "nodes", f"Found {story_count} story nodes")

    parents: Dict[str, str] = {}
    for node_id, node in nodes.items():
        for index, child in enumerate(node.children or []):
            path = f"nodes/{node_id}/children/{index}"
            if child not in nodes:
                report.add("DANGLING_CHILD", path, f"Child {child!r} does not exist")
                continue
            if child in parents:
                report.add(
                    "MULTIPLE_PARENTS", path, f"Node {child!r} is also a child of {parents[child]!r}"
                )
            parents[child] = node_id

    for node_id, node in nodes.items():
        data = node.data or {}
        for key in RESOURCE_FIELDS.get(node.kind, ()):
            ref = data.get(key)
            if ref is not None and ref not in resources:
                report.add(
                    "DANGLING_RESOURCE_REF", f"nodes/{node_id}/data/{key}", f"Resource {ref!r} does not exist"
                )
        if node.kind is NodeKind.TOUR_MAP:
            basemap = data.get("basemap")
            if isinstance(basemap, Mapping) and basemap.get("type") == "resource":
                if basemap.get("value") not in resources:
                    report.add(
                        "DANGLING_RESOURCE_REF",
                        f"nodes/{node_id}/data/basemap/value",
                        f"Basemap resource {basemap.get('value')!r} does not exist",
                    )
        for suffix, ref in _node_refs(node.kind, data):
            if ref not in nodes:
                report.add(
                    "DANGLING_RESOURCE_REF", f"nodes/{node_id}/{suffix}", f"Node {ref!r} does not exist"
                )
        for key in REQUIRED_FIELDS.get(node.kind, ()):
            if data.get(key) is None:
                report.add(
                    "MISSING_REQUIRED_FIELD",
                    f"nodes/{node_id}/data/{key}",
                    f"{node.kind.value} node is missing {key!r}",
                )

    for index, action in enumerate(document.actions):
        for key, ref in (("origin", action.origin), ("target", action.target), ("data/media", action.data.get("media"))):
            if ref is not None and ref not in nodes:
                report.add(
                    "DANGLING_ACTION_ENDPOINT", f"actions/{index}/{key}", f"Node {ref!r} does not exist"
                )

    if not document.resources_of_kind(ResourceKind.THEME):
        report.add("THEME_RESOURCE_MISSING", "resources", "Document has no story-theme resource")
    return report


def assert_valid(document: Document) -> ValidationReport:
    """Return the report, raising :class:`ValidationFailure` if it has issues."""

    report = validate_document(document)
    if not report.ok:
        raise ValidationFailure(report)
    return report
