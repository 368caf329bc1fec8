# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.document",
#   "purpose": "Typed node, resource, and action records for StoryMaps document graphs",
#   "sections": [
#     {"id": "nodekind", "name": "NodeKind", "anchor": "class-nodekind", "kind": "class"},
#     {"id": "resourcekind", "name": "ResourceKind", "anchor": "class-resourcekind", "kind": "class"},
#     {"id": "node", "name": "Node", "anchor": "class-node", "kind": "class"},
#     {"id": "resource", "name": "Resource", "anchor": "class-resource", "kind": "class"},
#     {"id": "action", "name": "Action", "anchor": "class-action", "kind": "class"},
#     {"id": "storymeta", "name": "StoryMeta", "anchor": "class-storymeta", "kind": "class"},
#     {"id": "document", "name": "Document", "anchor": "class-document", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""StoryMaps document graph records.

A :class:`Document` is a flat map of nodes and a flat map of resources plus an
action list. Nodes reference each other only through ordered ``children`` id
lists (and a few kind-specific data fields such as a swipe's ``contents`` or a
tour's ``map``); they never hold parent pointers. Resources are referenced by
id from node data. Serialisation via :meth:`Document.to_dict` produces the
StoryMaps draft JSON shape (``root``, ``nodes``, ``resources``, ``actions``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional

__all__ = ["Action", "Document", "Node", "NodeKind", "Resource", "ResourceKind", "StoryMeta"]


class NodeKind(str, Enum):
    """Node types emitted into the StoryMaps graph."""

    STORY = "story"
    STORY_COVER = "storycover"
    NAVIGATION = "navigation"
    CREDITS = "credits"
    ATTRIBUTION = "attribution"
    IMMERSIVE = "immersive"
    IMMERSIVE_SLIDE = "immersive-slide"
    NARRATIVE_PANEL = "immersive-narrative-panel"
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    EMBED = "embed"
    WEBMAP = "webmap"
    SWIPE = "swipe"
    GALLERY = "gallery"
    BUTTON = "button"
    ACTION_BUTTON = "action-button"
    TOUR_MAP = "tour-map"
    TOUR = "tour"
    CAROUSEL = "carousel"


class ResourceKind(str, Enum):
    """Resource types referenced by node data."""

    IMAGE = "image"
    VIDEO = "video"
    WEBMAP = "webmap"
    THEME = "story-theme"
    CONVERTER_METADATA = "converter-metadata"


@dataclass
class Node:
    """One typed node. ``children`` order is reading order."""

    id: str
    kind: NodeKind
    data: Optional[Dict[str, Any]] = None
    config: Optional[Dict[str, Any]] = None
    children: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.kind.value}
        if self.data is not None:
            payload["data"] = _drop_none(self.data)
        if self.config is not None:
            payload["config"] = dict(self.config)
        if self.children is not None:
            payload["children"] = list(self.children)
        return payload


@dataclass
class Resource:
    """A shared asset referenced by id from node data."""

    id: str
    kind: ResourceKind
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_owned(self) -> bool:
        """True once media has been relocated into item resources."""
        return self.data.get("provider") == "item-resource"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "data": _drop_none(self.data)}


@dataclass
class Action:
    """A cross-node behaviour such as an action button swapping slide media."""

    origin: str
    trigger: str
    target: str
    event: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin,
            "trigger": self.trigger,
            "target": self.target,
            "event": self.event,
            "data": dict(self.data),
        }


@dataclass
class StoryMeta:
    """Item-level story metadata (title, summary, cover image resource)."""

    title: str
    description: str = ""
    image_resource_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "imageResourceId": self.image_resource_id,
        }


@dataclass
class Document:
    """A finalised StoryMaps document graph."""

    root: str
    nodes: Dict[str, Node]
    resources: Dict[str, Resource]
    actions: List[Action] = field(default_factory=list)
    meta: Optional[StoryMeta] = None

    def iter_kind(self, kind: NodeKind) -> Iterator[Node]:
        return (node for node in self.nodes.values() if node.kind is kind)

    def resources_of_kind(self, kind: ResourceKind) -> List[Resource]:
        return [res for res in self.resources.values() if res.kind is kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "resources": {res_id: res.to_dict() for res_id, res in self.resources.items()},
            "actions": [action.to_dict() for action in self.actions],
        }


def _drop_none(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}
