# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.builder",
#   "purpose": "Stateful construction API for StoryMaps document graphs",
#   "sections": [
#     {"id": "refs", "name": "SidecarScaffold / SlideRef", "anchor": "REF", "kind": "api"},
#     {"id": "documentbuilder", "name": "DocumentBuilder", "anchor": "class-documentbuilder", "kind": "class"},
#     {"id": "scaffold", "name": "Scaffold Nodes", "anchor": "SCF", "kind": "api"},
#     {"id": "resources", "name": "Resource Factories", "anchor": "RES", "kind": "api"},
#     {"id": "factories", "name": "Detached Node Factories", "anchor": "FAC", "kind": "api"},
#     {"id": "metadata", "name": "Converter Metadata", "anchor": "META", "kind": "api"},
#     {"id": "finalize", "name": "Finalize", "anchor": "FIN", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
"""
Document graph builder.

The builder is the only writer of an in-progress document. It owns the node
map, resource map, and action list for exactly one conversion and enforces the
structural invariants of the target graph as each operation runs:

- exactly one ``story`` root, created once;
- node and resource ids are unique within the conversion;
- a node appears in at most one ``children`` list;
- removing a node scrubs it from its parent and from any action;
- actions are only recorded once both endpoints exist.

Violations raise :class:`~ClassicToStoryMaps.errors.BuilderInvariantError`
immediately. Every mutating operation is O(1) or O(children); full-graph
passes happen only in :meth:`DocumentBuilder.finalize`.

Usage:
    builder = DocumentBuilder("summit")
    root = builder.create_story_root()
    builder.add_cover("Title")
    document = builder.finalize()
"""

from __future__ import annotations

import copy
import itertools
import logging
import random
import string
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from . import __version__
from .document import Action, Document, Node, NodeKind, Resource, ResourceKind, StoryMeta
from .errors import BuilderInvariantError

LOGGER = logging.getLogger(__name__)

__all__ = ["DocumentBuilder", "SidecarScaffold", "SlideRef"]

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 6

YOUTUBE_EMBED = "https://www.youtube.com/embed/{video_id}"
VIMEO_EMBED = "https://player.vimeo.com/video/{video_id}"


@dataclass(frozen=True)
class SidecarScaffold:
    """Ids created by :meth:`DocumentBuilder.add_sidecar_scaffold`."""

    container_id: str
    slide_id: str
    narrative_id: str


@dataclass(frozen=True)
class SlideRef:
    """Ids created by :meth:`DocumentBuilder.add_slide_to_sidecar`."""

    slide_id: str
    narrative_id: str


class DocumentBuilder:
    """Owns and mutates one in-progress StoryMaps document graph."""

    def __init__(
        self,
        theme_id: str = "summit",
        *,
        suppress_metadata: bool = False,
        seed: Optional[int] = None,
    ) -> None:
        self._rng = random.Random(seed)
        self._nodes: Dict[str, Node] = {}
        self._resources: Dict[str, Resource] = {}
        self._actions: Dict[int, Action] = {}
        # node id -> keys of the actions that reference it
        self._actions_by_node: Dict[str, Set[int]] = {}
        self._action_keys = itertools.count()
        # child id -> parent id; keeps the one-parent check O(1)
        self._parent: Dict[str, str] = {}
        self._root_id: Optional[str] = None
        self._metadata_id: Optional[str] = None
        self._suppress_metadata = suppress_metadata
        self.story_meta: Optional[StoryMeta] = None
        self.theme_resource_id = self._new_id("r")
        self._resources[self.theme_resource_id] = Resource(
            id=self.theme_resource_id,
            kind=ResourceKind.THEME,
            data={"themeId": theme_id, "themeBaseVariableOverrides": {}},
        )

    # ------------------------------------------------------------------
    # Identifiers and lookups
    # ------------------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        while True:
            suffix = "".join(self._rng.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
            candidate = f"{prefix}-{suffix}"
            if candidate not in self._nodes and candidate not in self._resources:
                return candidate

    def new_node_id(self) -> str:
        """Reserve a fresh node id without creating a node."""
        return self._new_id("n")

    @property
    def root_id(self) -> str:
        if self._root_id is None:
            raise BuilderInvariantError("Story root has not been created")
        return self._root_id

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise BuilderInvariantError(f"Unknown node id {node_id!r}") from None

    def get_resource(self, resource_id: str) -> Resource:
        try:
            return self._resources[resource_id]
        except KeyError:
            raise BuilderInvariantError(f"Unknown resource id {resource_id!r}") from None

    def parent_of(self, node_id: str) -> Optional[str]:
        return self._parent.get(node_id)

    # ------------------------------------------------------------------
    # Core graph primitives
    # ------------------------------------------------------------------

    def create_story_root(self) -> str:
        """Create the single ``story`` root node."""

        if self._root_id is not None:
            raise BuilderInvariantError("Story root already exists")
        root_id = self._insert(
            NodeKind.STORY,
            data={"storyTheme": self.theme_resource_id},
            config={"coverDate": "", "shouldPushMetaToAGOItemDetails": False},
            children=[],
        )
        self._root_id = root_id
        return root_id

    def _insert(
        self,
        kind: NodeKind,
        data: Optional[Dict[str, Any]] = None,
        config: Optional[Dict[str, Any]] = None,
        children: Optional[List[str]] = None,
    ) -> str:
        node_id = self._new_id("n")
        self._nodes[node_id] = Node(id=node_id, kind=kind, data=data, config=config, children=None)
        if children is not None:
            self._nodes[node_id].children = []
            for child in children:
                self.add_child(node_id, child)
        return node_id

    def add_node(
        self,
        kind: NodeKind,
        data: Optional[Mapping[str, Any]] = None,
        config: Optional[Mapping[str, Any]] = None,
        children: Optional[Sequence[str]] = None,
    ) -> str:
        """Insert a detached node and return its id.

        ``children`` must already exist and be unattached; they are adopted by
        the new node in the given order.
        """

        if kind is NodeKind.STORY:
            raise BuilderInvariantError("Use create_story_root() for the story node")
        return self._insert(
            kind,
            data=dict(data) if data is not None else None,
            config=dict(config) if config is not None else None,
            children=list(children) if children is not None else None,
        )

    def add_child(self, parent_id: str, child_id: str, *, before: Optional[str] = None) -> None:
        """Append ``child_id`` to ``parent_id`` (or insert it ahead of ``before``)."""

        parent = self.get_node(parent_id)
        self.get_node(child_id)
        if child_id == parent_id:
            raise BuilderInvariantError(f"Node {parent_id!r} cannot be its own child")
        if child_id == self._root_id:
            raise BuilderInvariantError("The story root cannot be attached to a parent")
        current = self._parent.get(child_id)
        if current is not None:
            raise BuilderInvariantError(
                f"Node {child_id!r} already has parent {current!r}; cannot attach to {parent_id!r}"
            )
        if parent.children is None:
            parent.children = []
        if before is not None and before in parent.children:
            parent.children.insert(parent.children.index(before), child_id)
        else:
            parent.children.append(child_id)
        self._parent[child_id] = parent_id

    def detach(self, node_id: str) -> None:
        """Remove ``node_id`` from its parent's children without deleting it."""

        parent_id = self._parent.pop(node_id, None)
        if parent_id is None:
            return
        parent = self._nodes.get(parent_id)
        if parent is not None and parent.children:
            parent.children = [child for child in parent.children if child != node_id]

    def remove_node(self, node_id: str) -> None:
        """Delete a node, scrubbing it from its parent and from any action."""

        node = self.get_node(node_id)
        if node_id == self._root_id:
            raise BuilderInvariantError("The story root cannot be removed")
        self.detach(node_id)
        for child in node.children or ():
            self._parent.pop(child, None)
        for key in self._actions_by_node.pop(node_id, ()):
            action = self._actions.pop(key)
            for other in _action_endpoints(action):
                if other != node_id:
                    self._actions_by_node.get(other, set()).discard(key)
        del self._nodes[node_id]

    def update_node_data(self, node_id: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``fields`` into a node's data and return the live mapping."""

        node = self.get_node(node_id)
        if node.data is None:
            node.data = {}
        node.data.update(fields)
        return node.data

    def update_node_config(self, node_id: str, fields: Mapping[str, Any]) -> None:
        node = self.get_node(node_id)
        if node.config is None:
            node.config = {}
        node.config.update(fields)

    # ------------------------------------------------------------------
    # Scaffold
    # ------------------------------------------------------------------

    def _root_insert(self, node_id: str) -> None:
        credits = self._find_root_child(NodeKind.CREDITS)
        self.add_child(self.root_id, node_id, before=credits)

    def _find_root_child(self, kind: NodeKind) -> Optional[str]:
        for child in self.get_node(self.root_id).children or ():
            if self._nodes[child].kind is kind:
                return child
        return None

    def add_cover(self, title: str, subtitle: str = "", byline: str = "") -> str:
        cover_id = self.add_node(
            NodeKind.STORY_COVER,
            data={
                "type": "minimal",
                "title": title,
                "summary": subtitle,
                "byline": byline,
                "titlePanelVerticalPosition": "top",
                "titlePanelHorizontalPosition": "start",
                "titlePanelStyle": "gradient",
            },
        )
        self._root_insert(cover_id)
        return cover_id

    def add_hidden_navigation(self) -> str:
        nav_id = self.add_node(
            NodeKind.NAVIGATION, data={"links": []}, config={"isHidden": True}
        )
        self._root_insert(nav_id)
        return nav_id

    def add_credits(self) -> str:
        if self._find_root_child(NodeKind.CREDITS) is not None:
            raise BuilderInvariantError("Credits node already exists")
        first = self.create_text_node("", "paragraph")
        second = self.create_text_node("", "paragraph")
        attribution = self.add_node(NodeKind.ATTRIBUTION, data={"content": "", "attribution": ""})
        credits_id = self.add_node(NodeKind.CREDITS, children=[first, second, attribution])
        self.add_child(self.root_id, credits_id)
        return credits_id

    def append_to_root(self, node_id: str) -> None:
        """Attach a content node to the root, ahead of credits when present."""
        self._root_insert(node_id)

    def add_sidecar_scaffold(
        self,
        subtype: str = "docked-panel",
        panel_position: str = "end",
        panel_size: str = "medium",
    ) -> SidecarScaffold:
        """Create an immersive container holding one placeholder slide.

        Callers add real slides with :meth:`add_slide_to_sidecar` and then
        remove the placeholder slide and narrative with :meth:`remove_node`.
        """

        narrative_id = self.add_node(
            NodeKind.NARRATIVE_PANEL, data={"panelStyle": "themed"}, children=[]
        )
        slide_id = self.add_node(
            NodeKind.IMMERSIVE_SLIDE, data={"transition": "fade"}, children=[narrative_id]
        )
        container_id = self.add_node(
            NodeKind.IMMERSIVE,
            data={
                "type": "sidecar",
                "subtype": subtype,
                "narrativePanelPosition": panel_position,
                "narrativePanelSize": panel_size,
            },
            children=[slide_id],
        )
        self._root_insert(container_id)
        return SidecarScaffold(container_id, slide_id, narrative_id)

    def add_slide_to_sidecar(
        self,
        container_id: str,
        narrative_ids: Iterable[str],
        media_id: Optional[str] = None,
    ) -> SlideRef:
        """Wrap existing content nodes into a new narrative panel and slide."""

        container = self.get_node(container_id)
        if container.kind is not NodeKind.IMMERSIVE:
            raise BuilderInvariantError(f"Node {container_id!r} is not an immersive container")
        narrative_id = self.add_node(
            NodeKind.NARRATIVE_PANEL, data={"panelStyle": "themed"}, children=list(narrative_ids)
        )
        slide_children = [narrative_id] if media_id is None else [narrative_id, media_id]
        slide_id = self.add_node(
            NodeKind.IMMERSIVE_SLIDE, data={"transition": "fade"}, children=slide_children
        )
        self.add_child(container_id, slide_id)
        return SlideRef(slide_id, narrative_id)

    # ------------------------------------------------------------------
    # Theme and story metadata
    # ------------------------------------------------------------------

    def apply_theme(self, theme_id: str, overrides: Optional[Mapping[str, Any]] = None) -> None:
        """Mutate the single theme resource in place."""

        theme = self._resources[self.theme_resource_id]
        theme.data["themeId"] = theme_id
        if overrides:
            theme.data["themeBaseVariableOverrides"] = dict(overrides)

    def set_story_meta(
        self, title: str, description: str = "", image_resource_id: Optional[str] = None
    ) -> None:
        if image_resource_id is not None:
            self.get_resource(image_resource_id)
        self.story_meta = StoryMeta(title, description or "", image_resource_id)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def add_image_resource(
        self, url: str, width: Optional[int] = None, height: Optional[int] = None
    ) -> str:
        res_id = self._new_id("r")
        self._resources[res_id] = Resource(
            res_id,
            ResourceKind.IMAGE,
            {"src": url, "provider": "uri", "width": width, "height": height},
        )
        return res_id

    def add_video_resource(self, url: str, provider: str = "uri") -> str:
        res_id = self._new_id("r")
        self._resources[res_id] = Resource(res_id, ResourceKind.VIDEO, {"src": url, "provider": provider})
        return res_id

    def add_webmap_resource(
        self,
        item_id: str,
        item_type: str = "Web Map",
        initial_state: Optional[Mapping[str, Any]] = None,
        variant: str = "minimal",
    ) -> str:
        """Create or merge the map/scene resource for ``item_id``.

        Map resources are keyed ``r-{item_id}`` so every node showing the same
        item shares one resource.
        """

        if not item_id:
            raise BuilderInvariantError("A web map resource needs an item id")
        res_id = f"r-{item_id}"
        state = {k: v for k, v in dict(initial_state or {}).items() if v is not None}
        existing = self._resources.get(res_id)
        if existing is not None:
            if existing.kind is not ResourceKind.WEBMAP:
                raise BuilderInvariantError(f"Resource {res_id!r} is not a web map")
            existing.data.update(state)
            return res_id
        data: Dict[str, Any] = {"type": variant, "itemId": item_id, "itemType": item_type}
        data.update(state)
        self._resources[res_id] = Resource(res_id, ResourceKind.WEBMAP, data)
        return res_id

    def update_resource_data(self, resource_id: str, fields: Mapping[str, Any]) -> None:
        resource = self.get_resource(resource_id)
        resource.data.update({k: v for k, v in fields.items() if v is not None})

    # ------------------------------------------------------------------
    # Detached node factories
    # ------------------------------------------------------------------

    def create_text_node(self, text: str, text_type: str = "paragraph", size: str = "wide") -> str:
        return self.add_node(
            NodeKind.TEXT,
            data={"text": text, "type": text_type, "textAlignment": "start"},
            config={"size": size},
        )

    def create_rich_text_node(
        self, html: str, text_type: str = "paragraph", size: str = "wide"
    ) -> str:
        """Create a text node whose markup is stored verbatim."""
        return self.add_node(
            NodeKind.TEXT,
            data={"text": html, "type": text_type, "textAlignment": "start", "preserveHtml": True},
            config={"size": size},
        )

    def create_image_node(
        self, resource_id: str, caption: str = "", alt: str = "", size: str = "standard"
    ) -> str:
        self.get_resource(resource_id)
        return self.add_node(
            NodeKind.IMAGE,
            data={"image": resource_id, "caption": caption or None, "alt": alt or ""},
            config={"size": size},
        )

    def create_video_node(self, resource_id: str, caption: str = "", alt: str = "") -> str:
        self.get_resource(resource_id)
        return self.add_node(
            NodeKind.VIDEO, data={"video": resource_id, "caption": caption or None, "alt": alt or ""}
        )

    def create_video_embed_node(
        self,
        url: str,
        provider: str,
        video_id: Optional[str] = None,
        *,
        caption: str = "",
        title: str = "",
        description: str = "",
        alt: str = "",
        aspect_ratio: str = "16:9",
    ) -> str:
        embed_src = url
        if provider == "youtube" and video_id:
            embed_src = YOUTUBE_EMBED.format(video_id=video_id)
        elif provider == "vimeo" and video_id:
            embed_src = VIMEO_EMBED.format(video_id=video_id)
        return self.add_node(
            NodeKind.EMBED,
            data={
                "url": url,
                "embedSrc": embed_src,
                "embedType": "video",
                "provider": provider,
                "videoId": video_id,
                "title": title or None,
                "description": description or None,
                "caption": caption or None,
                "alt": alt or "",
                "isEmbedSupported": True,
                "display": "inline",
                "aspectRatio": aspect_ratio,
            },
        )

    def create_embed_node(
        self, url: str, caption: str = "", title: str = "", description: str = "", alt: str = ""
    ) -> str:
        return self.add_node(
            NodeKind.EMBED,
            data={
                "url": url,
                "embedType": "link",
                "title": title or None,
                "description": description or None,
                "caption": caption or None,
                "alt": alt or "",
                "isEmbedSupported": True,
                "display": "inline",
                "embedSrc": url,
            },
        )

    def create_webmap_node(self, resource_id: str, caption: Optional[str] = None) -> str:
        self.get_resource(resource_id)
        return self.add_node(
            NodeKind.WEBMAP, data={"map": resource_id, "caption": caption}, config={"size": "standard"}
        )

    def create_swipe_node(
        self,
        content_a: str,
        content_b: str,
        view_placement: str = "extent",
        caption: Optional[str] = None,
    ) -> str:
        self.get_node(content_a)
        self.get_node(content_b)
        return self.add_node(
            NodeKind.SWIPE,
            data={
                "contents": {"0": content_a, "1": content_b},
                "viewPlacement": view_placement,
                "caption": caption,
            },
            config={"size": "full"},
        )

    def create_action_button_node(self, text: str, size: str = "wide") -> str:
        return self.add_node(NodeKind.ACTION_BUTTON, data={"text": text}, config={"size": size})

    def create_button_node(self, text: str, size: str = "wide", link: Optional[str] = None) -> str:
        return self.add_node(NodeKind.BUTTON, data={"text": text, "link": link}, config={"size": size})

    def set_button_link(self, button_id: str, link: str) -> None:
        node = self.get_node(button_id)
        if node.kind is not NodeKind.BUTTON:
            raise BuilderInvariantError(f"Node {button_id!r} is not a button")
        self.update_node_data(button_id, {"link": link})

    def create_carousel_node(self, image_ids: Sequence[str]) -> str:
        """Create a carousel over at most the first five image nodes."""
        return self.add_node(NodeKind.CAROUSEL, children=list(image_ids)[:5])

    def create_tour_map_node(
        self,
        geometries: Mapping[str, Any],
        webmap_item_id: Optional[str] = None,
        mode: str = "2d",
    ) -> str:
        basemap: Dict[str, Any] = {"type": "name", "value": "worldImagery"}
        if webmap_item_id:
            basemap = {"type": "resource", "value": self.add_webmap_resource(webmap_item_id)}
        return self.add_node(
            NodeKind.TOUR_MAP, data={"geometries": dict(geometries), "mode": mode, "basemap": basemap}
        )

    def create_tour_node(
        self,
        places: Sequence[Mapping[str, Any]],
        map_node_id: str,
        accent_color: str,
        placard_position: str = "start",
        panel_size: str = "large",
        tour_type: str = "guided-tour",
        subtype: str = "map-focused",
    ) -> str:
        self.get_node(map_node_id)
        return self.add_node(
            NodeKind.TOUR,
            data={
                "type": tour_type,
                "subtype": subtype,
                "narrativePanelPosition": placard_position,
                "map": map_node_id,
                "places": [dict(place) for place in places],
                "narrativePanelSize": panel_size,
                "accentColor": accent_color,
            },
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def register_replace_media_action(self, origin_id: str, slide_id: str, media_id: str) -> None:
        """Record that pressing ``origin_id`` shows ``media_id`` in ``slide_id``."""

        for node_id in (origin_id, slide_id, media_id):
            self.get_node(node_id)
        if self._nodes[slide_id].kind is not NodeKind.IMMERSIVE_SLIDE:
            raise BuilderInvariantError(f"Action target {slide_id!r} is not a slide")
        action = Action(
            origin=origin_id,
            trigger="ActionButton_Apply",
            target=slide_id,
            event="ImmersiveSlide_ReplaceMedia",
            data={"media": media_id},
        )
        key = next(self._action_keys)
        self._actions[key] = action
        for node_id in _action_endpoints(action):
            self._actions_by_node.setdefault(node_id, set()).add(key)

    # ------------------------------------------------------------------
    # Converter metadata
    # ------------------------------------------------------------------

    def add_converter_metadata(self, classic_type: str, payload: Mapping[str, Any]) -> Optional[str]:
        """Merge provenance into the single converter-metadata resource."""

        if self._suppress_metadata:
            return None
        if self._metadata_id is None:
            self._metadata_id = self._new_id("r")
            self._resources[self._metadata_id] = Resource(
                self._metadata_id,
                ResourceKind.CONVERTER_METADATA,
                {
                    "classicType": classic_type,
                    "typeConvertedTo": "storymap",
                    "converterVersion": __version__,
                    "classicMetadata": {},
                },
            )
        resource = self._resources.pop(self._metadata_id)
        resource.data["classicType"] = classic_type or resource.data.get("classicType")
        _deep_merge(resource.data, dict(payload))
        # metadata stays last in resource order
        self._resources[self._metadata_id] = resource
        return self._metadata_id

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def finalize(self) -> Document:
        """Return a normalised snapshot independent of the builder's state."""

        root_id = self.root_id
        nodes: Dict[str, Node] = {}
        for node_id, node in self._nodes.items():
            if node_id == root_id:
                continue
            nodes[node_id] = _normalise(copy.deepcopy(node))
        nodes[root_id] = copy.deepcopy(self._nodes[root_id])
        resources = {res_id: copy.deepcopy(res) for res_id, res in self._resources.items()}
        if self._metadata_id in resources:
            resources[self._metadata_id] = resources.pop(self._metadata_id)
        LOGGER.debug(
            "Finalized document",
            extra={"extra_fields": {"nodes": len(nodes), "resources": len(resources)}},
        )
        return Document(
            root=root_id,
            nodes=nodes,
            resources=resources,
            actions=copy.deepcopy(list(self._actions.values())),
            meta=copy.deepcopy(self.story_meta),
        )


def _action_endpoints(action: Action) -> Set[str]:
    endpoints = {action.origin, action.target}
    media = action.data.get("media")
    if media:
        endpoints.add(media)
    return endpoints


def _normalise(node: Node) -> Node:
    if node.kind is NodeKind.WEBMAP:
        if node.config is None:
            node.config = {}
        node.config.setdefault("size", "standard")
        if node.data:
            node.data.pop("scale", None)
    elif node.kind is NodeKind.TEXT and node.data is not None:
        node.data.setdefault("textAlignment", "start")
    return node


def _deep_merge(target: Dict[str, Any], incoming: Mapping[str, Any]) -> None:
    for key, value in incoming.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        elif value is not None:
            target[key] = copy.deepcopy(value)
