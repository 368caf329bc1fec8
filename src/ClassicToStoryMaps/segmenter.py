# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.segmenter",
#   "purpose": "Split classic narrative HTML into an ordered sequence of typed content nodes",
#   "sections": [
#     {"id": "stubs", "name": "Action Stubs", "anchor": "STUB", "kind": "api"},
#     {"id": "segmentresult", "name": "SegmentResult", "anchor": "class-segmentresult", "kind": "class"},
#     {"id": "visibility", "name": "has_visible_content", "anchor": "function-has-visible-content", "kind": "function"},
#     {"id": "narrativesegmenter", "name": "NarrativeSegmenter", "anchor": "class-narrativesegmenter", "kind": "class"},
#     {"id": "patch-inline-anchor", "name": "patch_inline_anchor", "anchor": "function-patch-inline-anchor", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""
Narrative HTML segmentation.

A classic section body is one block of free-form rich text. StoryMaps wants an
ordered list of nodes instead, so :class:`NarrativeSegmenter` walks the
top-level elements of the markup and emits:

- image nodes for ``<figure>``/``<img>`` blocks and for inline ``<img>`` tags;
- action-button nodes for ``media`` action anchors;
- button nodes for ``navigate`` action anchors carrying a ``btn-<color>`` class;
- rich-text nodes for everything in between, with inline markup kept verbatim.

Inline exceptions are swapped for placeholder tokens in place, the markup is
split on those tokens, and each visible segment becomes a rich-text node, so
the output preserves reading order however many substitutions occurred.
Action anchors cannot be wired yet (their targets live elsewhere in the
section or in other sections); they are returned as stubs and resolved by the
converter once every section exists.

Key Scenarios:
- ``[text A, image, text B]`` markup yields exactly those three nodes in order
- Whitespace-only or ``&nbsp;``-only markup yields no nodes
- An inline navigate anchor without a button class stays inside its rich-text node

Dependencies:
- beautifulsoup4: HTML parsing with the stdlib ``html.parser`` backend
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .builder import DocumentBuilder
from .media_nodes import MediaNodeFactory, detect_video_provider

LOGGER = logging.getLogger(__name__)

__all__ = [
    "InlineNavigateStub",
    "MediaActionStub",
    "NarrativeSegmenter",
    "NavigateButtonStub",
    "SegmentResult",
    "has_visible_content",
    "patch_inline_anchor",
]

# (id attribute, kind attribute) pairs recognised as action anchors
ACTION_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("data-storymaps", "data-storymaps-type"),
    ("data-action", "data-kind"),
)
_MARKER = re.compile(r"data-(?:storymaps|action)\s*=", re.IGNORECASE)
_BUTTON_CLASS = re.compile(r"^btn-(green|orange|purple|yellow|red)$")
_TOKEN = re.compile(r"(%%(?:IMG|ACTION_BTN|NAV_BTN):[a-z]-[a-z0-9]+%%)")
_LABEL_PREFIX = re.compile(r"^[\s>›»]+")
_COLOR_STYLE = re.compile(
    r"""style\s*=\s*(["'])\s*color\s*:\s*#([0-9a-fA-F]{3,8})\s*;?\s*\1""", re.IGNORECASE
)
_HEADING_TYPES = {"h1": "h2", "h2": "h2", "h3": "h3", "h4": "h4", "h5": "h4", "h6": "h4"}
_BLOCK_TAGS = {
    "p", "div", "figure", "img", "iframe", "style", "script", "ul", "ol", "table",
    "blockquote", "section", "article", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "pre",
}


@dataclass
class MediaActionStub:
    """An action button waiting for its replacement media."""

    action_id: str
    button_node_id: str


@dataclass
class NavigateButtonStub:
    """A button node waiting for its internal link target."""

    action_id: str
    button_node_id: str


@dataclass
class InlineNavigateStub:
    """An inline anchor inside a rich-text node waiting for its link target."""

    action_id: str
    rich_node_id: str = ""


@dataclass
class SegmentResult:
    """Ordered node ids plus everything that must be resolved later."""

    node_ids: List[str] = field(default_factory=list)
    media_stubs: List[MediaActionStub] = field(default_factory=list)
    navigate_buttons: List[NavigateButtonStub] = field(default_factory=list)
    inline_navigates: List[InlineNavigateStub] = field(default_factory=list)
    style_blocks: List[str] = field(default_factory=list)


def has_visible_content(fragment: str) -> bool:
    """True if ``fragment`` has visible text or an unresolved action anchor."""

    if not fragment:
        return False
    if _MARKER.search(fragment):
        return True
    soup = BeautifulSoup(fragment, "html.parser")
    for hidden in soup.find_all(["script", "style"]):
        hidden.decompose()
    if soup.find(["img", "iframe", "hr"]):
        return True
    return bool(soup.get_text().replace("\xa0", " ").strip())


def _action_attrs(anchor: Tag) -> Optional[Tuple[str, str]]:
    for id_attr, kind_attr in ACTION_ATTRIBUTES:
        action_id = anchor.get(id_attr)
        if action_id:
            return str(action_id), str(anchor.get(kind_attr) or "").lower()
    return None


def _button_label(anchor: Tag) -> str:
    label = anchor.get_text().replace("\xa0", " ")
    label = _LABEL_PREFIX.sub("", label).strip()
    if not label:
        image = anchor.find("img")
        if image is not None:
            label = str(image.get("alt") or "").strip()
    return label or "View"


def _has_button_class(anchor: Tag) -> bool:
    classes = anchor.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(_BUTTON_CLASS.match(name) for name in classes)


def _color_styles_to_classes(markup: str) -> str:
    return _COLOR_STYLE.sub(lambda m: f'class="sm-text-color-{m.group(2).lower()}"', markup)


def patch_inline_anchor(markup: str, action_id: str, href: str) -> str:
    """Add ``href``/``target`` to the action anchor for ``action_id`` if it has no href."""

    pattern = re.compile(
        r"<a([^>]*data-(?:storymaps|action)\s*=\s*[\"']"
        + re.escape(action_id)
        + r"[\"'][^>]*)>",
        re.IGNORECASE,
    )

    def _inject(match: "re.Match[str]") -> str:
        attrs = match.group(1)
        if re.search(r"\bhref\s*=", attrs, re.IGNORECASE):
            return match.group(0)
        return f'<a{attrs} href="{href}" target="_self">'

    return pattern.sub(_inject, markup, count=1)


class NarrativeSegmenter:
    """Segments narrative markup into builder nodes for one conversion."""

    def __init__(self, builder: DocumentBuilder, media: MediaNodeFactory) -> None:
        self.builder = builder
        self.media = media

    def segment(self, html: str) -> SegmentResult:
        """Return the ordered node ids and pending stubs for ``html``."""

        result = SegmentResult()
        if not html or not html.strip():
            return result
        soup = BeautifulSoup(html, "html.parser")
        run: List[object] = []
        for child in list(soup.children):
            if isinstance(child, Comment):
                continue
            if isinstance(child, Tag) and child.name in _BLOCK_TAGS:
                self._flush_run(run, result)
                run = []
                self._handle_block(child, result)
            else:
                run.append(child)
        self._flush_run(run, result)
        return result

    # ------------------------------------------------------------------
    # Top-level blocks
    # ------------------------------------------------------------------

    def _flush_run(self, run: List[object], result: SegmentResult) -> None:
        """Treat consecutive top-level inline content as one implicit paragraph."""

        if not run:
            return
        wrapper = BeautifulSoup("<p></p>", "html.parser").p
        for item in run:
            wrapper.append(item.extract() if isinstance(item, (Tag, NavigableString)) else item)
        self._handle_inline_block(wrapper, result)

    def _handle_block(self, element: Tag, result: SegmentResult) -> None:
        name = element.name
        if name == "style":
            result.style_blocks.append(element.get_text())
        elif name == "script":
            LOGGER.debug("Dropping script block from narrative")
        elif name == "figure":
            self._handle_figure(element, result)
        elif name == "img":
            src = element.get("src")
            if src:
                result.node_ids.append(self.media.image(str(src), alt=str(element.get("alt") or "")))
        elif name == "iframe":
            self._handle_iframe(element, result)
        elif name in _HEADING_TYPES:
            text = element.get_text().replace("\xa0", " ").strip()
            if text:
                result.node_ids.append(self.builder.create_text_node(text, _HEADING_TYPES[name]))
        elif name in ("p", "div", "section", "article"):
            self._handle_inline_block(element, result)
        else:
            self._handle_inline_block(element, result, keep_wrapper=True)

    def _handle_figure(self, element: Tag, result: SegmentResult) -> None:
        image = element.find("img")
        if image is None or not image.get("src"):
            self._handle_inline_block(element, result)
            return
        figcaption = element.find("figcaption")
        caption = figcaption.get_text().strip() if figcaption else ""
        result.node_ids.append(
            self.media.image(str(image["src"]), caption=caption, alt=str(image.get("alt") or ""))
        )

    def _handle_iframe(self, element: Tag, result: SegmentResult) -> None:
        src = str(element.get("src") or "").strip()
        if not src:
            return
        title = str(element.get("title") or "")
        provider, _ = detect_video_provider(src)
        if provider != "unknown":
            result.node_ids.append(self.media.video(src, title=title))
        else:
            result.node_ids.append(self.media.webpage(src, title=title))

    # ------------------------------------------------------------------
    # Inline blocks: placeholder substitution then token split
    # ------------------------------------------------------------------

    def _handle_inline_block(
        self, element: Tag, result: SegmentResult, *, keep_wrapper: bool = False
    ) -> None:
        tokens: Dict[str, str] = {}
        pending_inline: List[str] = []

        for anchor in element.find_all("a"):
            attrs = _action_attrs(anchor)
            if attrs is None:
                continue
            action_id, kind = attrs
            if kind == "media":
                node_id = self.builder.create_action_button_node(_button_label(anchor))
                result.media_stubs.append(MediaActionStub(action_id, node_id))
                token = f"%%ACTION_BTN:{node_id}%%"
            elif kind == "navigate" and _has_button_class(anchor):
                node_id = self.builder.create_button_node(_button_label(anchor))
                result.navigate_buttons.append(NavigateButtonStub(action_id, node_id))
                token = f"%%NAV_BTN:{node_id}%%"
            else:
                if kind == "navigate":
                    pending_inline.append(action_id)
                continue
            tokens[token] = node_id
            anchor.replace_with(NavigableString(token))

        # images inside an action anchor were dropped with the anchor above
        for image in element.find_all("img"):
            src = image.get("src")
            if not src:
                image.decompose()
                continue
            node_id = self.media.image(str(src), alt=str(image.get("alt") or ""))
            token = f"%%IMG:{node_id}%%"
            tokens[token] = node_id
            image.replace_with(NavigableString(token))

        markup = str(element) if keep_wrapper else element.decode_contents()
        for part in _TOKEN.split(markup):
            if not part:
                continue
            if part in tokens:
                result.node_ids.append(tokens[part])
                continue
            for chunk in self._paragraph_chunks(part):
                node_id = self.builder.create_rich_text_node(chunk)
                result.node_ids.append(node_id)
                for action_id in list(pending_inline):
                    if _anchor_in(chunk, action_id):
                        result.inline_navigates.append(InlineNavigateStub(action_id, node_id))
                        pending_inline.remove(action_id)

        for action_id in pending_inline:
            LOGGER.debug(
                "Inline navigate anchor lost during segmentation",
                extra={"extra_fields": {"action_id": action_id}},
            )

    def _paragraph_chunks(self, segment: str) -> List[str]:
        """Split a segment into rich-text payloads aligned with its paragraphs."""

        if not has_visible_content(segment):
            return []
        cleaned = _color_styles_to_classes(segment).replace("\xa0", " ").replace("&nbsp;", " ")
        fragment = BeautifulSoup(cleaned, "html.parser")
        top_level = [
            child
            for child in fragment.children
            if not (isinstance(child, NavigableString) and not isinstance(child, Tag) and not str(child).strip())
        ]
        paragraphs = [child for child in top_level if isinstance(child, Tag) and child.name == "p"]
        if not paragraphs:
            return [cleaned.strip()]
        if len(top_level) == 1:
            inner = paragraphs[0].decode_contents().strip()
            return [inner] if has_visible_content(inner) else []

        chunks: List[str] = []
        loose: List[str] = []
        for child in top_level:
            if isinstance(child, Tag) and child.name == "p":
                if loose:
                    joined = "".join(loose).strip()
                    if has_visible_content(joined):
                        chunks.append(joined)
                    loose = []
                inner = child.decode_contents().strip()
                if has_visible_content(inner):
                    chunks.append(inner)
            else:
                loose.append(str(child))
        if loose:
            joined = "".join(loose).strip()
            if has_visible_content(joined):
                chunks.append(joined)
        return chunks


def _anchor_in(markup: str, action_id: str) -> bool:
    pattern = r"data-(?:storymaps|action)\s*=\s*[\"']" + re.escape(action_id) + r"[\"']"
    return re.search(pattern, markup, re.IGNORECASE) is not None
