# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures: classic sample documents and fake collaborators",
#   "sections": [
#     {"id": "fakemapfetcher", "name": "FakeMapFetcher", "anchor": "class-fakemapfetcher", "kind": "class"},
#     {"id": "recordingtransfer", "name": "RecordingTransfer", "anchor": "class-recordingtransfer", "kind": "class"},
#     {"id": "documents", "name": "Classic document fixtures", "anchor": "DOCS", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Shared fixtures for the conversion suite: one representative classic item
document per template family, a deterministic map metadata fetcher, and a
transfer function that records every call.

Key Scenarios:
- Journal sample wires a navigate button, an inline navigate anchor and a
  media swap across two sections
- Fake collaborators fail on request so warning paths can be exercised

Usage:
    pytest tests/
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional, Set

import pytest

from ClassicToStoryMaps.errors import EnrichmentFailure, TransferFailure
from ClassicToStoryMaps.media import TransferOutcome


class FakeMapFetcher:
    """Returns canned web map data; raises for ids listed in ``failing``."""

    def __init__(self, payloads: Optional[Mapping[str, Any]] = None, failing: Optional[Set[str]] = None) -> None:
        self.payloads = dict(payloads or {})
        self.failing = set(failing or ())
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, item_id: str) -> Mapping[str, Any]:
        with self._lock:
            self.calls.append(item_id)
        if item_id in self.failing:
            raise EnrichmentFailure(f"cannot read {item_id}", item_id=item_id)
        return self.payloads.get(item_id) or sample_map_data()


class RecordingTransfer:
    """Records each URL and returns a predictable resource name."""

    def __init__(self, failing: Optional[Set[str]] = None, skipped: Optional[Set[str]] = None) -> None:
        self.failing = set(failing or ())
        self.skipped = set(skipped or ())
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str) -> TransferOutcome:
        with self._lock:
            self.calls.append(url)
        if url in self.failing:
            raise TransferFailure("upload rejected", url=url)
        if url in self.skipped:
            return TransferOutcome(new_name=None, succeeded=False)
        name = url.rstrip("/").rsplit("/", 1)[-1]
        return TransferOutcome(new_name=f"copy-{name}", succeeded=True)


def sample_map_data(version: str = "2.28", insecure: bool = False) -> Dict[str, Any]:
    scheme = "http" if insecure else "https"
    return {
        "version": version,
        "initialState": {
            "view": {
                "extent": {
                    "xmin": -13630000.0,
                    "ymin": 4540000.0,
                    "xmax": -13620000.0,
                    "ymax": 4546000.0,
                    "spatialReference": {"wkid": 102100},
                }
            }
        },
        "baseMap": {
            "title": "Topographic",
            "baseMapLayers": [
                {
                    "id": "World_Topo",
                    "title": "World Topo",
                    "url": f"{scheme}://services.example.com/World_Topo/MapServer",
                    "opacity": 1,
                    "visibility": True,
                    "layerType": "ArcGISTiledMapServiceLayer",
                }
            ],
        },
        "operationalLayers": [
            {"id": "parcels", "title": "Parcels", "visibility": True, "url": "https://services.example.com/parcels"},
            {"id": "roads", "title": "Roads", "visibility": False},
        ],
    }


@pytest.fixture
def journal_document() -> Dict[str, Any]:
    return {
        "values": {
            "title": "Harbor Story",
            "subtitle": "Two sections about the harbor",
            "template": "Map Journal",
            "templateCreation": 1450000000000,
            "settings": {
                "layout": {"id": "side"},
                "layoutOptions": {"layoutCfg": {"size": "large", "position": "left"}},
                "theme": {
                    "colors": {"panel": "#123456", "dotNav": "#222222", "textLink": "#ff6600", "themeMajor": "light"},
                    "fonts": {"sectionTitle": {"value": "font-family:'open_sansregular', sans-serif;"}},
                },
            },
            "story": {
                "sections": [
                    {
                        "title": "Intro",
                        "content": (
                            "<p>Welcome to the harbor.</p>"
                            '<p><a data-action="nav-1" data-kind="navigate" class="btn-green">Go to details</a></p>'
                        ),
                        "media": {
                            "type": "webmap",
                            "webmap": {
                                "id": "map0001",
                                "extent": {
                                    "xmin": -122.5,
                                    "ymin": 37.7,
                                    "xmax": -122.3,
                                    "ymax": 37.9,
                                    "spatialReference": {"wkid": 4326},
                                },
                                "legend": {"enable": True, "openByDefault": False},
                            },
                        },
                        "contentActions": [{"id": "nav-1", "type": "navigate", "index": 1}],
                    },
                    {
                        "title": "Details",
                        "content": (
                            '<p>See <a data-action="nav-2" data-kind="navigate">the intro</a> for context.</p>'
                            '<p><a data-action="swap-1" data-kind="media">Show the pier</a></p>'
                            "<style>.sectionPanel { color: red; }</style>"
                        ),
                        "media": {
                            "type": "image",
                            "image": {"url": "https://example.com/harbor.jpg", "caption": "Harbor at dawn"},
                        },
                        "contentActions": [
                            {"id": "nav-2", "type": "navigate", "index": 0},
                            {
                                "id": "swap-1",
                                "type": "media",
                                "media": {"type": "image", "image": {"url": "https://example.com/pier.jpg"}},
                            },
                        ],
                    },
                ]
            },
        }
    }


@pytest.fixture
def tour_document() -> Dict[str, Any]:
    return {
        "values": {
            "title": "Waterfront Tour",
            "subtitle": "Walk the piers",
            "layout": "three-panel",
            "firstRecordAsIntro": True,
            "webmap": "tourmap01",
            "colors": "#444444;#eeeeee;#ffffff",
            "order": [{"id": "1", "visible": True}, {"id": "2", "visible": False}],
            "places": [
                {
                    "id": "1",
                    "name": "Pier 1",
                    "description": "The oldest pier.",
                    "pic_url": "https://example.com/pier1.jpg",
                    "thumb_url": "https://example.com/pier1_thumb.jpg",
                    "long": -122.39,
                    "lat": 37.79,
                },
                {
                    "id": "2",
                    "name": "Ferry Building",
                    "pic_url": "https://example.com/ferry.jpg",
                    "geometry": {"x": -13625000.0, "y": 4548000.0},
                },
            ],
        }
    }


@pytest.fixture
def series_document() -> Dict[str, Any]:
    return {
        "values": {
            "title": "Bay Series",
            "template": "Map Series",
            "description": "Three views of the bay",
            "settings": {"layoutOptions": {"panel": {"position": "left", "size": "wide"}}},
            "story": {
                "entries": [
                    {
                        "title": "North",
                        "description": "<p>North shore.</p>",
                        "media": {"type": "image", "image": {"url": "https://example.com/north.jpg"}},
                    },
                    {"title": "South", "description": "", "media": {"type": "webmap", "webmap": {"id": "south01"}}},
                    {
                        "title": "Video",
                        "description": "<p>A flyover.</p>",
                        "media": {"type": "video", "video": {"url": "https://youtu.be/abcdefghijk"}},
                    },
                ]
            },
        }
    }


@pytest.fixture
def swipe_document() -> Dict[str, Any]:
    return {
        "values": {
            "template": "Swipe",
            "title": "swipe",
            "name": "Before and after",
            "dataModel": "TWO_WEBMAPS",
            "webmaps": ["before01", "after01"],
            "layout": "spyglass",
            "sidePanelDescription": '<div><p style="color:red">Compare <b>both</b> maps.</p></div>',
        }
    }


@pytest.fixture
def basic_document() -> Dict[str, Any]:
    return {
        "values": {
            "title": "Just a map",
            "template": "Basic Viewer",
            "description": "<p>Hello there.</p>",
            "webmap": "basic01",
        }
    }


@pytest.fixture
def map_fetcher() -> FakeMapFetcher:
    return FakeMapFetcher()


@pytest.fixture
def recording_transfer() -> RecordingTransfer:
    return RecordingTransfer()


@pytest.fixture
def fetcher_factory():
    return FakeMapFetcher


@pytest.fixture
def transfer_factory():
    return RecordingTransfer


@pytest.fixture
def map_data_factory():
    return sample_map_data
