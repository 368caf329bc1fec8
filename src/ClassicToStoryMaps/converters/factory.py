"""Template family to converter lookup."""

from __future__ import annotations

from typing import Dict, Tuple, Type

from ..classifier import TemplateFamily
from ..errors import UnsupportedTemplateError
from .base import BaseConverter
from .basic import BasicConverter
from .map_journal import CascadeConverter, MapJournalConverter
from .map_series import MapSeriesConverter
from .map_tour import MapTourConverter
from .swipe import SwipeConverter

__all__ = ["CONVERTERS", "converter_for"]

# family -> (converter class, classic type recorded in metadata)
CONVERTERS: Dict[TemplateFamily, Tuple[Type[BaseConverter], str]] = {
    TemplateFamily.MAP_JOURNAL: (MapJournalConverter, "MapJournal"),
    TemplateFamily.CASCADE: (CascadeConverter, "Cascade"),
    TemplateFamily.MAP_TOUR: (MapTourConverter, "MapTour"),
    TemplateFamily.MAP_SERIES: (MapSeriesConverter, "MapSeries"),
    TemplateFamily.SWIPE: (SwipeConverter, "Swipe"),
    TemplateFamily.SHORTLIST: (BasicConverter, "Shortlist"),
    TemplateFamily.CROWDSOURCE: (BasicConverter, "Crowdsource"),
    TemplateFamily.BASIC: (BasicConverter, "Basic"),
    TemplateFamily.UNKNOWN: (BasicConverter, "Unknown"),
}


def converter_for(family: TemplateFamily) -> Tuple[Type[BaseConverter], str]:
    """Return the converter class and classic type label for ``family``.

    Raises:
        UnsupportedTemplateError: If no converter is registered for ``family``.
    """

    try:
        return CONVERTERS[TemplateFamily(family)]
    except (KeyError, ValueError):
        raise UnsupportedTemplateError(f"No converter registered for template {family!r}") from None
