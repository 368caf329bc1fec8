"""Per-template-family converters."""

from .base import BaseConverter, ConverterOutput, ProgressCallback, normalize_panel_size
from .basic import BasicConverter
from .factory import CONVERTERS, converter_for
from .map_journal import CascadeConverter, MapJournalConverter
from .map_series import MapSeriesConverter
from .map_tour import MapTourConverter
from .swipe import SwipeConverter, sanitize_side_panel

__all__ = [
    "BaseConverter",
    "BasicConverter",
    "CONVERTERS",
    "CascadeConverter",
    "ConverterOutput",
    "MapJournalConverter",
    "MapSeriesConverter",
    "MapTourConverter",
    "ProgressCallback",
    "SwipeConverter",
    "converter_for",
    "normalize_panel_size",
    "sanitize_side_panel",
]
