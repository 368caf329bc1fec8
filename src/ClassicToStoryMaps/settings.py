# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.settings",
#   "purpose": "Pydantic v2 settings for conversion behaviour and the portal client.",
#   "sections": [
#     {"id": "loglevel", "name": "LogLevel", "anchor": "class-loglevel", "kind": "class"},
#     {"id": "logformat", "name": "LogFormat", "anchor": "class-logformat", "kind": "class"},
#     {"id": "themechoice", "name": "ThemeChoice", "anchor": "class-themechoice", "kind": "class"},
#     {"id": "convertersettings", "name": "ConverterSettings", "anchor": "class-convertersettings", "kind": "class"},
#     {"id": "arcgissettings", "name": "ArcGISSettings", "anchor": "class-arcgissettings", "kind": "class"},
#     {"id": "settings", "name": "Settings", "anchor": "class-settings", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Typed settings for classic story conversion.

Settings are layered the usual pydantic-settings way (explicit kwargs > ENV >
defaults). Conversion behaviour reads ``CLASSIC2SM_*`` variables and the
portal client reads ``CLASSIC2SM_ARCGIS_*`` variables.

NAVMAP:
- ConverterSettings: theme choice, metadata suppression, stage toggles, worker counts
- ArcGISSettings: portal URL, token, timeouts, retry attempts
- Settings: Root aggregation of both
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*$")


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Supported log output formats."""

    CONSOLE = "console"
    JSON = "json"


class ThemeChoice(str, Enum):
    """Target base theme selection."""

    AUTO = "auto"
    SUMMIT = "summit"
    OBSIDIAN = "obsidian"


class ConverterSettings(BaseSettings):
    """Conversion behaviour shared by every template family."""

    model_config = SettingsConfigDict(
        env_prefix="CLASSIC2SM_",
        case_sensitive=False,
        extra="ignore",
    )

    theme: ThemeChoice = Field(ThemeChoice.AUTO, description="Base theme, or auto to derive it")
    suppress_metadata: bool = Field(
        False, description="Skip the converter-metadata provenance resource"
    )
    enrich_maps: bool = Field(True, description="Fetch metadata for minimal map/scene resources")
    transfer_media: bool = Field(True, description="Relocate external media into item resources")
    transfer_workers: int = Field(
        1, ge=1, le=32, description="Concurrent media transfers (1 = sequential)"
    )
    enrich_workers: int = Field(4, ge=1, le=32, description="Concurrent map metadata fetches")
    min_webmap_version: str = Field(
        "2.0", description="Web map data versions below this are flagged"
    )
    max_custom_css_chars: int = Field(
        6000, ge=0, description="Truncation limit for extracted custom CSS provenance"
    )
    log_level: LogLevel = Field(LogLevel.INFO, description="Root logging level")
    log_format: LogFormat = Field(LogFormat.JSON, description="Pretty console or structured JSON")

    @field_validator("min_webmap_version")
    @classmethod
    def validate_min_version(cls, value: str) -> str:
        """Require a dotted numeric version string such as ``2.0``."""
        stripped = str(value).strip()
        if not _VERSION_PATTERN.match(stripped):
            raise ValueError(f"min_webmap_version must be dotted numeric, got {value!r}")
        return stripped


class ArcGISSettings(BaseSettings):
    """Portal connection settings for the reference collaborators."""

    model_config = SettingsConfigDict(
        env_prefix="CLASSIC2SM_ARCGIS_",
        case_sensitive=False,
        extra="ignore",
    )

    portal_url: str = Field("https://www.arcgis.com", description="Portal base URL")
    token: Optional[str] = Field(None, description="Portal access token")
    username: Optional[str] = Field(None, description="Owner of the target story item")
    target_item_id: Optional[str] = Field(
        None, description="Story item that receives transferred media resources"
    )
    timeout_s: float = Field(30.0, gt=0, description="Per-request timeout in seconds")
    retry_attempts: int = Field(
        3, ge=1, le=5, description="Attempts per request on transient network failure"
    )
    user_agent: str = Field(
        "classic-to-storymaps/0.4", description="User-Agent header sent to the portal"
    )

    @field_validator("portal_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalise the portal URL so paths can be appended directly."""
        cleaned = str(value).strip().rstrip("/")
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError(f"portal_url must be an http(s) URL, got {value!r}")
        return cleaned


class Settings(BaseModel):
    """Aggregated configuration for a conversion run."""

    converter: ConverterSettings = Field(default_factory=ConverterSettings)
    arcgis: ArcGISSettings = Field(default_factory=ArcGISSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(converter=ConverterSettings(), arcgis=ArcGISSettings())

    def model_dump_redacted(self, **kwargs: Any) -> dict[str, Any]:
        """Dump config with sensitive fields redacted."""
        result = self.model_dump(**kwargs)
        pattern = re.compile(r"(?i)(token|secret|password|api[_-]?key)")

        def redact_dict(d: dict[str, Any]) -> dict[str, Any]:
            for key, val in d.items():
                if pattern.search(key) and val is not None:
                    d[key] = "***REDACTED***"
                elif isinstance(val, dict):
                    redact_dict(val)
            return d

        return redact_dict(result)


__all__ = [
    "ArcGISSettings",
    "ConverterSettings",
    "LogFormat",
    "LogLevel",
    "Settings",
    "ThemeChoice",
]
