"""Reference collaborators for the conversion pipeline."""

from .arcgis import ArcGISClient, RETRYABLE_STATUSES, generate_resource_name, resolve_extension

__all__ = ["ArcGISClient", "RETRYABLE_STATUSES", "generate_resource_name", "resolve_extension"]
