# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.collaborators.arcgis",
#   "purpose": "Reference portal collaborators: item data fetch and media transfer over httpx",
#   "sections": [
#     {"id": "resolve-extension", "name": "resolve_extension", "anchor": "function-resolve-extension", "kind": "function"},
#     {"id": "resource-name", "name": "generate_resource_name", "anchor": "function-generate-resource-name", "kind": "function"},
#     {"id": "arcgisclient", "name": "ArcGISClient", "anchor": "class-arcgisclient", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""
ArcGIS portal collaborators.

:class:`ArcGISClient` exposes the two callables the pipeline accepts as
injected collaborators:

- :meth:`ArcGISClient.fetch_map_metadata` reads ``/content/items/{id}/data``;
- :meth:`ArcGISClient.transfer` downloads one media URL and uploads it as a
  resource of the target story item.

Requests go through a shared :class:`httpx.Client` and are retried with
Tenacity on transport errors and on the transient status codes in
:data:`RETRYABLE_STATUSES`.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_random_exponential,
)

from ..errors import MetadataFetchError, TransferFailure
from ..media import TransferOutcome
from ..settings import ArcGISSettings

LOGGER = logging.getLogger(__name__)

__all__ = ["ArcGISClient", "RETRYABLE_STATUSES", "generate_resource_name", "resolve_extension"]

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.TransportError)
_IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|gif|webp|bmp|tif|tiff)$", re.IGNORECASE)
_DISPOSITION_NAME = re.compile(r'filename="?([^";]+)"?', re.IGNORECASE)
_CANONICAL_EXT = {"jpeg": "jpg", "tiff": "tif"}


def _canonical(ext: str) -> str:
    ext = ext.lower().lstrip(".")
    return _CANONICAL_EXT.get(ext, ext)


def resolve_extension(
    url: str,
    content_type: Optional[str] = None,
    content_disposition: Optional[str] = None,
) -> str:
    """Pick an image extension (without dot) for a downloaded media file.

    Content-Disposition wins over the URL path, which wins over the
    Content-Type. Anything unrecognised becomes ``jpg``.
    """

    if content_disposition:
        match = _DISPOSITION_NAME.search(content_disposition)
        if match:
            ext = _IMAGE_EXT.search(match.group(1).strip())
            if ext:
                return _canonical(ext.group(1))
    ext = _IMAGE_EXT.search(urlsplit(url).path)
    if ext:
        return _canonical(ext.group(1))
    if content_type and content_type.lower().startswith("image/"):
        subtype = _canonical(content_type.split("/", 1)[1].split(";", 1)[0].strip())
        if _IMAGE_EXT.search(f".{subtype}"):
            return subtype
    return "jpg"


def generate_resource_name(extension: str) -> str:
    """Return a fresh, collision-resistant resource file name."""

    return f"{uuid.uuid4().hex[:13]}.{_canonical(extension) or 'jpg'}"


def _is_portal_resource(url: str, portal_url: str) -> bool:
    return url.startswith(portal_url) and "/sharing/rest/content" in url


class ArcGISClient:
    """Portal REST client implementing ``fetch_map_metadata`` and ``transfer``.

    Args:
        settings: Portal URL, credentials, timeout and retry policy.
        client: Optional pre-configured :class:`httpx.Client`; tests pass one
            built on :class:`httpx.MockTransport`.
    """

    def __init__(self, settings: ArcGISSettings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(settings.timeout_s),
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent},
        )

    @property
    def rest_url(self) -> str:
        return f"{self.settings.portal_url}/sharing/rest"

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "ArcGISClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request, retrying transport errors and transient statuses."""

        retrying = Retrying(
            retry=retry_if_exception_type(_RETRYABLE_EXCEPTIONS)
            | retry_if_result(
                lambda response: isinstance(response, httpx.Response)
                and response.status_code in RETRYABLE_STATUSES
            ),
            wait=wait_random_exponential(multiplier=0.5, max=8),
            stop=stop_after_attempt(self.settings.retry_attempts),
            sleep=time.sleep,
            reraise=True,
            before_sleep=self._before_sleep,
        )
        try:
            return retrying(self.client.request, method, url, **kwargs)
        except RetryError as exc:
            # Exhausted on a retryable status: hand back the last response.
            return exc.last_attempt.result()

    def _before_sleep(self, retry_state) -> None:
        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            detail = f"status {outcome.result().status_code}"
        elif outcome is not None:
            detail = repr(outcome.exception())
        else:
            detail = "unknown"
        LOGGER.warning(
            "Retrying portal request",
            extra={
                "extra_fields": {
                    "attempt": retry_state.attempt_number,
                    "detail": detail,
                }
            },
        )

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"f": "json"}
        if self.settings.token:
            params["token"] = self.settings.token
        params.update(extra)
        return params

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def fetch_map_metadata(self, item_id: str) -> Mapping[str, Any]:
        """Return the JSON data of a web map or web scene item.

        Raises:
            MetadataFetchError: On transport failure, non-2xx status, a
                non-JSON body or a portal ``error`` payload.
        """

        url = f"{self.rest_url}/content/items/{item_id}/data"
        try:
            response = self._request("GET", url, params=self._params())
        except httpx.HTTPError as exc:
            raise MetadataFetchError(
                f"Item data request failed: {exc}", item_id=item_id, retryable=True
            ) from exc
        if response.status_code >= 400:
            raise MetadataFetchError(
                f"Item data request returned HTTP {response.status_code}",
                item_id=item_id,
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUSES,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise MetadataFetchError(
                "Item data is not valid JSON", item_id=item_id, status_code=response.status_code
            ) from exc
        if not isinstance(payload, Mapping):
            raise MetadataFetchError("Item data is not a JSON object", item_id=item_id)
        error = payload.get("error")
        if isinstance(error, Mapping):
            code = error.get("code")
            raise MetadataFetchError(
                f"Portal error: {error.get('message') or 'unknown'}",
                item_id=item_id,
                status_code=code if isinstance(code, int) else None,
                retryable=code in RETRYABLE_STATUSES,
            )
        return payload

    def transfer(self, url: str) -> TransferOutcome:
        """Copy ``url`` into the target story item's resources.

        Raises:
            TransferFailure: If the client lacks a target, the download fails
                or the portal rejects the upload.
        """

        if not (self.settings.username and self.settings.target_item_id):
            raise TransferFailure("username and target_item_id are required for transfer", url=url)
        params = {"token": self.settings.token} if (
            self.settings.token and _is_portal_resource(url, self.settings.portal_url)
        ) else None
        try:
            download = self._request("GET", url, params=params)
        except httpx.HTTPError as exc:
            raise TransferFailure(f"Download failed: {exc}", url=url, retryable=True) from exc
        if download.status_code >= 400:
            raise TransferFailure(
                f"Download returned HTTP {download.status_code}",
                url=url,
                retryable=download.status_code in RETRYABLE_STATUSES,
            )

        extension = resolve_extension(
            str(download.url),
            download.headers.get("content-type"),
            download.headers.get("content-disposition"),
        )
        name = generate_resource_name(extension)
        upload_url = (
            f"{self.rest_url}/content/users/{self.settings.username}"
            f"/items/{self.settings.target_item_id}/addResources"
        )
        content_type = download.headers.get("content-type") or "application/octet-stream"
        try:
            response = self._request(
                "POST",
                upload_url,
                data=self._params(fileName=name),
                files={"file": (name, download.content, content_type)},
            )
        except httpx.HTTPError as exc:
            raise TransferFailure(f"Upload failed: {exc}", url=url, retryable=True) from exc
        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}
        if response.status_code >= 400 or not result.get("success"):
            message = (result.get("error") or {}).get("message") or f"HTTP {response.status_code}"
            raise TransferFailure(f"Upload rejected: {message}", url=url)
        LOGGER.info(
            "Transferred media resource",
            extra={"extra_fields": {"url": url, "resource": name, "bytes": len(download.content)}},
        )
        return TransferOutcome(new_name=name, succeeded=True)
