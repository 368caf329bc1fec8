# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.media",
#   "purpose": "Relocate external media through an injected transfer function and patch resources",
#   "sections": [
#     {"id": "transferoutcome", "name": "TransferOutcome", "anchor": "class-transferoutcome", "kind": "class"},
#     {"id": "mediatransfercoordinator", "name": "MediaTransferCoordinator", "anchor": "class-mediatransfercoordinator", "kind": "class"},
#     {"id": "apply-transfer-mapping", "name": "apply_transfer_mapping", "anchor": "function-apply-transfer-mapping", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""
Media transfer.

:class:`MediaTransferCoordinator` calls the injected ``transfer(url)``
collaborator once per distinct URL, sequentially or on a bounded thread pool,
and returns the ``url -> new resource name`` mapping of the transfers that
succeeded. A failed transfer is recorded as a :class:`ConversionWarning` and
simply has no entry in the mapping.

:func:`apply_transfer_mapping` then moves matching image and video resources
from the external-URL state to the owned ``item-resource`` state. The
transition is one-way; resources already owned are left alone, so applying a
mapping twice changes nothing.
"""

from __future__ import annotations

import logging
from concurrent.futures import as_completed
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .cancellation import CancellationToken, CancelPredicate, coerce_token
from .concurrency import create_executor
from .document import Document, ResourceKind
from .errors import ConversionCancelled, ConversionWarning, TransferFailure

LOGGER = logging.getLogger(__name__)

__all__ = [
    "MediaTransferCoordinator",
    "TransferFn",
    "TransferOutcome",
    "apply_transfer_mapping",
]

STAGE = "transfer"


@dataclass(frozen=True)
class TransferOutcome:
    """Result reported by a transfer collaborator for one URL."""

    new_name: Optional[str]
    succeeded: bool


TransferFn = Callable[[str], TransferOutcome]
_Result = Tuple[str, Optional[str], Optional[ConversionWarning]]


class MediaTransferCoordinator:
    """Transfers each distinct media URL at most once per call."""

    def __init__(
        self,
        transfer_fn: TransferFn,
        *,
        workers: int = 1,
        cancel: "CancellationToken | CancelPredicate | None" = None,
        progress: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.transfer_fn = transfer_fn
        self.workers = max(1, int(workers))
        self.token = coerce_token(cancel)
        self.progress = progress
        self.warnings: List[ConversionWarning] = []

    def transfer(self, urls: Iterable[str]) -> Dict[str, str]:
        """Transfer ``urls`` and return the mapping of successful transfers.

        Args:
            urls: Media URLs in first-seen order; duplicates are ignored.

        Returns:
            Mapping of source URL to the new resource name, in input order.

        Raises:
            ConversionCancelled: If cancellation is requested before a call.
        """

        distinct = list(dict.fromkeys(url for url in urls if url))
        self.warnings = []
        if not distinct:
            return {}
        results: Dict[str, Optional[str]] = {}
        executor, needs_shutdown = create_executor(self.workers, thread_name_prefix="storymap-transfer")
        try:
            if executor is None:
                for url in distinct:
                    self._collect(self._transfer_one(url), results, len(distinct))
            else:
                futures = [executor.submit(self._transfer_one, url) for url in distinct]
                for future in as_completed(futures):
                    self._collect(future.result(), results, len(distinct))
        finally:
            if needs_shutdown and executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)
        mapping = {url: results[url] for url in distinct if results.get(url)}
        LOGGER.info(
            "Media transfer finished",
            extra={
                "extra_fields": {
                    "stage": STAGE,
                    "requested": len(distinct),
                    "transferred": len(mapping),
                    "failed": len(self.warnings),
                }
            },
        )
        return mapping

    def _collect(self, result: _Result, results: Dict[str, Optional[str]], total: int) -> None:
        url, name, warning = result
        results[url] = name
        if warning is not None:
            self.warnings.append(warning)
        if self.progress is not None:
            state = "transferred" if name else "failed"
            self.progress(STAGE, f"[{len(results)}/{total}] {state} {url}")

    def _transfer_one(self, url: str) -> _Result:
        self.token.raise_if_cancelled(stage=STAGE)
        try:
            outcome = self.transfer_fn(url)
        except ConversionCancelled:
            raise
        except TransferFailure as exc:
            return url, None, ConversionWarning(STAGE, "TRANSFER_FAILED", str(exc), url)
        except Exception as exc:
            LOGGER.warning(
                "Transfer collaborator raised unexpectedly",
                extra={"extra_fields": {"stage": STAGE, "url": url, "error": repr(exc)}},
                exc_info=True,
            )
            return url, None, ConversionWarning(
                STAGE, "TRANSFER_FAILED", f"{type(exc).__name__}: {exc}", url
            )
        if not outcome.succeeded or not outcome.new_name:
            return url, None, ConversionWarning(
                STAGE, "TRANSFER_SKIPPED", "Transfer reported no relocated copy", url
            )
        return url, outcome.new_name, None


def apply_transfer_mapping(document: Document, mapping: Dict[str, str]) -> int:
    """Point image/video resources at relocated copies; return how many changed."""

    changed = 0
    for resource in document.resources.values():
        if resource.kind not in (ResourceKind.IMAGE, ResourceKind.VIDEO) or resource.is_owned:
            continue
        new_name = mapping.get(resource.data.get("src", ""))
        if not new_name:
            continue
        resource.data.pop("src", None)
        resource.data["provider"] = "item-resource"
        resource.data["resourceId"] = new_name
        changed += 1
    return changed
