# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.pipeline",
#   "purpose": "Orchestrate classify, convert, transfer, enrich and validate for one classic story",
#   "sections": [
#     {"id": "progressevent", "name": "ProgressEvent", "anchor": "class-progressevent", "kind": "class"},
#     {"id": "conversioncontext", "name": "ConversionContext", "anchor": "class-conversioncontext", "kind": "class"},
#     {"id": "conversionresult", "name": "ConversionResult", "anchor": "class-conversionresult", "kind": "class"},
#     {"id": "conversionpipeline", "name": "ConversionPipeline", "anchor": "class-conversionpipeline", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""
Conversion pipeline.

:class:`ConversionPipeline` runs one classic story through every stage:

1. ``classify``: pick the template family (or use the forced one);
2. ``convert``: run the family converter and finalise the graph;
3. ``transfer``: relocate collected media through the ``transfer`` collaborator;
4. ``apply-mapping``: point image/video resources at relocated copies;
5. ``enrich``: upgrade minimal map/scene resources through ``fetch_map_metadata``;
6. ``validate``: assert structural correctness of the result.

Cancellation is checked between stages and before every collaborator call.
Per-item collaborator failures end up in :attr:`ConversionResult.warnings`;
structural and validation failures propagate.

Usage:
    pipeline = ConversionPipeline(Settings.from_env(), transfer=client.transfer,
                                  fetch_map_metadata=client.fetch_map_metadata)
    result = pipeline.run(ConversionContext(document=classic_json))
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .cancellation import CancellationToken, CancelPredicate, coerce_token
from .classifier import TemplateFamily, detect_template
from .converters import converter_for
from .document import Document
from .enrichment import FetchMapMetadata, MapEnrichmentService
from .errors import ConversionWarning
from .logging import get_logger, log_event
from .media import MediaTransferCoordinator, TransferFn, apply_transfer_mapping
from .settings import Settings, ThemeChoice
from .validation import ValidationReport, assert_valid

__all__ = [
    "ConversionContext",
    "ConversionPipeline",
    "ConversionResult",
    "ConversionWarning",
    "ProgressEvent",
]


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification delivered to the caller."""

    stage: str
    message: str
    current: Optional[int] = None
    total: Optional[int] = None


ProgressSink = Callable[[ProgressEvent], None]


@dataclass
class ConversionContext:
    """Inputs for one conversion; lives only for the duration of :meth:`ConversionPipeline.run`.

    Attributes:
        document: Raw classic item data.
        theme: Base theme override; ``None`` uses the configured default.
        embedded_documents: Classic item data of apps embedded by URL, keyed by
            app item id. Swipe apps found here are inlined as swipe blocks.
        cancel: Cancellation token or ``is_cancelled()`` predicate.
        progress: Receives a :class:`ProgressEvent` for each progress step.
        force_template: Skip classification and use this family.
        conversion_id: Correlation id bound into every log record.
        seed: Seed for deterministic node/resource ids.
    """

    document: Mapping[str, Any]
    theme: Optional[ThemeChoice] = None
    embedded_documents: Mapping[str, Any] = field(default_factory=dict)
    cancel: "CancellationToken | CancelPredicate | None" = None
    progress: Optional[ProgressSink] = None
    force_template: Optional[TemplateFamily] = None
    conversion_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    seed: Optional[int] = None


@dataclass
class ConversionResult:
    """The converted document plus everything the caller needs to persist it."""

    document: Document
    media_urls: List[str]
    template: TemplateFamily
    transfer_mapping: Dict[str, str] = field(default_factory=dict)
    warnings: List[ConversionWarning] = field(default_factory=list)
    validation: Optional[ValidationReport] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template": self.template.value,
            "document": self.document.to_dict(),
            "meta": self.document.meta.to_dict() if self.document.meta else None,
            "mediaUrls": list(self.media_urls),
            "transferMapping": dict(self.transfer_mapping),
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


class ConversionPipeline:
    """Runs classic stories through conversion with injected collaborators."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transfer: Optional[TransferFn] = None,
        fetch_map_metadata: Optional[FetchMapMetadata] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.transfer = transfer
        self.fetch_map_metadata = fetch_map_metadata
        converter_settings = self.settings.converter
        self.logger = get_logger(
            "ClassicToStoryMaps.pipeline",
            converter_settings.log_level.value,
            fmt=converter_settings.log_format.value,
        )

    def run(self, context: ConversionContext) -> ConversionResult:
        """Convert ``context.document`` and return the validated result.

        Raises:
            ConversionCancelled: If cancellation is requested at any checkpoint.
            BuilderInvariantError: On a structural violation during conversion.
            ValidationFailure: If the finished document fails validation.
        """

        options = self.settings.converter
        token = coerce_token(context.cancel)
        logger = self.logger.child(conversion_id=context.conversion_id)
        warnings: List[ConversionWarning] = []

        def report(stage: str, message: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
            log_event(logger, "info", message, stage=stage)
            if context.progress is not None:
                context.progress(ProgressEvent(stage, message, current, total))

        token.raise_if_cancelled(stage="classify")
        family = (
            TemplateFamily(context.force_template)
            if context.force_template is not None
            else detect_template(context.document)
        )
        logger = logger.child(template=family.value)
        report("classify", f"Detected template: {family.value}")

        token.raise_if_cancelled(stage="convert")
        converter_cls, classic_type = converter_for(family)
        converter = converter_cls(
            context.document,
            theme=context.theme or options.theme,
            suppress_metadata=options.suppress_metadata,
            embedded_documents=context.embedded_documents,
            cancel=token,
            progress=report,
            max_custom_css_chars=options.max_custom_css_chars,
            seed=context.seed,
            classic_type=classic_type,
        )
        output = converter.convert()
        document = output.document

        mapping: Dict[str, str] = {}
        token.raise_if_cancelled(stage="transfer")
        if options.transfer_media and self.transfer is not None and output.media_urls:
            coordinator = MediaTransferCoordinator(
                self.transfer, workers=options.transfer_workers, cancel=token, progress=report
            )
            mapping = coordinator.transfer(output.media_urls)
            warnings.extend(coordinator.warnings)
            report("transfer", f"Transferred {len(mapping)}/{len(output.media_urls)} media file(s)")

        token.raise_if_cancelled(stage="apply-mapping")
        if mapping:
            changed = apply_transfer_mapping(document, mapping)
            report("apply-mapping", f"Relocated {changed} resource(s)")

        token.raise_if_cancelled(stage="enrich")
        if options.enrich_maps and self.fetch_map_metadata is not None:
            service = MapEnrichmentService(
                self.fetch_map_metadata,
                workers=options.enrich_workers,
                min_version=options.min_webmap_version,
                cancel=token,
                progress=report,
                record_metadata=not options.suppress_metadata,
            )
            enrichment = service.enrich(document)
            warnings.extend(enrichment.warnings)
            report("enrich", f"Enriched {len(enrichment.enriched)} map/scene resource(s)")

        token.raise_if_cancelled(stage="validate")
        validation = assert_valid(document)
        report("validate", f"Document valid: {len(document.nodes)} node(s)")

        for warning in warnings:
            log_event(
                logger,
                "warning",
                warning.message,
                stage=warning.stage,
                error_code=warning.code,
                subject=warning.subject,
            )
        return ConversionResult(
            document=document,
            media_urls=list(output.media_urls),
            template=family,
            transfer_mapping=mapping,
            warnings=warnings,
            validation=validation,
        )
