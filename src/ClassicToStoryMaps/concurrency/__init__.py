# === NAVMAP v1 ===
# {
#   "module": "ClassicToStoryMaps.concurrency.__init__",
#   "purpose": "Concurrency helpers shared by the transfer and enrichment stages.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared by the transfer and enrichment stages.

Exposes :func:`create_executor`, which returns a bounded thread pool for
IO-bound collaborator calls or ``None`` when work should run inline.
"""

from .executors import create_executor

__all__ = ["create_executor"]
