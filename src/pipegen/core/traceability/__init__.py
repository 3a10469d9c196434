"""Pipegen — Traceability (core).

Manifest de análise: hashes de entrada, estado das fases e Event Log.
"""

from .manifest import (  # noqa: F401
    AnalysisManifest,
    add_event,
    create_manifest,
    load_manifest,
    phase_failed,
    phase_finished,
    phase_started,
    record_run,
    save_manifest,
)
