# src/pipegen/core/traceability/manifest.py
"""
Manifest de análise (`<raiz>/manifest.json`).

Gravado pelo driver a cada transição relevante, responde a três
perguntas sobre uma análise:

    1. A partir de quê o script foi gerado?
       `inputs`: SHA-256 do pipeline serializado, da tabela, da
       configuração efetiva e do próprio Makefile
    2. Em que estado ficou cada fase?
       `phases[<fase>]`: comando, status, returncode, duração e, em
       falhas de processo, o `ErrorPayload` serializado
    3. O que aconteceu, em ordem?
       `events`: Event Log; `runs`: um resumo por chamada a `run()`

Exemplo (resumido):

    {
      "analysis": {"name": "first", "pipeline": "convert-demo", ...},
      "inputs": {"script_hash": "9f2c...", ...},
      "phases": {"main": {"status": "failed", "returncode": 2, ...}},
      "runs": [{"state": "failed", "error_markers": 1, ...}],
      "events": [{"event_type": "phase_started", "phase": "setup", ...}, ...]
    }

Invariantes:
    - Timestamps são ISO-8601 em UTC (datetimes ingênuos são tratados como UTC)
    - Nenhum evento é criado implicitamente: `create_manifest` inicia o
      Event Log vazio
    - Repetir uma fase sobrescreve `phases[<fase>]`; o Event Log e
      `runs` só crescem
    - A persistência é JSON determinístico (chaves ordenadas, indent 2, UTF-8)

Limites explícitos:
    - Não executa processos nem decide o estado da análise
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)


def _stamp(ts: datetime) -> str:
    return _utc(ts).isoformat()


def _elapsed_ms(since: Optional[str], until: datetime) -> int:
    if not since:
        return 0
    delta = _utc(until) - _utc(datetime.fromisoformat(since))
    return max(0, int(delta.total_seconds() * 1000))


@dataclass
class AnalysisManifest:
    analysis: Dict[str, Any]
    inputs: Dict[str, str]
    phases: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    runs: List[Dict[str, Any]] = field(default_factory=list)
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def last_run(self) -> Optional[Dict[str, Any]]:
        return self.runs[-1] if self.runs else None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisManifest":
        manifest = cls(analysis={}, inputs={})
        for name, current in manifest.to_dict().items():
            value = data.get(name) or current
            setattr(manifest, name, json.loads(json.dumps(value)))
        return manifest


def create_manifest(
    *,
    analysis_name: str,
    pipeline_name: str,
    created_at: datetime,
    pipegen_version: str,
    pipeline_hash: str,
    table_hash: str,
    config_hash: str,
    script_hash: str,
) -> AnalysisManifest:
    return AnalysisManifest(
        analysis={
            "name": analysis_name,
            "pipeline": pipeline_name,
            "created_at": _stamp(created_at),
            "pipegen_version": pipegen_version,
        },
        inputs={
            "pipeline_hash": pipeline_hash,
            "table_hash": table_hash,
            "config_hash": config_hash,
            "script_hash": script_hash,
        },
    )


def add_event(
    manifest: AnalysisManifest,
    *,
    event_type: str,
    ts: datetime,
    phase: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Anexa um evento ao Event Log e o retorna."""
    event: Dict[str, Any] = {"event_type": event_type, "timestamp": _stamp(ts)}
    if phase is not None:
        event["phase"] = phase
    if payload is not None:
        event["payload"] = payload
    manifest.events.append(event)
    return event


# -----------------------------
# Fases
# -----------------------------
def phase_started(manifest: AnalysisManifest, *, phase: str, command: str, ts: datetime) -> None:
    manifest.phases[phase] = {
        "phase": phase,
        "command": command,
        "status": "running",
        "started_at": _stamp(ts),
    }
    add_event(manifest, event_type="phase_started", ts=ts, phase=phase, payload={"command": command})


def phase_finished(
    manifest: AnalysisManifest,
    *,
    phase: str,
    ts: datetime,
    returncode: Optional[int],
    status: str = "succeeded",
) -> None:
    """
    Fecha a fase com o código de saída do processo.

    `status` segue `PhaseResult.status` (succeeded, failed, cancelled,
    timed_out). Sem `phase_started` prévio, a duração é 0.
    """
    entry = manifest.phases.setdefault(phase, {"phase": phase})
    duration_ms = _elapsed_ms(entry.get("started_at"), ts)
    entry.update(status=status, returncode=returncode, finished_at=_stamp(ts), duration_ms=duration_ms)
    add_event(
        manifest,
        event_type="phase_finished",
        ts=ts,
        phase=phase,
        payload={"status": status, "returncode": returncode, "duration_ms": duration_ms},
    )


def phase_failed(manifest: AnalysisManifest, *, phase: str, ts: datetime, error: Dict[str, Any]) -> None:
    """Fase que não chegou a um código de saída (spawn, timeout, saída ilegível)."""
    entry = manifest.phases.setdefault(phase, {"phase": phase})
    entry.update(status="failed", finished_at=_stamp(ts), error=error)
    add_event(manifest, event_type="phase_failed", ts=ts, phase=phase, payload={"error": error})


# -----------------------------
# Execuções
# -----------------------------
def record_run(
    manifest: AnalysisManifest,
    *,
    state: str,
    ts: datetime,
    returncode: Optional[int],
    error_markers: int,
    cancelled: bool = False,
) -> Dict[str, Any]:
    """Resume uma chamada a `run()` em `runs` e no Event Log."""
    summary = {
        "number": len(manifest.runs) + 1,
        "state": state,
        "returncode": returncode,
        "error_markers": error_markers,
        "cancelled": cancelled,
        "finished_at": _stamp(ts),
    }
    manifest.runs.append(summary)
    add_event(manifest, event_type="run_finished", ts=ts, payload=dict(summary))
    return summary


# -----------------------------
# Persistência
# -----------------------------
def save_manifest(manifest: AnalysisManifest, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True)
    path.write_text(text, encoding="utf-8")


def load_manifest(path: Path) -> AnalysisManifest:
    return AnalysisManifest.from_dict(json.loads(path.read_text(encoding="utf-8")))
