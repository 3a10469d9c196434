# src/pipegen/core/engine/context.py
"""
Registro em memória de uma análise: eventos por fase e warnings.

Cada `Analysis` possui um `ExecutionContext` próprio. O driver anota
nele o início e o fim de cada fase (`create`, `setup`, `main`, `clean`,
`poll`), falhas de processo e avisos não fatais (ex.: colunas da
tabela que o pipeline não usa).

Formato de um evento:

    {
        "analysis": "first",
        "phase": "main",
        "level": "info" | "warning" | "error",
        "message": "...",
        "timestamp": "<ISO-8601 UTC>",
        ...campos extras (command, returncode, error)
    }

Invariantes:
    - Eventos ficam em ordem de registro
    - `analysis`, `phase`, `level` e `timestamp` são reservados; extras
      não os sobrescrevem

Limites explícitos:
    - Não persiste nada (o Manifest é o registro durável)
    - Não é thread-safe além do append atômico de listas
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


_RESERVED = ("analysis", "phase", "level", "timestamp")


@dataclass
class ExecutionContext:
    analysis: str
    created_at: datetime
    config: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    def log(self, *, phase: str, level: str, message: str, **extra: Any) -> None:
        event: Dict[str, Any] = {k: v for k, v in extra.items() if k not in _RESERVED}
        event.update(
            analysis=self.analysis,
            phase=phase,
            level=level,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self.events.append(event)

    def add_warning(self, *, phase: str, message: str) -> None:
        self.warnings.setdefault(phase, []).append(message)
        self.log(phase=phase, level="warning", message=message)

    # -----------------------------
    # Consulta
    # -----------------------------
    def events_for(self, phase: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["phase"] == phase]

    def warnings_for(self, phase: str) -> List[str]:
        return list(self.warnings.get(phase, []))

    def errors(self) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["level"] == "error"]

    def last_event(self, phase: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Evento mais recente (da fase, quando informada)."""
        pool = self.events if phase is None else self.events_for(phase)
        return pool[-1] if pool else None
