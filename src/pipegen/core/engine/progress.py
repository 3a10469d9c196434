# src/pipegen/core/engine/progress.py
"""
Ratios de progresso e monitor periódico.

Os alvos `target_ratio` e `intermediate_ratio` do script gerado imprimem
uma linha `"<produzidos> / <esperados>"`. Este módulo interpreta essa
saída e oferece um monitor que consulta ambos os ratios em intervalo
fixo, numa thread daemon.

Uma consulta que falha (processo, timeout, saída ilegível) vale como
"desconhecido" (`None`); o monitor nunca é interrompido por ela.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pipegen.core.errors import exception_to_payload

_RATIO = re.compile(r"^\s*(\d+)\s*/\s*(\d+)\s*$")


@dataclass(frozen=True)
class Ratio:
    produced: int
    expected: int

    @property
    def is_complete(self) -> bool:
        return self.produced == self.expected

    @property
    def fraction(self) -> float:
        return self.produced / self.expected if self.expected else 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {"produced": self.produced, "expected": self.expected}

    def __str__(self) -> str:
        return f"{self.produced} / {self.expected}"


def parse_ratio(output: Optional[str]) -> Optional[Ratio]:
    """Interpreta a última linha não vazia como `n / m`; None se ilegível."""
    if not output:
        return None
    lines = [ln for ln in output.splitlines() if ln.strip()]
    if not lines:
        return None
    m = _RATIO.match(lines[-1])
    if not m:
        return None
    return Ratio(int(m.group(1)), int(m.group(2)))


def is_complete_output(target_output: Optional[str], intermediate_output: Optional[str]) -> bool:
    """Completo sse ambas as saídas são legíveis e cada uma tem n == m."""
    target = parse_ratio(target_output)
    intermediate = parse_ratio(intermediate_output)
    return target is not None and intermediate is not None and target.is_complete and intermediate.is_complete


ProgressCallback = Callable[[Optional[Ratio], Optional[Ratio]], None]


class ProgressMonitor:
    """
    Consulta periódica dos ratios de uma análise.

    `analysis` precisa expor `target_ratio()` e `intermediate_ratio()`;
    o callback recebe `(target, intermediate)`, cada um `Ratio` ou None.

        with ProgressMonitor(analysis, 5.0, on_progress):
            analysis.run()
    """

    def __init__(self, analysis: Any, interval: float, callback: ProgressCallback):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.analysis = analysis
        self.interval = interval
        self.callback = callback
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.polls = 0

    def poll_once(self) -> None:
        target = self.analysis.target_ratio()
        intermediate = self.analysis.intermediate_ratio()
        self.polls += 1
        try:
            self.callback(target, intermediate)
        except Exception as e:
            ctx = getattr(self.analysis, "context", None)
            if ctx is not None:
                ctx.log(
                    phase="poll",
                    level="error",
                    message=f"progress callback failed: {e}",
                    error=exception_to_payload(e).to_dict(),
                )

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "ProgressMonitor":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="pipegen-progress", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> "ProgressMonitor":
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.stop()
