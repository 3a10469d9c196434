# src/pipegen/core/config/settings.py
"""
Materialização tipada da configuração de execução.

Este módulo converte a configuração efetiva (dict) em dois objetos
imutáveis consumidos pelo compilador e pelo driver:

    - ExecutionSettings → como o make é invocado (paralelismo, keep-going,
      delegação a cluster, timeouts)
    - ScriptLayout      → nomes de arquivos e diretórios dentro da raiz
      de saída da análise

Chaves ausentes caem nos valores de `DEFAULT_CONFIG`. O eixo de
paralelismo é mutuamente exclusivo: `jobs > 1` (paralelismo local) e
`cluster_wrapper` (delegação multi-nó) não podem coexistir.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pipegen.core.exceptions import EngineConfigurationError


DEFAULT_CONFIG: Dict[str, Any] = {
    "execution": {
        "make": "make",
        "jobs": 1,
        "keep_going": False,
        "cluster_wrapper": None,
        "command": None,
        "run_timeout_seconds": None,
        "poll_timeout_seconds": 30,
        "poll_interval_seconds": 5,
    },
    "layout": {
        "makefile": "Makefile",
        "processing_dir": "PROCESSING",
        "errors_dir": "ERROR_LOGS",
        "stdout_file": "STDOUT.txt",
        "stderr_file": "STDERR.txt",
        "manifest_file": "manifest.json",
    },
}


@dataclass(frozen=True)
class ExecutionSettings:
    """
    Parâmetros de invocação da ferramenta de build.

    Campos:
        - make: executável do make
        - jobs: número de jobs locais (`-j N` quando > 1)
        - keep_going: `-k` no make e cláusula de falha não propagante
        - cluster_wrapper: comando que substitui o make para execução multi-nó
          (ex.: "qmake -cwd -v PATH --")
        - command: override textual completo do comando principal
        - run_timeout_seconds: limite da execução principal (None = sem limite)
        - poll_timeout_seconds: limite de cada consulta de ratio
        - poll_interval_seconds: intervalo do monitor de progresso
    """

    make: str = "make"
    jobs: int = 1
    keep_going: bool = False
    cluster_wrapper: Optional[str] = None
    command: Optional[str] = None
    run_timeout_seconds: Optional[float] = None
    poll_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 5.0

    def __post_init__(self) -> None:
        if not isinstance(self.make, str) or not self.make.strip():
            raise EngineConfigurationError(
                message="execution.make must be a non-empty string",
                details={"make": self.make},
            )
        if isinstance(self.jobs, bool) or not isinstance(self.jobs, int) or self.jobs < 1:
            raise EngineConfigurationError(
                message="execution.jobs must be an integer >= 1",
                details={"jobs": self.jobs},
            )
        if self.jobs > 1 and self.cluster_wrapper:
            raise EngineConfigurationError(
                message="local parallelism and cluster delegation are mutually exclusive",
                details={"jobs": self.jobs, "cluster_wrapper": self.cluster_wrapper},
                hint="Use execution.jobs = 1 together with execution.cluster_wrapper.",
            )
        for name in ("run_timeout_seconds", "poll_timeout_seconds", "poll_interval_seconds"):
            value = getattr(self, name)
            if value is None and name == "run_timeout_seconds":
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise EngineConfigurationError(
                    message=f"execution.{name} must be a positive number",
                    details={name: value},
                )

    @property
    def is_parallel(self) -> bool:
        return self.jobs > 1

    @property
    def is_delegated(self) -> bool:
        return bool(self.cluster_wrapper)


def _is_simple_name(value: Any) -> bool:
    return (
        isinstance(value, str)
        and bool(value.strip())
        and "/" not in value
        and "\\" not in value
        and value not in {".", ".."}
    )


@dataclass(frozen=True)
class ScriptLayout:
    """Nomes relativos à raiz de saída da análise (cwd do make)."""

    makefile: str = "Makefile"
    processing_dir: str = "PROCESSING"
    errors_dir: str = "ERROR_LOGS"
    stdout_file: str = "STDOUT.txt"
    stderr_file: str = "STDERR.txt"
    manifest_file: str = "manifest.json"

    def __post_init__(self) -> None:
        for name in (
            "makefile",
            "processing_dir",
            "errors_dir",
            "stdout_file",
            "stderr_file",
            "manifest_file",
        ):
            value = getattr(self, name)
            if not _is_simple_name(value):
                raise EngineConfigurationError(
                    message=f"layout.{name} must be a simple relative name",
                    details={name: value},
                )
        if self.processing_dir == self.errors_dir:
            raise EngineConfigurationError(
                message="layout.processing_dir and layout.errors_dir must differ",
                details={"processing_dir": self.processing_dir},
            )


def _section(config: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    merged = dict(DEFAULT_CONFIG[name])
    section = (config or {}).get(name) or {}
    if not isinstance(section, dict):
        raise EngineConfigurationError(
            message=f"config section '{name}' must be a mapping",
            details={"section": name, "received": type(section).__name__},
        )
    merged.update(section)
    return merged


def execution_settings_from_config(config: Optional[Dict[str, Any]]) -> ExecutionSettings:
    """Materializa `ExecutionSettings` a partir da seção `execution`."""
    s = _section(config, "execution")
    unknown = sorted(set(s) - set(DEFAULT_CONFIG["execution"]))
    if unknown:
        raise EngineConfigurationError(
            message="unknown keys in config section 'execution'",
            details={"unknown": unknown},
        )
    return ExecutionSettings(
        make=s["make"],
        jobs=s["jobs"],
        keep_going=bool(s["keep_going"]),
        cluster_wrapper=s["cluster_wrapper"] or None,
        command=s["command"] or None,
        run_timeout_seconds=s["run_timeout_seconds"],
        poll_timeout_seconds=s["poll_timeout_seconds"],
        poll_interval_seconds=s["poll_interval_seconds"],
    )


def script_layout_from_config(config: Optional[Dict[str, Any]]) -> ScriptLayout:
    """Materializa `ScriptLayout` a partir da seção `layout`."""
    s = _section(config, "layout")
    unknown = sorted(set(s) - set(DEFAULT_CONFIG["layout"]))
    if unknown:
        raise EngineConfigurationError(
            message="unknown keys in config section 'layout'",
            details={"unknown": unknown},
        )
    return ScriptLayout(**s)
