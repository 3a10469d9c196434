# src/pipegen/core/engine/driver.py
"""
Driver de execução de uma análise (pipeline + tabela + raiz de saída).

Máquina de estados:

    IDLE → RUNNING → {SUCCEEDED, FAILED, TIMED_OUT}
    clean() bem-sucedido → IDLE

Fases:
    - setup: `make -f Makefile setupall` (saída capturada em memória)
    - main: comando principal (ver `commands.main_command`), stdout e
      stderr redirecionados aos arquivos de log da análise
    - clean: `make -f Makefile cleanall`

O estado final de `run()` é:
    - TIMED_OUT quando alguma fase excede `run_timeout_seconds`
    - SUCCEEDED quando setup e main terminam com código 0 e não há
      marcadores de erro
    - FAILED em qualquer outro caso (inclusive cancelamento)

Invariantes:
    - No máximo um `run()`/`clean()` em andamento por análise
      (`AnalysisAlreadyRunning`)
    - O script é gerado a partir de um snapshot do pipeline; edições
      posteriores no grafo vivo não o afetam
    - Falhas de processo (spawn, timeout, saída ilegível) e de abertura
      dos logs viram resultados com `ErrorPayload`, nunca exceções não
      tratadas
    - `run()` nunca deixa o estado em RUNNING ao retornar ou levantar
    - Cancelamento encerra o grupo de processos; artefatos parciais
      permanecem em disco

Limites explícitos:
    - Não agenda execuções nem gerencia filas
    - Não apaga logs entre execuções (o alvo `setupall` os trunca)
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import IO, Any, Dict, List, Optional

from pipegen import __version__
from pipegen.core.compiler import BuildScript, MakefileGenerator
from pipegen.core.config import (
    ExecutionSettings,
    ScriptLayout,
    compute_config_hash,
    compute_text_hash,
    execution_settings_from_config,
    script_layout_from_config,
)
from pipegen.core.diagnostics import ErrorMarker, FailureTreeBuilder, scan_error_markers
from pipegen.core.errors import (
    ErrorPayload,
    driver_log_io,
    driver_spawn_failed,
    driver_timeout,
    driver_unparsable_output,
)
from pipegen.core.exceptions import AnalysisAlreadyRunning, MissingTableData
from pipegen.core.pipeline import Pipeline, dumps_pipeline
from pipegen.core.table import DataTable
from pipegen.core.traceability import (
    AnalysisManifest,
    add_event,
    create_manifest,
    phase_failed,
    phase_finished,
    phase_started,
    record_run,
    save_manifest,
)

from .commands import clean_command, main_command, ratio_command, render, setup_command
from .context import ExecutionContext
from .progress import Ratio, is_complete_output, parse_ratio


SETUP = "setup"
MAIN = "main"
CLEAN = "clean"
POLL = "poll"
CREATE = "create"

_KILL_GRACE_SECONDS = 5.0


class AnalysisState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PhaseResult:
    """Resultado de uma invocação de processo (setup, main ou clean)."""

    phase: str
    command: str
    returncode: Optional[int]
    duration_ms: int
    output: str = ""
    error: Optional[ErrorPayload] = None
    timed_out: bool = False
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and self.error is None and not self.cancelled

    @property
    def status(self) -> str:
        if self.timed_out:
            return "timed_out"
        if self.cancelled:
            return "cancelled"
        return "succeeded" if self.ok else "failed"


@dataclass(frozen=True)
class RunResult:
    state: AnalysisState
    setup: PhaseResult
    main: Optional[PhaseResult] = None
    error_markers: int = 0

    @property
    def returncode(self) -> Optional[int]:
        return self.main.returncode if self.main is not None else self.setup.returncode

    @property
    def cancelled(self) -> bool:
        return self.setup.cancelled or (self.main is not None and self.main.cancelled)


@dataclass(frozen=True)
class AnalysisStatus:
    state: AnalysisState
    target: Optional[Ratio]
    intermediate: Optional[Ratio]
    error_markers: int

    @property
    def is_complete(self) -> bool:
        return (
            self.target is not None
            and self.intermediate is not None
            and self.target.is_complete
            and self.intermediate.is_complete
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "target": self.target.to_dict() if self.target else None,
            "intermediate": self.intermediate.to_dict() if self.intermediate else None,
            "error_markers": self.error_markers,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _table_hash(table: DataTable) -> str:
    if table.fingerprint:
        return table.fingerprint
    return compute_config_hash({"headers": table.headers, "rows": table.frame.values.tolist()})


class Analysis:
    """
    Uma análise pronta para execução: script já gravado em `root`.

    Construa via `Analysis.create(...)` (ou `descriptor.open_analysis`).
    """

    def __init__(
        self,
        *,
        name: str,
        pipeline: Pipeline,
        table: DataTable,
        root: Path,
        script: BuildScript,
        settings: ExecutionSettings,
        layout: ScriptLayout,
        context: ExecutionContext,
        manifest: AnalysisManifest,
    ):
        self.name = name
        self.pipeline = pipeline
        self.table = table
        self.root = root
        self.script = script
        self.settings = settings
        self.layout = layout
        self.context = context
        self.manifest = manifest

        self._main_argv = main_command(settings, layout)
        self._state = AnalysisState.IDLE
        self._lock = threading.Lock()
        self._proc_lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._cancelled = False
        self._poll_failures: Dict[str, str] = {}
        self.suppressed_poll_warnings = 0

    # -----------------------------
    # Criação
    # -----------------------------
    @classmethod
    def create(
        cls,
        name: str,
        pipeline: Pipeline,
        table: DataTable,
        root: str | Path,
        *,
        config: Optional[Dict[str, Any]] = None,
    ) -> "Analysis":
        """
        Valida, gera e grava o script da análise.

        Raises:
            MissingTableData: colunas ligadas ao pipeline ausentes da tabela.
            MissingRequiredInput: entradas obrigatórias desconectadas.
            EngineConfigurationError: configuração de execução inválida.
        """
        config = dict(config or {})
        settings = execution_settings_from_config(config)
        layout = script_layout_from_config(config)
        root = Path(root)
        main_command(settings, layout)  # rejeita override vazio antes de gravar o script

        missing = pipeline.missing_data(table)
        if missing:
            raise MissingTableData(
                message=f"table is missing columns: {', '.join(missing)}",
                details={"missing": missing, "analysis": name},
                hint="Add the columns to the table or rebind the pipeline Sources/Sinks.",
            )

        ctx = ExecutionContext(analysis=name, created_at=_now(), config=config)
        for column in pipeline.unused_data(table):
            ctx.add_warning(phase=CREATE, message=f"unused table column: {column}")

        frozen = pipeline.snapshot()
        generator = MakefileGenerator(frozen, table, keep_going=settings.keep_going, layout=layout)
        script = generator.write(root)
        ctx.log(
            phase=CREATE,
            level="info",
            message="build script written",
            makefile=layout.makefile,
            rows=len(script.rows),
            targets=len(script.targets),
        )

        manifest = create_manifest(
            analysis_name=name,
            pipeline_name=frozen.name,
            created_at=ctx.created_at,
            pipegen_version=__version__,
            pipeline_hash=compute_text_hash(dumps_pipeline(frozen)),
            table_hash=_table_hash(table),
            config_hash=compute_config_hash(config),
            script_hash=compute_text_hash(script.text),
        )
        add_event(
            manifest,
            event_type="script_written",
            ts=_now(),
            phase=CREATE,
            payload={
                "rows": len(script.rows),
                "targets": len(script.targets),
                "intermediates": len(script.intermediates),
                "warnings": ctx.warnings_for(CREATE),
            },
        )

        analysis = cls(
            name=name,
            pipeline=frozen,
            table=table,
            root=root,
            script=script,
            settings=settings,
            layout=layout,
            context=ctx,
            manifest=manifest,
        )
        analysis._save_manifest()
        return analysis

    # -----------------------------
    # Caminhos
    # -----------------------------
    @property
    def makefile_path(self) -> Path:
        return self.root / self.layout.makefile

    @property
    def manifest_path(self) -> Path:
        return self.root / self.layout.manifest_file

    @property
    def script_text(self) -> str:
        return self.script.text

    @property
    def state(self) -> AnalysisState:
        return self._state

    def _save_manifest(self) -> None:
        save_manifest(self.manifest, self.manifest_path)

    # -----------------------------
    # Processos
    # -----------------------------
    def _kill(self, proc: subprocess.Popen) -> None:
        """Encerra o grupo de processos (make e receitas filhas)."""
        for sig in (signal.SIGTERM, signal.SIGKILL):
            try:
                os.killpg(proc.pid, sig)
            except ProcessLookupError:
                return
            try:
                proc.wait(timeout=_KILL_GRACE_SECONDS)
                return
            except subprocess.TimeoutExpired:
                continue

    def _spawn(
        self,
        phase: str,
        argv: List[str],
        *,
        stdout: Optional[IO[str]] = None,
        stderr: Optional[IO[str]] = None,
    ) -> PhaseResult:
        command = render(argv)
        capture = stdout is None
        timeout = self.settings.run_timeout_seconds
        start = time.monotonic()

        try:
            proc = subprocess.Popen(
                argv,
                cwd=self.root,
                stdout=subprocess.PIPE if capture else stdout,
                stderr=subprocess.STDOUT if capture else stderr,
                text=True,
                start_new_session=True,
            )
        except OSError as e:
            return PhaseResult(
                phase=phase,
                command=command,
                returncode=None,
                duration_ms=0,
                error=driver_spawn_failed(command=command, phase=phase, reason=str(e)),
            )

        with self._proc_lock:
            self._proc = proc
            cancelled_early = self._cancelled
        if cancelled_early:
            self._kill(proc)

        timed_out = False
        try:
            out, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            self._kill(proc)
            out, _ = proc.communicate()
        finally:
            with self._proc_lock:
                self._proc = None

        return PhaseResult(
            phase=phase,
            command=command,
            returncode=proc.returncode,
            duration_ms=int((time.monotonic() - start) * 1000),
            output=out or "",
            error=driver_timeout(command=command, phase=phase, timeout_seconds=timeout) if timed_out else None,
            timed_out=timed_out,
            cancelled=self._cancelled,
        )

    def _phase(self, phase: str, argv: List[str], **streams: Any) -> PhaseResult:
        """Executa uma fase registrando-a no contexto e no Manifest."""
        command = render(argv)
        phase_started(self.manifest, phase=phase, command=command, ts=_now())
        self.context.log(phase=phase, level="info", message="phase started", command=command)

        result = self._spawn(phase, argv, **streams)

        if result.error is not None:
            phase_failed(self.manifest, phase=phase, ts=_now(), error=result.error.to_dict())
            self.context.log(phase=phase, level="error", message=result.error.message, error=result.error.to_dict())
        else:
            phase_finished(
                self.manifest,
                phase=phase,
                ts=_now(),
                returncode=result.returncode,
                status=result.status,
            )
            level = "info" if result.ok else "error"
            self.context.log(
                phase=phase,
                level=level,
                message=f"phase {result.status}",
                returncode=result.returncode,
                duration_ms=result.duration_ms,
            )
            if result.output and not result.ok:
                self.context.log(phase=phase, level="error", message=result.output.strip())
        self._save_manifest()
        return result

    def _acquire(self, operation: str) -> None:
        if not self._lock.acquire(blocking=False):
            raise AnalysisAlreadyRunning(
                message=f"analysis '{self.name}' is busy",
                details={"analysis": self.name, "operation": operation},
                hint="Wait for the current run or clean to finish, or cancel it.",
            )

    # -----------------------------
    # Operações
    # -----------------------------
    def run(self) -> RunResult:
        """
        Executa setup e, se bem-sucedido, o comando principal.

        Raises:
            AnalysisAlreadyRunning: outra execução/limpeza em andamento.
        """
        self._acquire("run")
        try:
            self._cancelled = False
            self._state = AnalysisState.RUNNING
            return self._run_phases()
        except BaseException:
            self._state = AnalysisState.FAILED
            raise
        finally:
            self._lock.release()

    def _run_phases(self) -> RunResult:
        setup = self._phase(SETUP, setup_command(self.settings, self.layout))
        if not setup.ok:
            state = AnalysisState.TIMED_OUT if setup.timed_out else AnalysisState.FAILED
            return self._finish(RunResult(state=state, setup=setup))

        stdout_path = self.root / self.layout.stdout_file
        stderr_path = self.root / self.layout.stderr_file
        try:
            with stdout_path.open("w", encoding="utf-8") as out, stderr_path.open("w", encoding="utf-8") as err:
                main = self._phase(MAIN, self._main_argv, stdout=out, stderr=err)
        except OSError as e:
            main = self._log_files_unavailable(e)
            return self._finish(RunResult(state=AnalysisState.FAILED, setup=setup, main=main))

        markers = len(self.error_markers())
        if main.timed_out:
            state = AnalysisState.TIMED_OUT
        elif main.ok and markers == 0:
            state = AnalysisState.SUCCEEDED
        else:
            state = AnalysisState.FAILED
        return self._finish(RunResult(state=state, setup=setup, main=main, error_markers=markers))

    def _log_files_unavailable(self, exc: OSError) -> PhaseResult:
        """Arquivo de log da fase principal que não pôde ser aberto ou escrito."""
        path = exc.filename if exc.filename is not None else self.root / self.layout.stdout_file
        error = driver_log_io(path=str(path), phase=MAIN, reason=exc.strerror or str(exc))
        phase_failed(self.manifest, phase=MAIN, ts=_now(), error=error.to_dict())
        self.context.log(phase=MAIN, level="error", message=error.message, error=error.to_dict())
        self._save_manifest()
        return PhaseResult(
            phase=MAIN,
            command=render(self._main_argv),
            returncode=None,
            duration_ms=0,
            error=error,
        )

    def _finish(self, result: RunResult) -> RunResult:
        self._state = result.state
        record_run(
            self.manifest,
            state=result.state.value,
            ts=_now(),
            returncode=result.returncode,
            error_markers=result.error_markers,
            cancelled=result.cancelled,
        )
        self._save_manifest()
        return result

    def clean(self) -> PhaseResult:
        """Remove alvos, intermediários e marcadores; volta a IDLE se bem-sucedido."""
        self._acquire("clean")
        try:
            self._cancelled = False
            result = self._phase(CLEAN, clean_command(self.settings, self.layout))
            if result.ok:
                self._state = AnalysisState.IDLE
            return result
        finally:
            self._lock.release()

    def cancel(self) -> bool:
        """Encerra o processo em andamento, se houver. Retorna True se algo foi encerrado."""
        with self._proc_lock:
            self._cancelled = True
            proc = self._proc
        if proc is None or proc.poll() is not None:
            return False
        self.context.log(phase=MAIN, level="warning", message="cancellation requested")
        self._kill(proc)
        return True

    # -----------------------------
    # Progresso
    # -----------------------------
    def _query(self, *, intermediate: bool) -> Optional[str]:
        """Saída bruta de um alvo de ratio, ou None se a consulta falhar."""
        argv = ratio_command(self.settings, self.layout, intermediate=intermediate)
        command = render(argv)
        timeout = self.settings.poll_timeout_seconds
        error: Optional[ErrorPayload] = None
        try:
            proc = subprocess.run(argv, cwd=self.root, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            error = driver_timeout(command=command, phase=POLL, timeout_seconds=timeout)
        except OSError as e:
            error = driver_spawn_failed(command=command, phase=POLL, reason=str(e))
        else:
            if proc.returncode == 0 and parse_ratio(proc.stdout) is not None:
                self._poll_failures.pop(command, None)
                return proc.stdout
            error = driver_unparsable_output(
                command=command,
                phase=POLL,
                output=proc.stdout if proc.returncode == 0 else proc.stderr,
            )
        # falhas repetidas do mesmo tipo viram um único evento
        if self._poll_failures.get(command) == error.type:
            self.suppressed_poll_warnings += 1
        else:
            self._poll_failures[command] = error.type
            self.context.log(phase=POLL, level="warning", message=error.message, error=error.to_dict())
        return None

    def target_ratio(self) -> Optional[Ratio]:
        return parse_ratio(self._query(intermediate=False))

    def intermediate_ratio(self) -> Optional[Ratio]:
        return parse_ratio(self._query(intermediate=True))

    def is_complete(self) -> bool:
        return is_complete_output(self._query(intermediate=False), self._query(intermediate=True))

    def status(self) -> AnalysisStatus:
        return AnalysisStatus(
            state=self._state,
            target=self.target_ratio(),
            intermediate=self.intermediate_ratio(),
            error_markers=len(self.error_markers()),
        )

    # -----------------------------
    # Logs e diagnóstico
    # -----------------------------
    def _read(self, name: str) -> Optional[str]:
        try:
            return (self.root / name).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    def stdout_text(self) -> Optional[str]:
        return self._read(self.layout.stdout_file)

    def stderr_text(self) -> Optional[str]:
        return self._read(self.layout.stderr_file)

    def stderr_empty(self) -> bool:
        return self.stderr_text() == ""

    def error_markers(self) -> List[ErrorMarker]:
        return scan_error_markers(self.root / self.layout.errors_dir)

    def failure_report(self) -> str:
        return FailureTreeBuilder(self.pipeline, self.table).render(self.error_markers())

    def __repr__(self) -> str:
        return f"Analysis(name={self.name!r}, root={str(self.root)!r}, state={self._state.value})"
