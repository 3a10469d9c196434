"""Pipegen — Engine (core).

Driver de execução das análises: montagem dos comandos do make, estados
de execução, progresso por ratios e descritor persistido.
"""

from .commands import clean_command, main_command, ratio_command, render, setup_command  # noqa: F401
from .context import ExecutionContext  # noqa: F401
from .descriptor import (  # noqa: F401
    AnalysisDescriptor,
    describe_analysis,
    load_descriptor,
    open_analysis,
    save_descriptor,
)
from .driver import Analysis, AnalysisState, AnalysisStatus, PhaseResult, RunResult  # noqa: F401
from .progress import ProgressMonitor, Ratio, is_complete_output, parse_ratio  # noqa: F401
