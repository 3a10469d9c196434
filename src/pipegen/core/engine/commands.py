# src/pipegen/core/engine/commands.py
"""
Montagem das linhas de comando do make.

Variantes do comando principal (eixo de paralelismo mutuamente exclusivo):

    padrão        make -f Makefile all
    paralelo      make -f Makefile -j N all
    keep-going    make -f Makefile -k all          (combinável com -j N)
    cluster       <wrapper...> -f Makefile all     (jobs deve ser 1)
    override      texto livre de `execution.command`, executado via `/bin/sh -c`

As fases auxiliares (`setupall`, `cleanall`, ratios) sempre usam o make
local, nunca o wrapper de cluster.
"""

from __future__ import annotations

import shlex
from typing import List

from pipegen.core.compiler import ALL, CLEAN_ALL, INTERMEDIATE_RATIO, SETUP_ALL, TARGET_RATIO
from pipegen.core.config import ExecutionSettings, ScriptLayout
from pipegen.core.exceptions import EngineConfigurationError


def phase_command(settings: ExecutionSettings, layout: ScriptLayout, target: str) -> List[str]:
    return [settings.make, "-f", layout.makefile, target]


def setup_command(settings: ExecutionSettings, layout: ScriptLayout) -> List[str]:
    return phase_command(settings, layout, SETUP_ALL)


def clean_command(settings: ExecutionSettings, layout: ScriptLayout) -> List[str]:
    return phase_command(settings, layout, CLEAN_ALL)


def ratio_command(settings: ExecutionSettings, layout: ScriptLayout, *, intermediate: bool = False) -> List[str]:
    cmd = phase_command(settings, layout, INTERMEDIATE_RATIO if intermediate else TARGET_RATIO)
    # -s: sem "Entering directory" e afins na saída parseada
    return cmd[:1] + ["-s"] + cmd[1:]


def main_command(settings: ExecutionSettings, layout: ScriptLayout) -> List[str]:
    if settings.command is not None:
        if not settings.command.strip():
            raise EngineConfigurationError(
                message="execution.command is empty",
                details={"command": settings.command},
            )
        return ["/bin/sh", "-c", settings.command]

    if settings.is_delegated:
        argv = shlex.split(settings.cluster_wrapper or "")
        if not argv:
            raise EngineConfigurationError(
                message="execution.cluster_wrapper is empty",
                details={"cluster_wrapper": settings.cluster_wrapper},
            )
        argv += ["-f", layout.makefile]
    else:
        argv = [settings.make, "-f", layout.makefile]
        if settings.is_parallel:
            argv += ["-j", str(settings.jobs)]

    if settings.keep_going:
        argv.append("-k")
    argv.append(ALL)
    return argv


def render(argv: List[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)
