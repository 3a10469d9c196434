# src/pipegen/core/compiler/layout.py
"""
Caminhos e nomes usados no script gerado.

Todo caminho intermediário é relativo à raiz de saída da análise (o cwd
do make) e passa pelas variáveis de make declaradas no topo do script:

    PROCESSING := <processing_dir>/
    ERRORS := <errors_dir>/

    $(PROCESSING)<row>/<moduleId>_<outputIndex><suffix>   saída de módulo
    $(PROCESSING)<row>/source<sourceId>_0<suffix>         Source `arg` materializado
    $(ERRORS)<row>/<moduleId>/                            marcador de falha
"""

from __future__ import annotations

import re
import shlex

from pipegen.core.exceptions import InvalidTable


PROCESSING_VAR = "PROCESSING"
ERRORS_VAR = "ERRORS"

SETUP_ALL = "setupall"
ALL = "all"
CLEAN_ALL = "cleanall"
TARGET_RATIO = "target_ratio"
INTERMEDIATE_RATIO = "intermediate_ratio"

_ROW_ID = re.compile(r"^[A-Za-z0-9_.\-]+$")


def check_row_id(row_id: str) -> str:
    """Row ids viram nomes de diretório e de alvo: só `[A-Za-z0-9_.-]`."""
    if not _ROW_ID.match(row_id) or row_id in {".", ".."}:
        raise InvalidTable(
            message=f"row id cannot be used in build paths: {row_id!r}",
            details={"row_id": row_id},
            hint="Use only letters, digits, '_', '.' and '-' in the id column.",
        )
    return row_id


_UNSAFE_PATH = re.compile(r"[\s:%;#=|*?\[\]\\]")


def check_path_cell(value: str, row_id: str, column: str) -> str:
    """
    Células que viram alvo ou dependência de regra.

    Espaço, `:`, `%`, `;`, `#`, `=`, `|`, curingas e `\\` mudam o sentido
    da linha da regra no make; `$` é escapado por `make_escape`.
    """
    unsafe = sorted(set(_UNSAFE_PATH.findall(value)))
    if unsafe:
        raise InvalidTable(
            message=f"cell cannot be used as a make path: {value!r}",
            details={"row_id": row_id, "column": column, "value": value, "characters": unsafe},
            hint="Rename the file, or feed the value through an 'arg' source instead.",
        )
    return value


def processing_dir(row_id: str) -> str:
    return f"$({PROCESSING_VAR}){row_id}"


def errors_dir(row_id: str) -> str:
    return f"$({ERRORS_VAR}){row_id}"


def intermediate_path(row_id: str, module_id: int, output_index: int, suffix: str) -> str:
    return f"{processing_dir(row_id)}/{module_id}_{output_index}{suffix}"


def arg_source_path(row_id: str, source_id: int, suffix: str = "") -> str:
    return f"{processing_dir(row_id)}/source{source_id}_0{suffix}"


def error_marker(row_id: str, module_id: int) -> str:
    return f"{errors_dir(row_id)}/{module_id}"


def setup_target(row_id: str) -> str:
    return f"setup{row_id}"


def make_escape(text: str) -> str:
    """Protege `$` de texto literal contra expansão do make."""
    return text.replace("$", "$$")


def shell_literal(text: str) -> str:
    """Literal de shell seguro dentro de uma receita de make."""
    return make_escape(shlex.quote(text))
