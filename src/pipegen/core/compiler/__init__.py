"""Pipegen — Compiler (core).

Compilação pipeline + tabela → Makefile por linha:
 - caminhos de intermediários, marcadores de erro e alvos de setup
 - gerador determinístico com validação prévia e escrita tudo-ou-nada
"""

from .layout import (  # noqa: F401
    ALL,
    CLEAN_ALL,
    INTERMEDIATE_RATIO,
    SETUP_ALL,
    TARGET_RATIO,
)
from .makefile import BuildScript, MakefileGenerator, compose_makefile  # noqa: F401
