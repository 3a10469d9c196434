"""Pipegen — Diagnostics (core).

Reconstrução da árvore de falhas a partir dos marcadores de erro
gravados pelas receitas do script gerado.
"""

from .failure_tree import (  # noqa: F401
    ErrorMarker,
    FailureTreeBuilder,
    failure_report,
    scan_error_markers,
)
