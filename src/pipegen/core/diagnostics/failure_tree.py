# src/pipegen/core/diagnostics/failure_tree.py
"""
Árvore de falhas: o que deixou de ser produzido por causa de cada erro.

A cláusula de falha das receitas de módulo cria um marcador
`<errors_dir>/<row>/<moduleId>/` quando o comando termina com código
diferente de zero. Para cada marcador, este módulo percorre o grafo a
jusante do módulo (pré-ordem, em profundidade) e gera um relatório:

    id 1 at module convert
    + convert
        + summarize
            - report: out/1/report.txt
        - outfile: out/1/a.csv

Regras:
    - Módulos: `+ <nome>`; Sinks: `- <coluna>: <arquivo>` com `$(var)`
      substituídas pelos valores da linha
    - Indentação de quatro espaços por nível de profundidade
    - Um bloco alcançável por dois caminhos aparece uma vez por caminho
    - Marcadores com id não numérico, módulo inexistente ou linha ausente
      da tabela são ignorados
    - Ordem determinística: linhas em ordem lexicográfica, módulos por id

O relatório é puramente diagnóstico; não altera o build.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pipegen.core.pipeline import Block, BlockKind, Module, Pipeline
from pipegen.core.table import DataTable


INDENT = "    "


@dataclass(frozen=True, order=True)
class ErrorMarker:
    row_id: str
    module_id: int


def scan_error_markers(errors_root: Path) -> List[ErrorMarker]:
    """Lista `<row>/<moduleId>/` sob `errors_root`; diretório ausente → lista vazia."""
    if not errors_root.is_dir():
        return []
    markers: List[ErrorMarker] = []
    for row_dir in errors_root.iterdir():
        if not row_dir.is_dir():
            continue
        for module_dir in row_dir.iterdir():
            if module_dir.is_dir() and module_dir.name.isdigit():
                markers.append(ErrorMarker(row_dir.name, int(module_dir.name)))
    return sorted(markers)


class FailureTreeBuilder:
    def __init__(self, pipeline: Pipeline, table: DataTable):
        self.pipeline = pipeline
        self.table = table

    def _visit(self, block: Block, row_id: str, depth: int, out: List[str]) -> None:
        pad = INDENT * depth
        if block.kind == BlockKind.MODULE:
            out.append(f"{pad}+ {block.name}")  # type: ignore[union-attr]
            for child in self.pipeline.children(block.kind, block.id):
                self._visit(child, row_id, depth + 1, out)
        elif block.kind == BlockKind.SINK:
            filename = self.table.substitute_make_variables(
                self.table.value(block.column, row_id),  # type: ignore[union-attr]
                row_id,
            )
            out.append(f"{pad}- {block.column}: {filename}")  # type: ignore[union-attr]
        elif block.kind == BlockKind.SOURCE:
            raise ValueError(f"a source cannot be downstream of a module: {block.label()}")

    def tree(self, module: Module, row_id: str) -> List[str]:
        out: List[str] = []
        self._visit(module, row_id, 0, out)
        return out

    def render_marker(self, marker: ErrorMarker) -> Optional[str]:
        if not self.pipeline.has_block(BlockKind.MODULE, marker.module_id):
            return None
        if not self.table.has_row(marker.row_id):
            return None
        module: Module = self.pipeline.block(BlockKind.MODULE, marker.module_id)  # type: ignore[assignment]
        lines = [f"id {marker.row_id} at module {module.name}"] + self.tree(module, marker.row_id)
        return "\n".join(lines) + "\n"

    def render(self, markers: List[ErrorMarker]) -> str:
        """Relatórios concatenados, separados por linha em branco."""
        reports = [r for r in (self.render_marker(m) for m in sorted(markers)) if r is not None]
        return "\n".join(reports)


def failure_report(pipeline: Pipeline, table: DataTable, errors_root: Path) -> str:
    return FailureTreeBuilder(pipeline, table).render(scan_error_markers(errors_root))
