# src/pipegen/core/compiler/makefile.py
"""
Gerador de Makefile por linha da tabela.

Dado um `Pipeline` e uma `DataTable`, produz um único script de make que,
para cada linha e cada Sink, reproduz a cadeia de comandos necessária
para materializar o arquivo do Sink a partir dos dados de origem.

Estrutura do script (sempre nesta ordem):

    cabeçalho e variáveis (PROCESSING, ERRORS, TARGETS, INTERMEDIATES)
    .PHONY
    all / setupall / setup<row> / target_ratio / intermediate_ratio / cleanall
    regras por linha: Sinks na ordem do pipeline, cada um seguido das
    regras a montante em pré-ordem

Regras:
    - Source: não emite regra. O valor é a célula da linha ou, para `arg`,
      um arquivo de texto materializado pelo alvo `setup<row>`
    - Module: alvo = primeira saída; demais saídas dependem dela; receita =
      template preenchido e envolto na cláusula de falha que cria
      `$(ERRORS)<row>/<moduleId>` e remove saídas parciais
    - Sink: alvo = nome visível da célula (com `$(var)` substituídas);
      dependência única = caminho a montante; receita copia o arquivo

Determinismo: nenhuma ordenação por hash, nenhum timestamp. O mesmo
(pipeline, tabela, keep_going, layout) produz sempre o mesmo texto.

Falhas de geração (entrada obrigatória desconectada, dados ausentes)
são acumuladas e levantadas de uma vez; nada é escrito em disco.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from pipegen.core.config import ScriptLayout
from pipegen.core.exceptions import InvalidTable, MissingRequiredInput, MissingTableData
from pipegen.core.pipeline import BlockKind, Module, Pipeline, PortRef, Sink, Source
from pipegen.core.table import DataTable
from pipegen.core.toolbox import CommandTemplate

from . import layout as L


@dataclass(frozen=True)
class BuildScript:
    """Resultado da composição: texto do script e alvos contados pelos ratios."""

    text: str
    targets: Tuple[str, ...]
    intermediates: Tuple[str, ...]
    rows: Tuple[str, ...]

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.text, encoding="utf-8")
        return path


@dataclass
class _RowState:
    rules: List[str] = field(default_factory=list)
    emitted: Set[int] = field(default_factory=set)
    arg_sources: List[Source] = field(default_factory=list)


class MakefileGenerator:
    """
    Compilador pipeline + tabela → Makefile.

    O gerador é puro: `compose()` não toca o disco. `write()` compõe e só
    então grava o arquivo, de modo que uma falha de geração nunca deixa
    um script parcial.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        table: DataTable,
        *,
        keep_going: bool = False,
        layout: Optional[ScriptLayout] = None,
    ):
        self.pipeline = pipeline
        self.table = table
        self.keep_going = keep_going
        self.layout = layout or ScriptLayout()

    # -----------------------------
    # Validação
    # -----------------------------
    def _active_sinks(self) -> List[Sink]:
        """Sinks conectados; Sinks opcionais desconectados são ignorados."""
        return [s for s in self.pipeline.sinks if self.pipeline.upstream(s.ref()) is not None]

    def _upstream_modules(self, sinks: List[Sink]) -> List[Module]:
        seen: List[int] = []
        stack: List[PortRef] = [up for s in sinks for up in [self.pipeline.upstream(s.ref())] if up]
        while stack:
            ref = stack.pop(0)
            if ref.kind != BlockKind.MODULE or ref.block_id in seen:
                continue
            seen.append(ref.block_id)
            module = self.pipeline.block(BlockKind.MODULE, ref.block_id)
            for i in range(len(module.inputs)):
                up = self.pipeline.upstream(module.ref(i))
                if up is not None:
                    stack.append(up)
        return [self.pipeline.block(BlockKind.MODULE, mid) for mid in seen]  # type: ignore[misc]

    def validate(self) -> None:
        """
        Verifica, antes de gerar qualquer texto, tudo o que não depende da linha.

        Raises:
            MissingTableData: coluna ligada a Source/Sink ausente da tabela.
            MissingRequiredInput: Sink obrigatório ou entrada obrigatória de
                módulo alcançável sem conexão (lista completa em `details`).
            InvalidTable: row id inutilizável como caminho.
        """
        missing_columns = self.pipeline.missing_data(self.table)
        if missing_columns:
            raise MissingTableData(
                message=f"table is missing columns: {', '.join(missing_columns)}",
                details={"missing": missing_columns},
            )

        problems: List[str] = []
        for s in self.pipeline.sinks:
            if s.parameter.required and self.pipeline.upstream(s.ref()) is None:
                problems.append(s.label())
        for m in self._upstream_modules(self._active_sinks()):
            for i, p in enumerate(m.inputs):
                if p.required and self.pipeline.upstream(m.ref(i)) is None:
                    problems.append(f"{m.label()} input '{p.name}'")
        if problems:
            raise MissingRequiredInput(
                message=f"required inputs are not connected: {'; '.join(problems)}",
                details={"missing": problems},
                hint="Connect every required input, or remove the blocks that need it.",
            )

        for row_id in self.table.row_ids:
            L.check_row_id(row_id)

    # -----------------------------
    # Resolução de caminhos
    # -----------------------------
    def _cell(self, column: str, row_id: str) -> str:
        return self.table.substitute_make_variables(self.table.value(column, row_id), row_id)

    def _path(self, ref: PortRef, row_id: str, state: _RowState, problems: List[str]) -> str:
        if ref.kind == BlockKind.SOURCE:
            source: Source = self.pipeline.block(ref.kind, ref.block_id)  # type: ignore[assignment]
            if source.parameter.is_arg:
                if source not in state.arg_sources:
                    state.arg_sources.append(source)
                return L.arg_source_path(row_id, source.id, source.parameter.suffix)
            value = self._cell(source.column, row_id)
            if not value:
                problems.append(f"row {row_id}: empty '{source.column}'")
                return ""
            return L.make_escape(L.check_path_cell(value, row_id, source.column))
        if ref.kind == BlockKind.MODULE:
            module: Module = self.pipeline.block(ref.kind, ref.block_id)  # type: ignore[assignment]
            return L.intermediate_path(row_id, module.id, ref.index, module.output(ref.index).suffix)
        raise ValueError(f"a sink has no output port: {ref}")

    # -----------------------------
    # Emissão
    # -----------------------------
    def _command(self, module: Module, row_id: str, values: Dict[str, str]) -> str:
        text = self.table.substitute_make_variables(module.definition.command.text, row_id)
        return CommandTemplate(L.make_escape(text)).fill(values)

    def _emit_module(
        self,
        module: Module,
        row_id: str,
        state: _RowState,
        problems: List[str],
        intermediates: List[str],
    ) -> None:
        if module.id in state.emitted:
            return
        state.emitted.add(module.id)

        outputs = [
            L.intermediate_path(row_id, module.id, i, p.suffix) for i, p in enumerate(module.outputs)
        ]
        values: Dict[str, str] = {p.name: outputs[i] for i, p in enumerate(module.outputs)}
        deps: List[str] = []
        upstream: List[PortRef] = []
        for i, p in enumerate(module.inputs):
            up = self.pipeline.upstream(module.ref(i))
            if up is None:
                values[p.name] = ""
                continue
            path = self._path(up, row_id, state, problems)
            values[p.name] = f"`cat {path}`" if p.is_arg else path
            if path not in deps:
                deps.append(path)
            upstream.append(up)

        command = self._command(module, row_id, values)
        cleanup = f"mkdir -p {L.error_marker(row_id, module.id)}; rm -f {' '.join(outputs)};"
        if self.keep_going:
            guard = 'for f in $^; do test -e "$$f" || { echo "skipping $@: missing $$f" >&2; exit 0; }; done; '
            recipe = f"{guard}( {command} ) || {{ {cleanup} }}"
        else:
            recipe = f"( {command} ) || {{ {cleanup} exit 1; }}"

        lines = [f"{outputs[0]} : {' '.join(deps + ['|', L.setup_target(row_id)])}"]
        lines.append(f"\t{recipe}")
        for extra in outputs[1:]:
            lines.append(f"{extra} : {outputs[0]} ;")
        state.rules.append("\n".join(lines))
        intermediates.extend(outputs)

        for up in upstream:
            if up.kind == BlockKind.MODULE:
                self._emit_module(
                    self.pipeline.block(BlockKind.MODULE, up.block_id),  # type: ignore[arg-type]
                    row_id,
                    state,
                    problems,
                    intermediates,
                )

    def _setup_rule(self, row_id: str, state: _RowState) -> str:
        lines = [
            f"{L.setup_target(row_id)} :",
            f"\t@mkdir -p {L.processing_dir(row_id)} {L.errors_dir(row_id)}",
        ]
        for source in state.arg_sources:
            path = L.arg_source_path(row_id, source.id, source.parameter.suffix)
            content = L.shell_literal(self._cell(source.column, row_id))
            lines.append(f"\t@printf '%s' {content} | cmp -s - {path} || printf '%s' {content} > {path}")
        return "\n".join(lines)

    def compose(self) -> BuildScript:
        """
        Gera o script completo em memória.

        Raises:
            MissingTableData / MissingRequiredInput / InvalidTable: ver `validate`.
                Células vazias de Sources de arquivo e alvos de Sink vazios
                ou repetidos também levantam `MissingTableData`/`InvalidTable`.
                Células de caminho com caracteres que o make interpreta
                levantam `InvalidTable`.
        """
        self.validate()

        sinks = self._active_sinks()
        rows = self.table.row_ids
        problems: List[str] = []
        targets: List[str] = []
        seen_targets: Set[str] = set()
        intermediates: List[str] = []
        row_sections: List[str] = []
        setup_rules: List[str] = []

        for row_id in rows:
            state = _RowState()
            for sink in sinks:
                up = self.pipeline.upstream(sink.ref())
                filename = self._cell(sink.column, row_id)
                if not filename:
                    problems.append(f"row {row_id}: empty '{sink.column}'")
                    continue
                target = L.make_escape(L.check_path_cell(filename, row_id, sink.column))
                if target in seen_targets:
                    raise InvalidTable(
                        message=f"sink target produced twice: {filename}",
                        details={"row_id": row_id, "column": sink.column, "target": filename},
                    )
                targets.append(target)
                seen_targets.add(target)
                dep = self._path(up, row_id, state, problems)
                state.rules.append(
                    f"{target} : {dep} | {L.setup_target(row_id)}\n\tmkdir -p $(@D) && cp $< $@"
                )
                if up.kind == BlockKind.MODULE:
                    self._emit_module(
                        self.pipeline.block(BlockKind.MODULE, up.block_id),  # type: ignore[arg-type]
                        row_id,
                        state,
                        problems,
                        intermediates,
                    )

            for source in state.arg_sources:
                path = L.arg_source_path(row_id, source.id, source.parameter.suffix)
                state.rules.append(f"{path} : | {L.setup_target(row_id)} ;")

            setup_rules.append(self._setup_rule(row_id, state))
            if state.rules:
                row_sections.append(f"# row {row_id}\n" + "\n\n".join(state.rules))

        if problems:
            problems = list(dict.fromkeys(problems))
            raise MissingTableData(
                message=f"table cells required by the pipeline are empty: {'; '.join(problems)}",
                details={"missing": problems},
            )

        text = self._assemble(rows, targets, intermediates, setup_rules, row_sections)
        return BuildScript(
            text=text,
            targets=tuple(targets),
            intermediates=tuple(intermediates),
            rows=tuple(rows),
        )

    def _assemble(
        self,
        rows: List[str],
        targets: List[str],
        intermediates: List[str],
        setup_rules: List[str],
        row_sections: List[str],
    ) -> str:
        lo = self.layout
        setups = [L.setup_target(r) for r in rows]
        phony = [L.ALL, L.SETUP_ALL, L.CLEAN_ALL, L.TARGET_RATIO, L.INTERMEDIATE_RATIO] + setups

        blocks = [
            "\n".join(
                [
                    f"# pipegen build script: pipeline '{self.pipeline.name}'",
                    f"# rows: {len(rows)}, keep going: {'yes' if self.keep_going else 'no'}",
                ]
            ),
            "\n".join(
                [
                    f"{L.PROCESSING_VAR} := {lo.processing_dir}/",
                    f"{L.ERRORS_VAR} := {lo.errors_dir}/",
                    "",
                    f"TARGETS := {' '.join(targets)}".rstrip(),
                    f"INTERMEDIATES := {' '.join(intermediates)}".rstrip(),
                ]
            ),
            f".PHONY : {' '.join(phony)}",
            f"{L.ALL} : $(TARGETS)",
            "\n".join(
                [
                    f"{L.SETUP_ALL} : {' '.join(setups)}".rstrip(),
                    f"\t@: > {lo.stdout_file}",
                    f"\t@: > {lo.stderr_file}",
                ]
            ),
            *setup_rules,
            "\n".join(
                [
                    f"{L.TARGET_RATIO} :",
                    '\t@echo "$(words $(wildcard $(TARGETS))) / $(words $(TARGETS))"',
                ]
            ),
            "\n".join(
                [
                    f"{L.INTERMEDIATE_RATIO} :",
                    '\t@echo "$(words $(wildcard $(TARGETS) $(INTERMEDIATES))) / '
                    '$(words $(TARGETS) $(INTERMEDIATES))"',
                ]
            ),
            "\n".join(
                [
                    f"{L.CLEAN_ALL} :",
                    "\trm -f $(TARGETS)",
                    f"\trm -rf $({L.PROCESSING_VAR}) $({L.ERRORS_VAR})",
                ]
            ),
            *row_sections,
        ]
        return "\n\n".join(blocks) + "\n"

    def write(self, root: Path) -> BuildScript:
        """Compõe e, só após sucesso, grava `<root>/<layout.makefile>`."""
        script = self.compose()
        script.write(Path(root) / self.layout.makefile)
        return script


def compose_makefile(
    pipeline: Pipeline,
    table: DataTable,
    *,
    keep_going: bool = False,
    layout: Optional[ScriptLayout] = None,
) -> BuildScript:
    return MakefileGenerator(pipeline, table, keep_going=keep_going, layout=layout).compose()
