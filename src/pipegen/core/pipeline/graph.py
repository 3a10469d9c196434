# src/pipegen/core/pipeline/graph.py
"""
Agregado `Pipeline`: blocos, conexões e operações de edição do grafo.

O pipeline é a unidade de load/save e a única porta de entrada para
mutações do grafo. Toda operação de edição é validada antes de qualquer
alteração de estado: uma operação rejeitada deixa o grafo intacto.

Princípios fundamentais:
    - Ids são atribuídos por um alocador próprio do pipeline, semeado
      com max(id) + 1 dos blocos carregados; ids nunca são reutilizados
    - Conexões são a fonte única da adjacência (blocos não guardam arestas)
    - Referências externas são `PortRef`, nunca objetos vivos

Invariantes:
    - Uma entrada possui no máximo uma conexão; saídas têm fan-out livre
    - Toda conexão satisfaz `is_valid_input_to(saída, entrada)`
    - O grafo é acíclico
    - Nenhuma conexão referencia um bloco inexistente

Limites explícitos:
    - Não gera scripts (ver `compiler`)
    - Não lê nem escreve arquivos (ver `pipeline.serialization`)
"""

from __future__ import annotations

import copy
from typing import Dict, Iterator, List, Optional, Union

from pipegen.core.exceptions import (
    IncompatibleFormat,
    InvalidConnectionDefinition,
    InvalidParameterDefinition,
    InvalidPipelineDefinition,
    PortOccupied,
    UnknownBlock,
)
from pipegen.core.table import DataTable
from pipegen.core.toolbox import Format, FormatRegistry, ModuleDef, Parameter

from .blocks import Block, Module, Sink, Source
from .types import BlockKind, Connection, PortRef, Position


def _dedup(values: List[str]) -> List[str]:
    out: List[str] = []
    for v in values:
        if v not in out:
            out.append(v)
    return out


class Pipeline:
    """
    Grafo tipado de Sources, Modules e Sinks.

    Uso típico:

        p = Pipeline("demo", toolbox.formats)
        src = p.add_source("infile", "text")
        mod = p.add_module(toolbox.module("convert"))
        dst = p.add_sink("outfile", "csv")
        p.connect(src.ref(), mod.ref(0))
        p.connect(mod.ref(0), dst.ref())
    """

    def __init__(self, name: str, formats: FormatRegistry):
        self.name = name
        self.formats = formats
        self._blocks: Dict[BlockKind, Dict[int, Block]] = {kind: {} for kind in BlockKind}
        self._connections: List[Connection] = []
        self._next_id = 0
        self.has_unsaved_changes = True

    # -----------------------------
    # Coleções
    # -----------------------------
    @property
    def sources(self) -> List[Source]:
        return list(self._blocks[BlockKind.SOURCE].values())  # type: ignore[arg-type]

    @property
    def sinks(self) -> List[Sink]:
        return list(self._blocks[BlockKind.SINK].values())  # type: ignore[arg-type]

    @property
    def modules(self) -> List[Module]:
        return list(self._blocks[BlockKind.MODULE].values())  # type: ignore[arg-type]

    @property
    def connections(self) -> List[Connection]:
        return list(self._connections)

    @property
    def next_id(self) -> int:
        return self._next_id

    def blocks(self) -> Iterator[Block]:
        for kind in (BlockKind.SOURCE, BlockKind.SINK, BlockKind.MODULE):
            yield from self._blocks[kind].values()

    def block(self, kind: BlockKind, block_id: int) -> Block:
        try:
            return self._blocks[kind][block_id]
        except KeyError:
            raise UnknownBlock(
                message=f"unknown {kind.value} id: {block_id}",
                details={"kind": kind.value, "block_id": block_id},
            ) from None

    def has_block(self, kind: BlockKind, block_id: int) -> bool:
        return block_id in self._blocks[kind]

    # -----------------------------
    # Criação de blocos
    # -----------------------------
    def _allocate(self, kind: BlockKind, block_id: Optional[int]) -> int:
        if block_id is None:
            block_id = self._next_id
        elif isinstance(block_id, bool) or not isinstance(block_id, int) or block_id < 0:
            raise InvalidPipelineDefinition(
                message=f"block id must be a non-negative integer: {block_id!r}",
                details={"kind": kind.value, "block_id": block_id},
            )
        if block_id in self._blocks[kind]:
            raise InvalidPipelineDefinition(
                message=f"duplicate {kind.value} id: {block_id}",
                details={"kind": kind.value, "block_id": block_id},
            )
        self._next_id = max(self._next_id, block_id + 1)
        return block_id

    def _parameter(self, format: Union[Format, str], required: bool) -> Parameter:
        name = format if isinstance(format, str) else format.name
        if name not in self.formats:
            raise InvalidParameterDefinition(
                message=f"unknown format: {name}",
                details={"format": name},
            )
        return Parameter(name="", format=self.formats.get(name), required=required)

    def add_source(
        self,
        column: str,
        format: Union[Format, str],
        *,
        required: bool = True,
        position: Optional[Position] = None,
        block_id: Optional[int] = None,
    ) -> Source:
        parameter = self._parameter(format, required)
        source = Source(
            id=self._allocate(BlockKind.SOURCE, block_id),
            column=column,
            parameter=parameter,
            position=position or Position(),
        )
        self._blocks[BlockKind.SOURCE][source.id] = source
        self.has_unsaved_changes = True
        return source

    def add_sink(
        self,
        column: str,
        format: Union[Format, str],
        *,
        required: bool = True,
        position: Optional[Position] = None,
        block_id: Optional[int] = None,
    ) -> Sink:
        parameter = self._parameter(format, required)
        sink = Sink(
            id=self._allocate(BlockKind.SINK, block_id),
            column=column,
            parameter=parameter,
            position=position or Position(),
        )
        self._blocks[BlockKind.SINK][sink.id] = sink
        self.has_unsaved_changes = True
        return sink

    def add_module(
        self,
        definition: ModuleDef,
        *,
        position: Optional[Position] = None,
        block_id: Optional[int] = None,
    ) -> Module:
        module = Module(
            id=self._allocate(BlockKind.MODULE, block_id),
            definition=definition,
            position=position or Position(),
        )
        self._blocks[BlockKind.MODULE][module.id] = module
        self.has_unsaved_changes = True
        return module

    def move_block(self, kind: BlockKind, block_id: int, dx: int, dy: int) -> None:
        b = self.block(kind, block_id)
        b.position = b.position.moved(dx, dy)
        self.has_unsaved_changes = True

    # -----------------------------
    # Conexões
    # -----------------------------
    def incoming(self, stop: PortRef) -> Optional[Connection]:
        for c in self._connections:
            if c.stop == stop:
                return c
        return None

    def upstream(self, stop: PortRef) -> Optional[PortRef]:
        """Porta de saída ligada à entrada `stop`, ou None se desconectada."""
        c = self.incoming(stop)
        return c.start if c else None

    def outgoing(self, start: PortRef) -> List[Connection]:
        return [c for c in self._connections if c.start == start]

    def connections_of(self, kind: BlockKind, block_id: int) -> List[Connection]:
        return [c for c in self._connections if c.touches(kind, block_id)]

    def children(self, kind: BlockKind, block_id: int) -> List[Block]:
        """
        Blocos a jusante, um por conexão de saída.

        Ordem: saídas por índice e, em cada saída, conexões por ordem de
        criação. Um bloco ligado por duas arestas aparece duas vezes.
        """
        b = self.block(kind, block_id)
        out: List[Block] = []
        for index in range(len(b.outputs)):
            for c in self.outgoing(PortRef(kind, block_id, index)):
                out.append(self.block(c.stop.kind, c.stop.block_id))
        return out

    def _reaches(self, start: PortRef, target_kind: BlockKind, target_id: int) -> bool:
        # busca a jusante a partir do bloco de `start`
        stack = [(start.kind, start.block_id)]
        seen = set()
        while stack:
            key = stack.pop()
            if key == (target_kind, target_id):
                return True
            if key in seen:
                continue
            seen.add(key)
            for c in self._connections:
                if (c.start.kind, c.start.block_id) == key:
                    stack.append((c.stop.kind, c.stop.block_id))
        return False

    def connect(self, start: PortRef, stop: PortRef) -> Connection:
        """
        Liga a saída `start` à entrada `stop`.

        Raises:
            UnknownBlock: bloco inexistente em qualquer ponta.
            InvalidPort: índice de porta inexistente ou direção errada.
            IncompatibleFormat: formato da saída não é entrada válida para a entrada.
            PortOccupied: a entrada já possui uma conexão.
            InvalidConnectionDefinition: a aresta criaria um ciclo.
        """
        out_block = self.block(start.kind, start.block_id)
        in_block = self.block(stop.kind, stop.block_id)
        out_param = out_block.output(start.index)
        in_param = in_block.input(stop.index)

        if not self.formats.is_valid_input_to(out_param.format, in_param.format):
            raise IncompatibleFormat(
                message=(
                    f"{out_block.label()} output '{out_param.format.name}' is not a valid "
                    f"input to {in_block.label()} input '{in_param.format.name}'"
                ),
                details={
                    "start": str(start),
                    "stop": str(stop),
                    "source_format": out_param.format.name,
                    "target_format": in_param.format.name,
                },
            )

        occupied = self.incoming(stop)
        if occupied is not None:
            raise PortOccupied(
                message=f"{in_block.label()} input {stop.index} is already connected",
                details={"stop": str(stop), "connected_from": str(occupied.start)},
                hint="Disconnect the existing connection first.",
            )

        if self._reaches(stop, start.kind, start.block_id):
            raise InvalidConnectionDefinition(
                message=f"connecting {out_block.label()} to {in_block.label()} would create a cycle",
                details={"start": str(start), "stop": str(stop)},
            )

        connection = Connection(start=start, stop=stop)
        self._connections.append(connection)
        self.has_unsaved_changes = True
        return connection

    def disconnect(self, connection: Connection) -> None:
        if connection not in self._connections:
            raise InvalidConnectionDefinition(
                message=f"connection not found: {connection}",
                details={"start": str(connection.start), "stop": str(connection.stop)},
            )
        self._connections.remove(connection)
        self.has_unsaved_changes = True

    def delete_block(self, kind: BlockKind, block_id: int) -> List[Connection]:
        """Remove o bloco e, antes dele, toda conexão que o toca. Retorna as conexões removidas."""
        self.block(kind, block_id)
        removed = self.connections_of(kind, block_id)
        self._connections = [c for c in self._connections if c not in removed]
        del self._blocks[kind][block_id]
        self.has_unsaved_changes = True
        return removed

    # -----------------------------
    # Tabela
    # -----------------------------
    def bound_columns(self) -> List[str]:
        return _dedup([s.column for s in self.sources] + [s.column for s in self.sinks])

    def missing_data(self, table: DataTable) -> List[str]:
        """Colunas ligadas a Sources/Sinks ausentes da tabela."""
        headers = table.headers
        return [c for c in self.bound_columns() if c not in headers]

    def unused_data(self, table: DataTable) -> List[str]:
        """Colunas de dados da tabela (exceto `id` e variáveis de make) sem ligação."""
        bound = self.bound_columns()
        return [h for h in table.data_columns() if h not in bound]

    # -----------------------------
    # Estado
    # -----------------------------
    def mark_saved(self) -> None:
        self.has_unsaved_changes = False

    def snapshot(self) -> "Pipeline":
        """Cópia profunda independente; o registry de formatos é compartilhado."""
        return copy.deepcopy(self, memo={id(self.formats): self.formats})

    def __repr__(self) -> str:
        return (
            f"Pipeline(name={self.name!r}, sources={len(self.sources)}, "
            f"modules={len(self.modules)}, sinks={len(self.sinks)}, "
            f"connections={len(self._connections)})"
        )
