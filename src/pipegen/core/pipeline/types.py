# src/pipegen/core/pipeline/types.py
"""
Tipos canônicos do grafo de pipeline do Pipegen.

Este módulo define as referências estáveis usadas por todo o núcleo
para apontar blocos, portas e conexões sem depender de identidade de
objetos vivos.

Componentes principais:
    - BlockKind  → enum das variantes de bloco (SOURCE, MODULE, SINK)
    - PortRef    → referência (tipo, id do bloco, índice da porta)
    - Position   → posição do bloco no canvas (preservada em save/load)
    - Connection → aresta dirigida saída → entrada

Princípios fundamentais:
    - Referências são valores imutáveis e comparáveis
    - Serialização e diagnóstico usam apenas (tipo, id, índice)
    - Nenhuma lógica de validação de grafo vive neste módulo

Invariantes:
    - Ids de bloco são únicos por tipo dentro de um pipeline
    - Sources possuem apenas a saída 0; Sinks apenas a entrada 0

Limites explícitos:
    - Não valida formatos (ver `pipeline.graph`)
    - Não serializa (ver `pipeline.serialization`)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BlockKind(str, Enum):
    """
    Variantes de bloco do pipeline.

    Os valores são strings para facilitar serialização e relatórios.

    Variantes:
        - SOURCE: liga uma coluna da tabela a uma porta de saída
        - MODULE: instância de um `ModuleDef` do toolbox
        - SINK: liga uma porta de entrada a uma coluna de arquivo de saída

    Toda rotina que despacha por variante (compilador, árvore de falhas)
    trata as três explicitamente.
    """
    SOURCE = "source"
    MODULE = "module"
    SINK = "sink"


@dataclass(frozen=True, order=True)
class PortRef:
    """Referência estável a uma porta: (tipo do bloco, id do bloco, índice)."""

    kind: BlockKind
    block_id: int
    index: int = 0

    def __str__(self) -> str:
        return f"{self.kind.value}[{self.block_id}].{self.index}"


@dataclass(frozen=True)
class Position:
    x: int = 0
    y: int = 0

    def moved(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Connection:
    """Aresta dirigida: `start` é sempre uma saída e `stop` sempre uma entrada."""

    start: PortRef
    stop: PortRef

    def touches(self, kind: BlockKind, block_id: int) -> bool:
        return (self.start.kind, self.start.block_id) == (kind, block_id) or (
            self.stop.kind,
            self.stop.block_id,
        ) == (kind, block_id)

    def __str__(self) -> str:
        return f"{self.start} -> {self.stop}"
