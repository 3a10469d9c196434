# src/pipegen/core/pipeline/blocks.py
"""
Blocos do pipeline: Source, Module e Sink.

Cada bloco possui um id inteiro atribuído pelo `Pipeline` na criação e
preservado em save/load, uma posição e uma ou mais portas tipadas
(`Parameter`). Sources e Sinks se ligam a uma coluna da tabela.

    Source  → uma saída (índice 0), nenhuma entrada
    Module  → entradas e saídas na ordem do `ModuleDef`
    Sink    → uma entrada (índice 0), nenhuma saída

Blocos não guardam conexões: a adjacência é derivada da lista de
conexões do `Pipeline`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Tuple, Union

from pipegen.core.exceptions import InvalidPort
from pipegen.core.toolbox import ModuleDef, Parameter

from .types import BlockKind, PortRef, Position


def _port(ports: Tuple[Parameter, ...], index: int, block: "Block", direction: str) -> Parameter:
    if not 0 <= index < len(ports):
        raise InvalidPort(
            message=f"{block.label()} has no {direction} port {index}",
            details={"kind": block.kind.value, "block_id": block.id, "index": index, "direction": direction},
        )
    return ports[index]


@dataclass
class Source:
    kind: ClassVar[BlockKind] = BlockKind.SOURCE

    id: int
    column: str
    parameter: Parameter
    position: Position = field(default_factory=Position)

    @property
    def inputs(self) -> Tuple[Parameter, ...]:
        return ()

    @property
    def outputs(self) -> Tuple[Parameter, ...]:
        return (self.parameter,)

    def input(self, index: int) -> Parameter:
        return _port(self.inputs, index, self, "input")

    def output(self, index: int) -> Parameter:
        return _port(self.outputs, index, self, "output")

    def ref(self, index: int = 0) -> PortRef:
        return PortRef(self.kind, self.id, index)

    def label(self) -> str:
        return f"source {self.id} ({self.column})"


@dataclass
class Sink:
    kind: ClassVar[BlockKind] = BlockKind.SINK

    id: int
    column: str
    parameter: Parameter
    position: Position = field(default_factory=Position)

    @property
    def inputs(self) -> Tuple[Parameter, ...]:
        return (self.parameter,)

    @property
    def outputs(self) -> Tuple[Parameter, ...]:
        return ()

    def input(self, index: int) -> Parameter:
        return _port(self.inputs, index, self, "input")

    def output(self, index: int) -> Parameter:
        return _port(self.outputs, index, self, "output")

    def ref(self, index: int = 0) -> PortRef:
        return PortRef(self.kind, self.id, index)

    def label(self) -> str:
        return f"sink {self.id} ({self.column})"


@dataclass
class Module:
    kind: ClassVar[BlockKind] = BlockKind.MODULE

    id: int
    definition: ModuleDef
    position: Position = field(default_factory=Position)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def inputs(self) -> Tuple[Parameter, ...]:
        return self.definition.inputs

    @property
    def outputs(self) -> Tuple[Parameter, ...]:
        return self.definition.outputs

    def input(self, index: int) -> Parameter:
        return _port(self.inputs, index, self, "input")

    def output(self, index: int) -> Parameter:
        return _port(self.outputs, index, self, "output")

    def input_index(self, name: str) -> int:
        names = self.definition.input_names()
        if name not in names:
            raise InvalidPort(
                message=f"{self.label()} has no input named '{name}'",
                details={"block_id": self.id, "port": name, "direction": "input"},
            )
        return names.index(name)

    def output_index(self, name: str) -> int:
        names = self.definition.output_names()
        if name not in names:
            raise InvalidPort(
                message=f"{self.label()} has no output named '{name}'",
                details={"block_id": self.id, "port": name, "direction": "output"},
            )
        return names.index(name)

    def ref(self, index: int = 0) -> PortRef:
        return PortRef(self.kind, self.id, index)

    def label(self) -> str:
        return f"module {self.id} ({self.name})"


Block = Union[Source, Module, Sink]
