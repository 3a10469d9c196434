"""Pipegen — Pipeline (core).

Grafo tipado de Sources, Modules e Sinks:
 - referências estáveis (`PortRef`) e variantes de bloco (`BlockKind`)
 - agregado `Pipeline` com edição validada e alocador de ids próprio
 - persistência JSON determinística
"""

from .blocks import Block, Module, Sink, Source  # noqa: F401
from .graph import Pipeline  # noqa: F401
from .serialization import (  # noqa: F401
    dumps_pipeline,
    load_pipeline,
    loads_pipeline,
    pipeline_from_dict,
    pipeline_to_dict,
    save_pipeline,
)
from .types import BlockKind, Connection, PortRef, Position  # noqa: F401
