"""Pipegen — Toolbox (core).

Componentes canônicos do sistema de tipos e do catálogo de módulos:
 - formatos e subtipagem (`FormatRegistry.is_valid_input_to`)
 - parâmetros e definições de módulos
 - template de comando com preenchimento em passada única
 - loader de diretórios de toolbox (YAML/JSON)
"""

from .definitions import (  # noqa: F401
    ModuleDef,
    Parameter,
    module_def_from_dict,
    parameter_from_dict,
)
from .formats import (  # noqa: F401
    ARG_FORMAT,
    ARG_FORMAT_NAME,
    Format,
    FormatRegistry,
    formats_from_catalog,
)
from .loader import Toolbox, load_toolbox, read_structured_file  # noqa: F401
from .template import CommandTemplate  # noqa: F401
