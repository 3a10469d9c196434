# src/pipegen/core/config/__init__.py
"""
Camada de configuração do Pipegen.

Este pacote carrega, mescla e identifica a configuração de execução de
uma análise: qual ferramenta de build usar, paralelismo, política
keep-going, delegação a cluster, timeouts de polling e o layout de
diretórios do script gerado.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Resolução de configuração final via deep-merge determinístico
    - Hash canônico para rastreabilidade
    - Materialização tipada (`ExecutionSettings`, `ScriptLayout`)

Invariantes:
    - A configuração final é um dicionário puro (dict)
    - A mesma entrada sempre produz a mesma configuração final
    - Conflitos estruturais são tratados como erro
"""

from .errors import (  # noqa: F401
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_bytes_hash, compute_config_hash, compute_text_hash  # noqa: F401
from .loader import load_config, load_toolbox_config  # noqa: F401
from .merge import deep_merge  # noqa: F401
from .settings import (  # noqa: F401
    DEFAULT_CONFIG,
    ExecutionSettings,
    ScriptLayout,
    execution_settings_from_config,
    script_layout_from_config,
)
