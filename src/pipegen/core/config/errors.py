# src/pipegen/core/config/errors.py
"""
Exceções da camada de configuração.

Cobrem apenas falhas estruturais de arquivo e de merge: arquivo de
defaults ausente, extensão desconhecida, raiz que não é mapeamento e
conflito de tipos entre defaults e override. Valores semanticamente
inválidos (ex.: `jobs: 0`, `jobs > 1` com `cluster_wrapper`) são
reportados por `EngineConfigurationError` em `settings`.

Toda exceção carrega o arquivo de origem em `path` quando ele é
conhecido; `ConfigTypeConflictError` carrega também a chave pontilhada
do conflito (ex.: `execution.jobs`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ConfigError(Exception):
    """Base das falhas estruturais de configuração."""

    def __init__(self, message: str, *, path: Optional[Path] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class DefaultsNotFoundError(ConfigError):
    """O arquivo de defaults informado não existe; nada é inferido no lugar."""


class UnsupportedConfigFormatError(ConfigError):
    """Extensão fora de `.yaml`, `.yml` e `.json`."""


class InvalidConfigRootTypeError(ConfigError):
    """O documento carregado não é um mapeamento."""


class ConfigTypeConflictError(ConfigError):
    """
    Defaults e override divergem no tipo de uma mesma chave.

        defaults: {"execution": {"jobs": 8}}
        override: {"execution": "parallel"}   -> key == "execution"
    """

    def __init__(self, message: str, *, key: str, path: Optional[Path] = None):
        super().__init__(message, path=path)
        self.key = key
