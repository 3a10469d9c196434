
"""
Pipegen — Canonical Exceptions (v1)

Este módulo define as exceções tipadas internas do Pipegen.

Objetivo:
- Permitir que toolbox, grafo, compilador e driver levantem exceções
  semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Erros de carregamento e de edição do grafo nunca aplicam mudanças parciais.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PipegenException(Exception):
    """Base class para exceções internas do Pipegen.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Sistema de tipos / Toolbox
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InvalidFormatDefinition(PipegenException):
    """Definição de formato inválida ou com pai inexistente."""


@dataclass(frozen=True)
class FormatCycle(PipegenException):
    """A cadeia de herança de formatos contém um ciclo."""


@dataclass(frozen=True)
class InvalidParameterDefinition(PipegenException):
    """Parâmetro (porta) declarado de forma inválida."""


@dataclass(frozen=True)
class InvalidModuleDefinition(PipegenException):
    """Definição de módulo inválida (portas, template ou formato)."""


@dataclass(frozen=True)
class InvalidToolboxDefinition(PipegenException):
    """Diretório de toolbox inconsistente ou ilegível."""


# ---------------------------------------------------------------------------
# Grafo do pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InvalidPipelineDefinition(PipegenException):
    """Pipeline persistido inválido (blocos, ids ou estrutura)."""


@dataclass(frozen=True)
class InvalidConnectionDefinition(PipegenException):
    """Referência de conexão persistida que não pode ser resolvida."""


@dataclass(frozen=True)
class IncompatibleFormat(PipegenException):
    """O formato da saída não é entrada válida para o formato da entrada."""


@dataclass(frozen=True)
class PortOccupied(PipegenException):
    """A porta de entrada já possui uma conexão."""


@dataclass(frozen=True)
class UnknownBlock(PipegenException):
    """Referência a um bloco inexistente no pipeline."""


@dataclass(frozen=True)
class InvalidPort(PipegenException):
    """Referência a uma porta inexistente ou com direção incorreta."""


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InvalidTable(PipegenException):
    """Arquivo tabular inválido (estrutura, cabeçalhos ou coluna `id`)."""


@dataclass(frozen=True)
class MissingTableData(PipegenException):
    """Colunas exigidas pelo pipeline ausentes no dataset."""


# ---------------------------------------------------------------------------
# Geração do script
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MissingRequiredInput(PipegenException):
    """Entrada obrigatória sem conexão em bloco alcançável por um Sink."""


@dataclass(frozen=True)
class UnresolvedPlaceholder(PipegenException):
    """Placeholder `{name}` do template sem valor correspondente."""


# ---------------------------------------------------------------------------
# Engine / Execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisAlreadyRunning(PipegenException):
    """Uma execução já está em andamento para esta análise."""


@dataclass(frozen=True)
class EngineConfigurationError(PipegenException):
    """Configuração de execução inválida ou inconsistente."""


@dataclass(frozen=True)
class InvalidAnalysisDescriptor(PipegenException):
    """Descritor de análise persistido inválido."""
