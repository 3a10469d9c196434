"""
Pipegen — Error Model (v1)

Define o payload canônico de erro e o catálogo estável de códigos usados
pelo Pipegen quando uma falha precisa ser reportada sem interromper o
processo chamador (ex.: polling de progresso, falha ao iniciar o make).

Princípios:
- Códigos são estáveis e não são texto livre
- Mensagens são curtas e humanas
- Nenhum stack trace é embutido no payload
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from pipegen.core.exceptions import PipegenException


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do Pipegen.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - decision_required: indica se a análise está bloqueada aguardando decisão
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Sistema de tipos / Toolbox
FORMAT_INVALID_DEFINITION = "FORMAT_INVALID_DEFINITION"
FORMAT_CYCLE = "FORMAT_CYCLE"
TOOLBOX_INVALID_DEFINITION = "TOOLBOX_INVALID_DEFINITION"

# Grafo
GRAPH_INCOMPATIBLE_FORMAT = "GRAPH_INCOMPATIBLE_FORMAT"
GRAPH_PORT_OCCUPIED = "GRAPH_PORT_OCCUPIED"
GRAPH_INVALID_DEFINITION = "GRAPH_INVALID_DEFINITION"

# Dataset
TABLE_INVALID = "TABLE_INVALID"
TABLE_MISSING_DATA = "TABLE_MISSING_DATA"

# Geração
GENERATION_MISSING_REQUIRED_INPUT = "GENERATION_MISSING_REQUIRED_INPUT"
GENERATION_UNRESOLVED_PLACEHOLDER = "GENERATION_UNRESOLVED_PLACEHOLDER"

# Driver / IO
DRIVER_SPAWN_FAILED = "DRIVER_SPAWN_FAILED"
DRIVER_TIMEOUT = "DRIVER_TIMEOUT"
DRIVER_UNPARSABLE_OUTPUT = "DRIVER_UNPARSABLE_OUTPUT"
DRIVER_LOG_IO = "DRIVER_LOG_IO"
DRIVER_CONFIGURATION_ERROR = "DRIVER_CONFIGURATION_ERROR"
DRIVER_EXECUTION_ERROR = "DRIVER_EXECUTION_ERROR"


_CODES_BY_EXCEPTION = {
    "InvalidFormatDefinition": FORMAT_INVALID_DEFINITION,
    "FormatCycle": FORMAT_CYCLE,
    "InvalidParameterDefinition": TOOLBOX_INVALID_DEFINITION,
    "InvalidModuleDefinition": TOOLBOX_INVALID_DEFINITION,
    "InvalidToolboxDefinition": TOOLBOX_INVALID_DEFINITION,
    "InvalidPipelineDefinition": GRAPH_INVALID_DEFINITION,
    "InvalidConnectionDefinition": GRAPH_INVALID_DEFINITION,
    "IncompatibleFormat": GRAPH_INCOMPATIBLE_FORMAT,
    "PortOccupied": GRAPH_PORT_OCCUPIED,
    "UnknownBlock": GRAPH_INVALID_DEFINITION,
    "InvalidPort": GRAPH_INVALID_DEFINITION,
    "InvalidTable": TABLE_INVALID,
    "MissingTableData": TABLE_MISSING_DATA,
    "MissingRequiredInput": GENERATION_MISSING_REQUIRED_INPUT,
    "UnresolvedPlaceholder": GENERATION_UNRESOLVED_PLACEHOLDER,
    "EngineConfigurationError": DRIVER_CONFIGURATION_ERROR,
}


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def driver_spawn_failed(*, command: str, phase: str, reason: str) -> ErrorPayload:
    return ErrorPayload(
        type=DRIVER_SPAWN_FAILED,
        message="Não foi possível iniciar o processo de build",
        details={"command": command, "phase": phase, "reason": reason},
        hint="Verifique se o executável do make (ou o wrapper de cluster) está instalado e no PATH.",
    )


def driver_timeout(*, command: str, phase: str, timeout_seconds: float) -> ErrorPayload:
    return ErrorPayload(
        type=DRIVER_TIMEOUT,
        message="Processo de build excedeu o tempo limite",
        details={"command": command, "phase": phase, "timeout_seconds": timeout_seconds},
        hint="Aumente o timeout configurado ou investigue o comando travado.",
    )


def driver_unparsable_output(*, command: str, phase: str, output: str) -> ErrorPayload:
    return ErrorPayload(
        type=DRIVER_UNPARSABLE_OUTPUT,
        message="Saída do processo de build não pôde ser interpretada",
        details={"command": command, "phase": phase, "output": output[-200:]},
    )


def driver_log_io(*, path: str, phase: str, reason: str) -> ErrorPayload:
    return ErrorPayload(
        type=DRIVER_LOG_IO,
        message="Não foi possível abrir o arquivo de log da análise",
        details={"path": path, "phase": phase, "reason": reason},
        hint="Verifique permissões e espaço em disco na raiz da análise.",
    )


def exception_to_payload(exc: BaseException) -> ErrorPayload:
    """Converte exceções em ErrorPayload (serializável, acionável).

    Regras:
    - PipegenException: já vem com message/details/hint/decision_required.
    - Outras exceções: encapsular como DRIVER_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, PipegenException):
        name = exc.__class__.__name__
        return ErrorPayload(
            type=_CODES_BY_EXCEPTION.get(name, name),
            message=str(exc) or "Erro do Pipegen",
            details=dict(getattr(exc, "details", {}) or {}),
            hint=getattr(exc, "hint", None),
            decision_required=bool(getattr(exc, "decision_required", False)),
        )

    return ErrorPayload(
        type=DRIVER_EXECUTION_ERROR,
        message=str(exc) or "Erro inesperado durante execução",
        details={"exception_class": exc.__class__.__name__},
        hint="Verifique os logs da análise (STDERR) e a configuração de execução",
    )
