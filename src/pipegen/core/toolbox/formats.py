# src/pipegen/core/toolbox/formats.py
"""
Sistema de tipos do Pipegen: formatos de arquivo e subtipagem.

Um formato é identificado por nome, possui um sufixo de arquivo e, no
máximo, um formato pai. A relação "é entrada válida para" é definida
pela cadeia de ancestrais:

    A é entrada válida para B  ⇔  A == B  ou  B ∈ ancestrais(A)

Um pseudo-formato reservado, `arg`, representa dados textuais inline
(não um arquivo). Ele é sempre adicionado ao registry e não pode ser
redefinido por catálogos.

Invariantes:
    - Nomes de formato são únicos no registry
    - Todo pai referenciado existe
    - A cadeia de herança é acíclica (verificada no carregamento)

Limites explícitos:
    - Não lê arquivos (ver `toolbox.loader`)
    - Não conhece portas, blocos ou pipelines
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pipegen.core.exceptions import FormatCycle, InvalidFormatDefinition


ARG_FORMAT_NAME = "arg"


@dataclass(frozen=True)
class Format:
    """Definição imutável de um formato de arquivo."""

    name: str
    suffix: str = ""
    parent: Optional[str] = None
    color: Optional[Tuple[int, int, int]] = None

    @property
    def is_arg(self) -> bool:
        return self.name == ARG_FORMAT_NAME

    def to_catalog_entry(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"suffix": self.suffix}
        if self.color is not None:
            body["color"] = list(self.color)
        if self.parent:
            body["extends"] = self.parent
        return {self.name: body}


ARG_FORMAT = Format(name=ARG_FORMAT_NAME, suffix="", parent=None, color=(80, 80, 80))

FormatLike = Union[Format, str]


class FormatRegistry:
    """
    Registry imutável de formatos com herança simples resolvida.

    Construído exclusivamente via `FormatRegistry.load`, que garante a
    resolução de todos os pais e a ausência de ciclos. Após o load, a
    consulta `is_valid_input_to` é segura para qualquer par de formatos
    registrados.
    """

    def __init__(self, formats: Dict[str, Format]):
        self._formats: Dict[str, Format] = dict(formats)

    @classmethod
    def load(cls, defs: Iterable[Format]) -> "FormatRegistry":
        """
        Resolve um conjunto de definições em um registry validado.

        Todas as definições são lidas antes da resolução de pais, de modo
        que a ordem de declaração é irrelevante.

        Raises:
            InvalidFormatDefinition: nome vazio/duplicado, redefinição de
                `arg` ou pai inexistente.
            FormatCycle: se a cadeia de herança contiver um ciclo.
        """
        formats: Dict[str, Format] = {}
        for d in defs:
            if not isinstance(d.name, str) or not d.name.strip():
                raise InvalidFormatDefinition(
                    message="format name must be a non-empty string",
                    details={"name": d.name},
                )
            if d.name == ARG_FORMAT_NAME:
                raise InvalidFormatDefinition(
                    message=f"format name '{ARG_FORMAT_NAME}' is reserved",
                    details={"name": d.name},
                    hint="Remove the 'arg' entry from the format catalog; it is built in.",
                )
            if d.name in formats:
                raise InvalidFormatDefinition(
                    message=f"duplicate format name: {d.name}",
                    details={"name": d.name},
                )
            formats[d.name] = d

        formats[ARG_FORMAT_NAME] = ARG_FORMAT

        for f in formats.values():
            if f.parent and f.parent not in formats:
                raise InvalidFormatDefinition(
                    message=f"format '{f.name}' extends unknown format '{f.parent}'",
                    details={"name": f.name, "parent": f.parent},
                )

        for name in formats:
            visited: List[str] = [name]
            parent = formats[name].parent
            while parent:
                if parent in visited:
                    raise FormatCycle(
                        message=f"format inheritance cycle through '{parent}'",
                        details={"chain": visited + [parent]},
                    )
                visited.append(parent)
                parent = formats[parent].parent

        return cls(formats)

    # -----------------------------
    # Consulta
    # -----------------------------
    def __contains__(self, name: object) -> bool:
        return name in self._formats

    def __len__(self) -> int:
        return len(self._formats)

    def get(self, name: str) -> Format:
        if name not in self._formats:
            raise KeyError(name)
        return self._formats[name]

    def names(self) -> List[str]:
        return sorted(self._formats)

    def catalog(self) -> List[Format]:
        """Formatos declarados (sem `arg`), em ordem de nome."""
        return [self._formats[n] for n in self.names() if n != ARG_FORMAT_NAME]

    def _resolve(self, f: FormatLike) -> Format:
        name = f if isinstance(f, str) else f.name
        return self.get(name)

    def ancestors(self, f: FormatLike) -> List[str]:
        """Cadeia de ancestrais, do pai imediato até a raiz."""
        chain: List[str] = []
        parent = self._resolve(f).parent
        while parent and parent not in chain:
            chain.append(parent)
            parent = self._formats[parent].parent
        return chain

    def is_valid_input_to(self, source: FormatLike, target: FormatLike) -> bool:
        """Verdadeiro sse `source == target` ou `target` é ancestral de `source`."""
        src = self._resolve(source)
        tgt = self._resolve(target)
        if src.name == tgt.name:
            return True
        return tgt.name in self.ancestors(src)


def formats_from_catalog(data: Any) -> List[Format]:
    """
    Converte o catálogo `{"formatDefs": [{"<nome>": {...}}]}` em `Format`s.

    Cada entrada é um objeto de chave única (o nome do formato) cujo
    corpo declara `suffix` (obrigatório), `color` (opcional, [r, g, b])
    e `extends` (opcional, nome do pai).

    Raises:
        InvalidFormatDefinition: se a estrutura não respeitar o formato acima.
    """
    if not isinstance(data, dict) or not isinstance(data.get("formatDefs"), list):
        raise InvalidFormatDefinition(
            message="format catalog must be a mapping with a 'formatDefs' list",
            details={},
        )

    out: List[Format] = []
    for i, entry in enumerate(data["formatDefs"]):
        if not isinstance(entry, dict) or len(entry) != 1:
            raise InvalidFormatDefinition(
                message=f"formatDefs[{i}] must be a single-key mapping",
                details={"index": i},
            )
        (name, body), = entry.items()
        if not isinstance(body, dict):
            raise InvalidFormatDefinition(
                message=f"formatDefs[{i}].{name} must be a mapping",
                details={"index": i, "name": name},
            )
        suffix = body.get("suffix")
        if not isinstance(suffix, str):
            raise InvalidFormatDefinition(
                message=f"format '{name}' must declare a string suffix",
                details={"name": name},
            )
        color = body.get("color")
        if color is not None:
            if (
                not isinstance(color, list)
                or len(color) != 3
                or not all(isinstance(c, int) and not isinstance(c, bool) for c in color)
            ):
                raise InvalidFormatDefinition(
                    message=f"format '{name}' color must be [r, g, b]",
                    details={"name": name, "color": color},
                )
            color = (color[0], color[1], color[2])
        parent = body.get("extends") or None
        if parent is not None and not isinstance(parent, str):
            raise InvalidFormatDefinition(
                message=f"format '{name}' extends must be a format name",
                details={"name": name},
            )
        out.append(Format(name=name, suffix=suffix, parent=parent, color=color))
    return out
