# src/pipegen/core/toolbox/template.py
"""
Template de comando de módulo.

Um template é o texto do comando com placeholders `{nome}` para cada
porta declarada do módulo, por exemplo:

    convert --in {in} --out {out} {options}

O preenchimento é feito em passada única sobre um mapa nome → valor.
Placeholders sem valor correspondente são erro explícito
(`UnresolvedPlaceholder`), nunca permanecem silenciosamente no texto.

Chaves precedidas de `$` (ex.: `$${HOME}` em receitas de make) não são
placeholders.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Mapping

from pipegen.core.exceptions import UnresolvedPlaceholder


_PLACEHOLDER = re.compile(r"(?<!\$)\{([A-Za-z_][A-Za-z0-9_.\-]*)\}")


@dataclass(frozen=True)
class CommandTemplate:
    text: str

    def placeholders(self) -> List[str]:
        """Nomes dos placeholders na ordem da primeira ocorrência."""
        seen: List[str] = []
        for m in _PLACEHOLDER.finditer(self.text):
            if m.group(1) not in seen:
                seen.append(m.group(1))
        return seen

    def fill(self, values: Mapping[str, str]) -> str:
        missing = [name for name in self.placeholders() if name not in values]
        if missing:
            raise UnresolvedPlaceholder(
                message=f"unresolved placeholders in command template: {', '.join(missing)}",
                details={"template": self.text, "missing": missing},
            )
        return _PLACEHOLDER.sub(lambda m: values[m.group(1)], self.text)
