# src/pipegen/__init__.py
"""
Pipegen — compilador de pipelines tipados para build scripts por linha de dados.

Este pacote raiz define o namespace público do Pipegen, uma ferramenta que
transforma um grafo tipado de Sources, Modules e Sinks, aplicado a um
dataset tabular, em um Makefile determinístico que materializa, para cada
linha, a cadeia de comandos necessária para produzir cada saída.

Princípios centrais:
    - O pipeline é um grafo explícito de blocos tipados por formato
    - A geração do script é pura e determinística
    - A execução é delegada a uma ferramenta de build externa (make)
    - Falhas parciais são isoladas por regra e reconstruídas como árvore

Arquitetura em alto nível:
    - core.toolbox      → formatos, parâmetros e definições de módulos
    - core.pipeline     → grafo de blocos, portas e conexões
    - core.table        → dataset tabular por linha (`id` obrigatório)
    - core.compiler     → gerador do Makefile por linha
    - core.engine       → driver de execução, progresso e descritor de análise
    - core.diagnostics  → reconstrução da árvore de falhas
    - core.config       → carregamento, merge e hashing de configuração
    - core.traceability → Manifest e Event Log da análise

Limites explícitos:
    - Não contém editor visual nem canvas interativo
    - Não implementa uma linguagem de build genérica
    - Não gerencia scheduler de cluster (delegado a um wrapper externo)
"""
# src/pipegen/__init__.py
__version__ = "0.1.0"

__all__ = ["__version__"]
