# src/pipegen/core/__init__.py
"""
Core do Pipegen.

Este pacote reúne a implementação canônica do compilador de pipelines e do
driver de execução, independente de qualquer interface gráfica.

O core é projetado para ser:
    - determinístico (mesma entrada → mesmo script, byte a byte)
    - testável de forma isolada
    - livre de dependências de UI

Subpacotes:
    - toolbox      → sistema de tipos (formatos) e catálogo de módulos
    - pipeline     → modelo de grafo (blocos, portas, conexões)
    - table        → dataset tabular
    - compiler     → geração do build script
    - engine       → execução, progresso e ciclo de vida da análise
    - diagnostics  → árvore de falhas
    - config       → configuração declarativa
    - traceability → Manifest da análise

Limites explícitos:
    - Não desenha o pipeline
    - Não lê eventos de mouse ou teclado
    - Não executa comandos de módulos diretamente (apenas via make)
"""
