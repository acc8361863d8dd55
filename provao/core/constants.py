"""
Constantes Globais do Sistema.
Fonte Única da Verdade (Single Source of Truth) para os conjuntos fixos de valores.
"""

DISCIPLINAS = ('Matemática', 'Português')

# Gabarito e resposta do aluno usam o mesmo conjunto de alternativas.
# A alternativa 'E' existe apenas em alguns provões.
ALTERNATIVAS = ('A', 'B', 'C', 'D', 'E')

LOCALIZACOES = ('Urbano', 'Rural')
