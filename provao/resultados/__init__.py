"""
Módulo dos Resultados

Correção, rankings e estatísticas dos provões.
"""
