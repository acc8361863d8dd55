"""
Módulo das Turmas

Matrículas de alunos e atribuição de professores.
"""
