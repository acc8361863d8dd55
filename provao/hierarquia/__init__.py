"""
Módulo da Hierarquia Escola -> Série -> Turma (seletores em cascata).
"""
