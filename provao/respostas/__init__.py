"""
Módulo das Respostas (lançamento das folhas de resposta dos alunos).
"""
