"""
Módulo de Cadastro

Criação, busca e listagem das entidades básicas: Escola, Série, Turma,
Professor e Aluno.
"""
