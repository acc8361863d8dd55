"""
Módulo dos Provões

Provões, turmas atendidas, questões e gabaritos.
"""
