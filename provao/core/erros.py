"""
Hierarquia de Erros do Domínio.

Todos são condições locais e recuperáveis: a camada chamadora (UI, API)
deve tratá-los exibindo a mensagem ao usuário.
"""

from typing import Dict, List, Optional


class ProvaoError(Exception):
    """Erro base da aplicação."""

    def __init__(self, mensagem: str, detalhes: Optional[dict] = None):
        super().__init__(mensagem)
        self.mensagem = mensagem
        self.detalhes = detalhes or {}


class ValidationError(ProvaoError):
    """Entrada ausente ou malformada. 'erros' mapeia campo -> mensagens."""

    def __init__(self, mensagem: str, erros: Optional[Dict[str, List[str]]] = None):
        super().__init__(mensagem, detalhes=erros)
        self.erros = erros or {}


class ReferentialError(ProvaoError):
    """Chave estrangeira que não aponta para um registro existente."""


class DuplicateError(ValidationError):
    """Violação de unicidade (nome de escola, matrícula, vínculo repetido...)."""


class DuplicateEnrollment(DuplicateError):
    pass


class DuplicateAssignment(DuplicateError):
    pass


class NotFound(ProvaoError):
    """Identificador que não corresponde a nenhum registro."""

    def __init__(self, tipo: str, identificador):
        super().__init__(f"{tipo} não encontrado(a): {identificador}", {'tipo': tipo, 'id': identificador})
        self.tipo = tipo
        self.identificador = identificador
