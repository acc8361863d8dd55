"""
Camada de Serviço (Service Layer) do Cadastro

Entity Store genérico: cria, busca e lista as entidades básicas
(Escola, Série, Turma, Professor, Aluno), validando campos, chaves
estrangeiras e restrições de unicidade antes de gravar.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from provao.cadastro.forms import AlunoForm, EscolaForm, ProfessorForm, SerieForm, TurmaForm
from provao.core.database import buscar_ou_falhar, transacao
from provao.core.erros import DuplicateError, ReferentialError, ValidationError
from provao.core.logger import get_logger
from provao.core.models import Aluno, Escola, Professor, Provao, Questao, Serie, Turma
from provao.core.validacao import validar_campos

logger = get_logger(__name__)

# tipo -> modelo, formulário, chaves estrangeiras e grupos de colunas únicas
CADASTROS = {
    'escola': {
        'modelo': Escola,
        'form': EscolaForm,
        'pais': {},
        'unicos': [('nome',), ('codigo_inep',)],
    },
    'serie': {
        'modelo': Serie,
        'form': SerieForm,
        'pais': {'escola_id': (Escola, 'Escola')},
        'unicos': [('escola_id', 'nome')],
    },
    'turma': {
        'modelo': Turma,
        'form': TurmaForm,
        'pais': {'serie_id': (Serie, 'Série')},
        'unicos': [('serie_id', 'nome')],
    },
    'professor': {
        'modelo': Professor,
        'form': ProfessorForm,
        'pais': {},
        'unicos': [],
    },
    'aluno': {
        'modelo': Aluno,
        'form': AlunoForm,
        'pais': {},
        'unicos': [('matricula',)],
    },
}

# Tipos consultáveis por obter/listar e a ordenação padrão de cada um
CONSULTAVEIS = {
    'escola': (Escola, ('nome', 'id')),
    'serie': (Serie, ('nome', 'id')),
    'turma': (Turma, ('nome', 'id')),
    'professor': (Professor, ('nome', 'id')),
    'aluno': (Aluno, ('nome', 'id')),
    'provao': (Provao, ('nome', 'id')),
    'questao': (Questao, ('ordem', 'id')),
}


def _tipo_invalido(tipo: str, aceitos) -> ValidationError:
    return ValidationError(
        f"Tipo de entidade inválido: '{tipo}'.",
        {'tipo': [f"Use um de: {', '.join(aceitos)}"]},
    )


def criar(sessao: Session, tipo: str, campos: Dict[str, Any]):
    """
    Cria uma entidade do cadastro e faz o commit.

    Raises:
        ValidationError: tipo desconhecido, campos ausentes ou inválidos.
        ReferentialError: a chave estrangeira não aponta para um registro.
        DuplicateError: viola uma restrição de unicidade.
    """
    with transacao(sessao):
        entidade = adicionar(sessao, tipo, campos)

    logger.info(f"{tipo.capitalize()} criado(a): id={entidade.id}")
    return entidade


def adicionar(sessao: Session, tipo: str, campos: Dict[str, Any]):
    """
    Valida e insere a entidade sem commit, para compor escritas maiores
    dentro de uma transação do chamador.
    """
    definicao = CADASTROS.get(tipo)
    if definicao is None:
        raise _tipo_invalido(tipo, CADASTROS)

    modelo = definicao['modelo']
    dados = validar_campos(definicao['form'], campos)
    # Campos opcionais vazios viram NULL (não colidem na restrição única)
    dados = {coluna: (valor if valor != '' else None) for coluna, valor in dados.items()}

    for coluna, (modelo_pai, nome_pai) in definicao['pais'].items():
        if sessao.get(modelo_pai, dados[coluna]) is None:
            logger.warning(f"Cadastro de {tipo} recusado: {nome_pai} {dados[coluna]} inexistente.")
            raise ReferentialError(f"{nome_pai} não encontrada: {dados[coluna]}", {'campo': coluna})

    for colunas in definicao['unicos']:
        filtro = {coluna: dados[coluna] for coluna in colunas}
        if any(valor is None for valor in filtro.values()):
            continue
        if sessao.query(modelo).filter_by(**filtro).first() is not None:
            logger.warning(f"Cadastro de {tipo} recusado: duplicado em {filtro}.")
            raise DuplicateError(
                f"Já existe {tipo} com {', '.join(colunas)} informado(s).",
                {colunas[-1]: ["Valor já cadastrado."]},
            )

    entidade = modelo(**dados)
    sessao.add(entidade)
    try:
        sessao.flush()
    except IntegrityError as e:
        # Corrida com outra gravação entre a checagem e o INSERT
        raise DuplicateError(f"Já existe {tipo} com os mesmos dados.") from e
    return entidade


def obter(sessao: Session, tipo: str, identificador: int):
    """Busca pela chave primária. Levanta NotFound se não existir."""
    if tipo not in CONSULTAVEIS:
        raise _tipo_invalido(tipo, CONSULTAVEIS)
    modelo, _ordem = CONSULTAVEIS[tipo]
    return buscar_ou_falhar(sessao, modelo, identificador, tipo)


def listar(sessao: Session, tipo: str, filtro: Optional[Dict[str, Any]] = None) -> List:
    """
    Lista entidades de um tipo, com filtro de igualdade opcional
    (ex.: {'escola_id': 3}). Ordenação estável: nome, depois id.
    """
    if tipo not in CONSULTAVEIS:
        raise _tipo_invalido(tipo, CONSULTAVEIS)
    modelo, ordem = CONSULTAVEIS[tipo]

    filtro = filtro or {}
    colunas = modelo.__table__.columns
    invalidas = sorted(coluna for coluna in filtro if coluna not in colunas)
    if invalidas:
        raise ValidationError(
            f"Filtro inválido para {tipo}: {', '.join(invalidas)}",
            {coluna: ["Coluna inexistente."] for coluna in invalidas},
        )

    consulta = sessao.query(modelo).filter_by(**filtro)
    return consulta.order_by(*(getattr(modelo, coluna) for coluna in ordem)).all()
