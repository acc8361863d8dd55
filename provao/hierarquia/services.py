"""
Camada de Serviço da Hierarquia Escola -> Série -> Turma

Consultas puras usadas pelos seletores em cascata da interface:
podem ser chamadas a cada troca de seleção sem efeito colateral.
"""

from typing import List, Optional

from sqlalchemy.orm import Session, contains_eager

from provao.core.database import buscar_ou_falhar
from provao.core.erros import ValidationError
from provao.core.models import Escola, Serie, Turma

# tipo do pai -> (modelo do pai, modelo do filho, coluna FK no filho)
FILHOS = {
    'escola': (Escola, Serie, 'escola_id'),
    'serie': (Serie, Turma, 'serie_id'),
}


def filhos_de(sessao: Session, tipo_pai: str, id_pai: int) -> List:
    """
    Retorna os filhos diretos de um nó, ordenados por nome.
    Lista vazia se o pai existe mas não tem filhos.

    Raises:
        NotFound: o pai não existe.
        ValidationError: o tipo não possui filhos na hierarquia.
    """
    if tipo_pai not in FILHOS:
        raise ValidationError(
            f"'{tipo_pai}' não possui filhos na hierarquia.",
            {'tipo_pai': [f"Use um de: {', '.join(FILHOS)}"]},
        )
    modelo_pai, modelo_filho, coluna = FILHOS[tipo_pai]
    buscar_ou_falhar(sessao, modelo_pai, id_pai, tipo_pai)

    return (
        sessao.query(modelo_filho)
        .filter(getattr(modelo_filho, coluna) == id_pai)
        .order_by(modelo_filho.nome, modelo_filho.id)
        .all()
    )


def ancestrais_de(sessao: Session, tipo: str, identificador: int) -> List:
    """Ancestrais a partir da raiz: turma -> [Escola, Série]."""
    if tipo == 'escola':
        buscar_ou_falhar(sessao, Escola, identificador, tipo)
        return []
    if tipo == 'serie':
        serie = buscar_ou_falhar(sessao, Serie, identificador, tipo)
        return [serie.escola]
    if tipo == 'turma':
        turma = buscar_ou_falhar(sessao, Turma, identificador, tipo)
        return [turma.serie.escola, turma.serie]
    raise ValidationError(f"Tipo fora da hierarquia: '{tipo}'.", {'tipo': ["Use escola, serie ou turma."]})


def turmas_completas(sessao: Session, escola_id: Optional[int] = None) -> List[Turma]:
    """
    Todas as turmas com série e escola já carregadas,
    ordenadas por escola, série e turma.
    """
    consulta = (
        sessao.query(Turma)
        .join(Turma.serie)
        .join(Serie.escola)
        .options(contains_eager(Turma.serie).contains_eager(Serie.escola))
    )
    if escola_id is not None:
        buscar_ou_falhar(sessao, Escola, escola_id, 'escola')
        consulta = consulta.filter(Serie.escola_id == escola_id)

    return consulta.order_by(Escola.nome, Serie.nome, Turma.nome, Turma.id).all()
