"""
Camada de Serviço das Respostas

Registra a alternativa marcada por cada aluno em cada questão.
Uma resposta por par (aluno, questão): regravar substitui a anterior.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from provao.core.database import buscar_ou_falhar, exigir_referencia, transacao, upsert
from provao.core.logger import get_logger
from provao.core.models import Aluno, Provao, Questao, Resposta
from provao.core.validacao import validar_campos
from provao.provoes.forms import RespostaForm

logger = get_logger(__name__)


def _gravar(sessao: Session, aluno_id: int, questao_id: int, resposta: str) -> Resposta:
    dados = validar_campos(RespostaForm, {'resposta': resposta})
    exigir_referencia(sessao, Aluno, aluno_id, 'aluno', 'aluno_id')
    exigir_referencia(sessao, Questao, questao_id, 'questao', 'questao_id')

    return upsert(
        sessao,
        Resposta,
        {
            'aluno_id': aluno_id,
            'questao_id': questao_id,
            'resposta': dados['resposta'],
            'atualizado_em': func.now(),
        },
        chaves=('aluno_id', 'questao_id'),
    )


def registrar_resposta(sessao: Session, aluno_id: int, questao_id: int, resposta: str) -> Resposta:
    """
    Grava (ou substitui) a resposta do aluno à questão.

    Questões sem gabarito também aceitam resposta; ela só passa a contar
    na correção quando o gabarito for definido.

    Raises:
        ValidationError: alternativa fora de A-E.
        ReferentialError: aluno ou questão inexistente.
    """
    with transacao(sessao):
        registro = _gravar(sessao, aluno_id, questao_id, resposta)

    logger.info(f"Resposta registrada: aluno={aluno_id} questao={questao_id} -> {registro.resposta}")
    return registro


def registrar_respostas(sessao: Session, aluno_id: int, respostas: Mapping[int, str]) -> List[Resposta]:
    """
    Grava a folha de respostas de um aluno ({questao_id: alternativa})
    numa única transação: qualquer erro descarta o lote inteiro.
    """
    with transacao(sessao):
        registros = [
            _gravar(sessao, aluno_id, questao_id, resposta)
            for questao_id, resposta in respostas.items()
        ]

    logger.info(f"{len(registros)} resposta(s) registrada(s) para o aluno {aluno_id}")
    return registros


def obter_resposta(sessao: Session, aluno_id: int, questao_id: int) -> Optional[Resposta]:
    return sessao.query(Resposta).filter_by(aluno_id=aluno_id, questao_id=questao_id).first()


def respostas_do_aluno(sessao: Session, aluno_id: int, provao_id: int) -> Dict[int, str]:
    """{questao_id: alternativa} do aluno nas questões do provão."""
    buscar_ou_falhar(sessao, Aluno, aluno_id, 'aluno')
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    linhas = (
        sessao.query(Resposta.questao_id, Resposta.resposta)
        .join(Questao, Questao.id == Resposta.questao_id)
        .filter(Resposta.aluno_id == aluno_id, Questao.provao_id == provao_id)
        .all()
    )
    return {questao_id: resposta for questao_id, resposta in linhas}


def respostas_por_aluno(
    sessao: Session, questao_ids: Iterable[int], aluno_ids: Iterable[int]
) -> Dict[Tuple[int, int], str]:
    """
    Carrega de uma vez as respostas de vários alunos a várias questões.
    Chave: (aluno_id, questao_id).
    """
    questao_ids, aluno_ids = list(questao_ids), list(aluno_ids)
    if not questao_ids or not aluno_ids:
        return {}
    linhas = (
        sessao.query(Resposta.aluno_id, Resposta.questao_id, Resposta.resposta)
        .filter(Resposta.questao_id.in_(questao_ids), Resposta.aluno_id.in_(aluno_ids))
        .all()
    )
    return {(aluno_id, questao_id): resposta for aluno_id, questao_id, resposta in linhas}
