"""
Camada de Serviço dos Provões

Autoria de provões: vínculo com turmas (N:N), questões ordenadas
marcadas por disciplina e habilidade, e o gabarito de cada questão.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager, joinedload

from provao.core.database import buscar_ou_falhar, exigir_referencia, transacao, upsert
from provao.core.erros import DuplicateError, NotFound, ReferentialError, ValidationError
from provao.core.logger import get_logger
from provao.core.models import Escola, Gabarito, Provao, ProvaoTurma, Questao, Serie, Turma
from provao.core.validacao import validar_campos
from provao.provoes.forms import GabaritoForm, ProvaoForm, QuestaoForm

logger = get_logger(__name__)


def _converter_data(valor) -> Optional[date]:
    if valor is None or valor == '' or isinstance(valor, date):
        return valor or None
    try:
        return date.fromisoformat(str(valor))
    except ValueError as e:
        raise ValidationError("Data inválida.", {'data_aplicacao': ["Use o formato AAAA-MM-DD."]}) from e


# === PROVÕES ===

def criar_provao(
    sessao: Session,
    nome: str,
    turma_ids: Iterable[int],
    descricao: Optional[str] = None,
    data_aplicacao=None,
) -> Provao:
    """
    Cria o provão e seus vínculos com turmas numa única transação.

    Raises:
        ValidationError: nome vazio ou nenhuma turma informada.
        ReferentialError: alguma turma não existe (nada é gravado).
    """
    dados = validar_campos(ProvaoForm, {
        'nome': nome,
        'descricao': descricao,
        'data_aplicacao': _converter_data(data_aplicacao),
    })
    dados['descricao'] = dados['descricao'] or None

    turma_ids = list(dict.fromkeys(turma_ids or []))
    if not turma_ids:
        raise ValidationError(
            "O provão precisa de pelo menos uma turma.",
            {'turma_ids': ["Selecione ao menos uma turma."]},
        )

    inexistentes = [turma_id for turma_id in turma_ids if sessao.get(Turma, turma_id) is None]
    if inexistentes:
        logger.warning(f"Provão '{dados['nome']}' recusado: turmas inexistentes {inexistentes}")
        raise ReferentialError(
            f"Turma(s) não encontrada(s): {', '.join(map(str, inexistentes))}",
            {'turma_ids': inexistentes},
        )

    provao = Provao(**dados)
    with transacao(sessao):
        sessao.add(provao)
        sessao.flush()
        for turma_id in turma_ids:
            sessao.add(ProvaoTurma(provao_id=provao.id, turma_id=turma_id))

    logger.info(f"Provão criado: id={provao.id} turmas={turma_ids}")
    return provao


def atualizar_provao(sessao: Session, provao_id: int, **campos) -> Provao:
    """Atualiza nome, descrição e/ou data de aplicação."""
    provao = buscar_ou_falhar(sessao, Provao, provao_id, 'provao')

    atuais = {
        'nome': provao.nome,
        'descricao': provao.descricao,
        'data_aplicacao': provao.data_aplicacao,
    }
    if 'data_aplicacao' in campos:
        campos['data_aplicacao'] = _converter_data(campos['data_aplicacao'])
    atuais.update(campos)
    dados = validar_campos(ProvaoForm, atuais)

    with transacao(sessao):
        provao.nome = dados['nome']
        provao.descricao = dados['descricao'] or None
        provao.data_aplicacao = dados['data_aplicacao']

    logger.info(f"Provão {provao_id} atualizado: {sorted(campos)}")
    return provao


def excluir_provao(sessao: Session, provao_id: int) -> None:
    """Remove o provão com questões, gabaritos, respostas e vínculos."""
    provao = buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    with transacao(sessao):
        sessao.delete(provao)
    logger.info(f"Provão {provao_id} excluído")


def vincular_turma(sessao: Session, provao_id: int, turma_id: int) -> ProvaoTurma:
    exigir_referencia(sessao, Provao, provao_id, 'provao', 'provao_id')
    exigir_referencia(sessao, Turma, turma_id, 'turma', 'turma_id')

    if sessao.query(ProvaoTurma).filter_by(provao_id=provao_id, turma_id=turma_id).first() is not None:
        logger.warning(f"Vínculo duplicado recusado: provao={provao_id} turma={turma_id}")
        raise DuplicateError(f"Turma {turma_id} já está vinculada ao provão {provao_id}.")

    vinculo = ProvaoTurma(provao_id=provao_id, turma_id=turma_id)
    with transacao(sessao):
        sessao.add(vinculo)
        try:
            sessao.flush()
        except IntegrityError as e:
            raise DuplicateError(f"Turma {turma_id} já está vinculada ao provão {provao_id}.") from e

    logger.info(f"Turma {turma_id} vinculada ao provão {provao_id}")
    return vinculo


def desvincular_turma(sessao: Session, provao_id: int, turma_id: int) -> None:
    """Remove o vínculo. O último vínculo de um provão não pode ser removido."""
    vinculo = sessao.query(ProvaoTurma).filter_by(provao_id=provao_id, turma_id=turma_id).first()
    if vinculo is None:
        logger.warning(f"Vínculo inexistente: provao={provao_id} turma={turma_id}")
        raise NotFound('vínculo provão-turma', f"provao={provao_id} turma={turma_id}")

    total = sessao.query(func.count(ProvaoTurma.id)).filter(ProvaoTurma.provao_id == provao_id).scalar()
    if total <= 1:
        logger.warning(f"Recusada a remoção da última turma do provão {provao_id}")
        raise ValidationError(
            "O provão precisa de pelo menos uma turma.",
            {'turma_id': ["Não é possível remover a última turma do provão."]},
        )

    with transacao(sessao):
        sessao.delete(vinculo)
    logger.info(f"Turma {turma_id} desvinculada do provão {provao_id}")


def turmas_do_provao(sessao: Session, provao_id: int) -> List[Turma]:
    """Turmas vinculadas, com série e escola carregadas."""
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    return (
        sessao.query(Turma)
        .join(ProvaoTurma, ProvaoTurma.turma_id == Turma.id)
        .join(Turma.serie)
        .join(Serie.escola)
        .options(contains_eager(Turma.serie).contains_eager(Serie.escola))
        .filter(ProvaoTurma.provao_id == provao_id)
        .order_by(Escola.nome, Serie.nome, Turma.nome, Turma.id)
        .all()
    )


def provoes_da_turma(sessao: Session, turma_id: int) -> List[Provao]:
    buscar_ou_falhar(sessao, Turma, turma_id, 'turma')
    return (
        sessao.query(Provao)
        .join(ProvaoTurma, ProvaoTurma.provao_id == Provao.id)
        .filter(ProvaoTurma.turma_id == turma_id)
        .order_by(Provao.nome, Provao.id)
        .all()
    )


# === QUESTÕES ===

def questoes_do_provao(sessao: Session, provao_id: int) -> List[Questao]:
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    return (
        sessao.query(Questao)
        .options(joinedload(Questao.gabarito))
        .filter(Questao.provao_id == provao_id)
        .order_by(Questao.ordem, Questao.id)
        .all()
    )


def adicionar_questao(sessao: Session, provao_id: int, disciplina: str, habilidade_codigo: str) -> Questao:
    """Acrescenta a questão no fim do provão (maior ordem + 1, ou 1)."""
    exigir_referencia(sessao, Provao, provao_id, 'provao', 'provao_id')
    dados = validar_campos(QuestaoForm, {'disciplina': disciplina, 'habilidade_codigo': habilidade_codigo})

    with transacao(sessao):
        ultima = sessao.query(func.max(Questao.ordem)).filter(Questao.provao_id == provao_id).scalar()
        questao = Questao(provao_id=provao_id, ordem=(ultima or 0) + 1, **dados)
        sessao.add(questao)

    logger.info(f"Questão {questao.id} adicionada ao provão {provao_id} (ordem {questao.ordem})")
    return questao


def atualizar_questao(
    sessao: Session,
    questao_id: int,
    disciplina: Optional[str] = None,
    habilidade_codigo: Optional[str] = None,
) -> Questao:
    questao = buscar_ou_falhar(sessao, Questao, questao_id, 'questao')
    dados = validar_campos(QuestaoForm, {
        'disciplina': disciplina if disciplina is not None else questao.disciplina,
        'habilidade_codigo': habilidade_codigo if habilidade_codigo is not None else questao.habilidade_codigo,
    })

    with transacao(sessao):
        questao.disciplina = dados['disciplina']
        questao.habilidade_codigo = dados['habilidade_codigo']

    logger.info(f"Questão {questao_id} atualizada")
    return questao


def reordenar_questoes(sessao: Session, provao_id: int, questao_ids: List[int]) -> List[Questao]:
    """
    Redefine a ordem das questões: 'questao_ids' deve conter exatamente
    as questões do provão, na nova sequência (posições 1..n).
    """
    questoes = {questao.id: questao for questao in questoes_do_provao(sessao, provao_id)}
    questao_ids = list(questao_ids)

    if len(questao_ids) != len(set(questao_ids)) or set(questao_ids) != set(questoes):
        raise ValidationError(
            "A nova ordem deve conter cada questão do provão exatamente uma vez.",
            {'questao_ids': ["Lista incompleta, repetida ou com questões de outro provão."]},
        )

    with transacao(sessao):
        for posicao, questao_id in enumerate(questao_ids, start=1):
            questoes[questao_id].ordem = posicao

    logger.info(f"Questões do provão {provao_id} reordenadas")
    return [questoes[questao_id] for questao_id in questao_ids]


def excluir_questao(sessao: Session, questao_id: int) -> None:
    """Exclui a questão junto com o gabarito e todas as respostas a ela."""
    questao = buscar_ou_falhar(sessao, Questao, questao_id, 'questao')
    with transacao(sessao):
        sessao.delete(questao)
    logger.info(f"Questão {questao_id} excluída (gabarito e respostas removidos)")


# === GABARITOS ===

def definir_gabarito(sessao: Session, questao_id: int, resposta_correta: str) -> Gabarito:
    """
    Grava o gabarito da questão. Chamadas repetidas substituem o valor
    anterior (edição de gabarito), nunca acumulam.
    """
    dados = validar_campos(GabaritoForm, {'resposta_correta': resposta_correta})
    questao = exigir_referencia(sessao, Questao, questao_id, 'questao', 'questao_id')

    with transacao(sessao):
        gabarito = upsert(
            sessao,
            Gabarito,
            {'questao_id': questao_id, 'resposta_correta': dados['resposta_correta'], 'atualizado_em': func.now()},
            chaves=('questao_id',),
        )
    # o relacionamento já carregado pode estar desatualizado após o upsert
    sessao.expire(questao, ['gabarito'])

    logger.info(f"Gabarito da questão {questao_id}: {gabarito.resposta_correta}")
    return gabarito


def obter_gabarito(sessao: Session, questao_id: int) -> Optional[Gabarito]:
    buscar_ou_falhar(sessao, Questao, questao_id, 'questao')
    return sessao.query(Gabarito).filter_by(questao_id=questao_id).first()


def gabaritos_do_provao(sessao: Session, provao_id: int) -> Dict[int, str]:
    """{questao_id: alternativa correta} das questões que já têm gabarito."""
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    linhas = (
        sessao.query(Gabarito.questao_id, Gabarito.resposta_correta)
        .join(Questao, Questao.id == Gabarito.questao_id)
        .filter(Questao.provao_id == provao_id)
        .all()
    )
    return {questao_id: resposta for questao_id, resposta in linhas}
