"""
Camada de Serviço dos Resultados (Agregador de Notas)

Cruza Respostas com Gabaritos e produz os indicadores dos relatórios:
percentual de acerto por aluno, ranking da turma, dificuldade por questão
e estatísticas de turma e de provão.

Regras de correção:
- Só contam questões com gabarito ("gradáveis"); as demais ficam fora do
  numerador e do denominador.
- Questão gradável sem resposta do aluno conta como erro.
- Sem questões gradáveis o percentual é 0.

Tudo aqui é leitura pura: nenhuma função grava no banco, e a ausência de
dados devolve resultados vazios ou zerados, nunca exceção.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from provao.core.constants import ALTERNATIVAS
from provao.core.database import buscar_ou_falhar
from provao.core.logger import get_logger
from provao.core.models import Aluno, Gabarito, Matricula, Provao, ProvaoTurma, Questao, Resposta, Turma
from provao.provoes.services import turmas_do_provao
from provao.respostas.services import respostas_por_aluno
from provao.turmas.services import alunos_da_turma, turmas_do_aluno

logger = get_logger(__name__)


# === ESTRUTURAS DE RESULTADO ===

@dataclass
class DesempenhoDisciplina:
    disciplina: str
    corretas: int
    total: int
    percentual: float


@dataclass
class DesempenhoAluno:
    aluno_id: int
    provao_id: Optional[int]
    corretas: int
    total: int
    percentual: float
    por_disciplina: Dict[str, DesempenhoDisciplina] = field(default_factory=dict)


@dataclass
class PosicaoRanking:
    posicao: int
    aluno_id: int
    nome: str
    matricula: str
    desempenho: DesempenhoAluno
    turma_id: Optional[int] = None

    @property
    def percentual(self) -> float:
        return self.desempenho.percentual


@dataclass
class DificuldadeQuestao:
    questao_id: int
    ordem: int
    disciplina: str
    habilidade_codigo: str
    gradavel: bool
    acertos: int
    total_alunos: int
    percentual: float


@dataclass
class EstatisticasQuestao:
    questao_id: int
    resposta_correta: Optional[str]
    distribuicao: Dict[str, int]
    total_respostas: int
    corretas: int
    percentual_acerto: float


@dataclass
class EstatisticasTurma:
    turma_id: int
    provao_id: Optional[int]
    total_alunos: int
    participantes: int
    media: float
    por_disciplina: Dict[str, float] = field(default_factory=dict)
    por_provao: List["EstatisticasTurma"] = field(default_factory=list)


@dataclass
class EstatisticasAluno:
    aluno_id: int
    total_questoes: int
    questoes_corretas: int
    percentual: float
    por_disciplina: Dict[str, DesempenhoDisciplina] = field(default_factory=dict)
    por_provao: List[DesempenhoAluno] = field(default_factory=list)


@dataclass
class ResultadoProvao:
    provao_id: int
    turma_ids: List[int]
    ranking: List[PosicaoRanking]
    por_turma: Dict[int, EstatisticasTurma]
    por_disciplina: Dict[str, float]
    total_alunos: int
    participantes: int
    participacao: float


# === CÁLCULOS AUXILIARES ===

def _percentual(parte: int, total: int) -> float:
    return 100.0 * parte / total if total > 0 else 0.0


def _media(valores: List[float]) -> float:
    return sum(valores) / len(valores) if valores else 0.0


def _questoes(sessao: Session, *provao_ids: int):
    """Questões dos provões em ordem, com o gabarito (ou None) de cada uma."""
    if not provao_ids:
        return []
    return (
        sessao.query(
            Questao.id,
            Questao.provao_id,
            Questao.ordem,
            Questao.disciplina,
            Questao.habilidade_codigo,
            Gabarito.resposta_correta,
        )
        .outerjoin(Gabarito, Gabarito.questao_id == Questao.id)
        .filter(Questao.provao_id.in_(provao_ids))
        .order_by(Questao.provao_id, Questao.ordem, Questao.id)
        .all()
    )


def _vinculado(sessao: Session, provao_id: int, turma_id: int) -> bool:
    return sessao.query(ProvaoTurma.id).filter_by(provao_id=provao_id, turma_id=turma_id).first() is not None


def _alunos_atendidos(sessao: Session, provao_id: int):
    """Subconsulta: ids dos alunos matriculados em alguma turma vinculada ao provão."""
    return (
        sessao.query(Matricula.aluno_id)
        .join(ProvaoTurma, ProvaoTurma.turma_id == Matricula.turma_id)
        .filter(ProvaoTurma.provao_id == provao_id)
    )


def _provoes_vinculados(sessao: Session, turma_ids) -> List[Provao]:
    if not turma_ids:
        return []
    return (
        sessao.query(Provao)
        .join(ProvaoTurma, ProvaoTurma.provao_id == Provao.id)
        .filter(ProvaoTurma.turma_id.in_(list(turma_ids)))
        .distinct()
        .order_by(Provao.nome, Provao.id)
        .all()
    )


def _corrigir(aluno_id: int, provao_id: Optional[int], questoes, respostas) -> DesempenhoAluno:
    corretas, total = 0, 0
    parciais = {}  # disciplina -> [corretas, total]

    for questao in questoes:
        if questao.resposta_correta is None:
            continue
        parcial = parciais.setdefault(questao.disciplina, [0, 0])
        total += 1
        parcial[1] += 1
        if respostas.get((aluno_id, questao.id)) == questao.resposta_correta:
            corretas += 1
            parcial[0] += 1

    por_disciplina = {
        disciplina: DesempenhoDisciplina(disciplina, acertos, qtd, _percentual(acertos, qtd))
        for disciplina, (acertos, qtd) in parciais.items()
    }
    return DesempenhoAluno(aluno_id, provao_id, corretas, total, _percentual(corretas, total), por_disciplina)


def _participou(aluno_id: int, questoes, respostas) -> bool:
    """Respondeu ao menos uma questão do provão (gradável ou não)."""
    return any((aluno_id, questao.id) in respostas for questao in questoes)


def _ranquear(alunos: List[Aluno], provao_id: int, questoes, respostas, turma_de=None) -> List[PosicaoRanking]:
    desempenhos = [(aluno, _corrigir(aluno.id, provao_id, questoes, respostas)) for aluno in alunos]
    # sorted é estável: empates mantêm a ordem de entrada (nome, depois id)
    ordenados = sorted(desempenhos, key=lambda par: -par[1].percentual)
    return [
        PosicaoRanking(
            posicao=posicao,
            aluno_id=aluno.id,
            nome=aluno.nome,
            matricula=aluno.matricula,
            desempenho=desempenho,
            turma_id=(turma_de or {}).get(aluno.id),
        )
        for posicao, (aluno, desempenho) in enumerate(ordenados, start=1)
    ]


def _medias_por_disciplina(desempenhos: List[DesempenhoAluno], questoes) -> Dict[str, float]:
    disciplinas = []
    for questao in questoes:
        if questao.resposta_correta is not None and questao.disciplina not in disciplinas:
            disciplinas.append(questao.disciplina)
    return {
        disciplina: _media([d.por_disciplina[disciplina].percentual for d in desempenhos])
        for disciplina in disciplinas
    }


def _estatisticas(turma_id: int, provao_id: Optional[int], alunos: List[Aluno], questoes, respostas) -> EstatisticasTurma:
    participantes = [aluno for aluno in alunos if _participou(aluno.id, questoes, respostas)]
    desempenhos = [_corrigir(aluno.id, provao_id, questoes, respostas) for aluno in participantes]
    return EstatisticasTurma(
        turma_id=turma_id,
        provao_id=provao_id,
        total_alunos=len(alunos),
        participantes=len(participantes),
        media=_media([d.percentual for d in desempenhos]),
        por_disciplina=_medias_por_disciplina(desempenhos, questoes) if desempenhos else {},
    )


# === CONSULTAS ===

def pontuar_aluno(sessao: Session, aluno_id: int, provao_id: int) -> DesempenhoAluno:
    """
    Percentual de acerto do aluno no provão.

    Não exige matrícula numa turma vinculada: a nota individual vale para
    qualquer aluno que tenha respostas gravadas.

    Raises:
        NotFound: aluno ou provão inexistente.
    """
    buscar_ou_falhar(sessao, Aluno, aluno_id, 'aluno')
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')

    questoes = _questoes(sessao, provao_id)
    respostas = respostas_por_aluno(sessao, [questao.id for questao in questoes], [aluno_id])
    return _corrigir(aluno_id, provao_id, questoes, respostas)


def ranking_turma(sessao: Session, turma_id: int, provao_id: int) -> List[PosicaoRanking]:
    """
    Alunos matriculados na turma em ordem decrescente de percentual.
    Lista vazia se o provão não atende a turma ou a turma não tem alunos.
    """
    buscar_ou_falhar(sessao, Turma, turma_id, 'turma')
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')

    if not _vinculado(sessao, provao_id, turma_id):
        logger.debug(f"Provão {provao_id} não atende a turma {turma_id}: ranking vazio")
        return []

    alunos = alunos_da_turma(sessao, turma_id)
    if not alunos:
        return []

    questoes = _questoes(sessao, provao_id)
    respostas = respostas_por_aluno(sessao, [q.id for q in questoes], [a.id for a in alunos])
    return _ranquear(alunos, provao_id, questoes, respostas, {aluno.id: turma_id for aluno in alunos})


def dificuldade_questao(sessao: Session, questao_id: int, aluno_ids: Iterable[int]) -> DificuldadeQuestao:
    """
    Percentual dos alunos informados que acertaram a questão.
    Sem resposta conta como erro; conjunto vazio ou questão sem gabarito dá 0.
    """
    questao = buscar_ou_falhar(sessao, Questao, questao_id, 'questao')
    gabarito = sessao.query(Gabarito.resposta_correta).filter_by(questao_id=questao_id).scalar()
    aluno_ids = list(dict.fromkeys(aluno_ids))

    acertos = 0
    if gabarito is not None and aluno_ids:
        acertos = (
            sessao.query(Resposta.id)
            .filter(
                Resposta.questao_id == questao_id,
                Resposta.aluno_id.in_(aluno_ids),
                Resposta.resposta == gabarito,
            )
            .count()
        )

    return DificuldadeQuestao(
        questao_id=questao.id,
        ordem=questao.ordem,
        disciplina=questao.disciplina,
        habilidade_codigo=questao.habilidade_codigo,
        gradavel=gabarito is not None,
        acertos=acertos,
        total_alunos=len(aluno_ids),
        percentual=_percentual(acertos, len(aluno_ids)),
    )


def dificuldade_por_questao(sessao: Session, turma_id: int, provao_id: int) -> List[DificuldadeQuestao]:
    """Quadro de acerto por questão da turma, na ordem do provão."""
    buscar_ou_falhar(sessao, Turma, turma_id, 'turma')
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    if not _vinculado(sessao, provao_id, turma_id):
        return []

    aluno_ids = [aluno.id for aluno in alunos_da_turma(sessao, turma_id)]
    questoes = _questoes(sessao, provao_id)
    respostas = respostas_por_aluno(sessao, [q.id for q in questoes], aluno_ids)

    quadro = []
    for questao in questoes:
        gradavel = questao.resposta_correta is not None
        acertos = 0
        if gradavel:
            acertos = sum(1 for aluno_id in aluno_ids if respostas.get((aluno_id, questao.id)) == questao.resposta_correta)
        quadro.append(DificuldadeQuestao(
            questao_id=questao.id,
            ordem=questao.ordem,
            disciplina=questao.disciplina,
            habilidade_codigo=questao.habilidade_codigo,
            gradavel=gradavel,
            acertos=acertos,
            total_alunos=len(aluno_ids),
            percentual=_percentual(acertos, len(aluno_ids)),
        ))
    return quadro


def estatisticas_questao(sessao: Session, questao_id: int) -> EstatisticasQuestao:
    """
    Distribuição das alternativas marcadas e acerto entre quem respondeu.
    Só contam alunos matriculados em turmas atendidas pelo provão.
    """
    questao = buscar_ou_falhar(sessao, Questao, questao_id, 'questao')
    gabarito = sessao.query(Gabarito.resposta_correta).filter_by(questao_id=questao_id).scalar()

    marcadas = (
        sessao.query(Resposta.resposta)
        .filter(
            Resposta.questao_id == questao_id,
            Resposta.aluno_id.in_(_alunos_atendidos(sessao, questao.provao_id)),
        )
    )
    distribuicao = {alternativa: 0 for alternativa in ALTERNATIVAS}
    for (resposta,) in marcadas:
        distribuicao[resposta] = distribuicao.get(resposta, 0) + 1

    total = sum(distribuicao.values())
    corretas = distribuicao.get(gabarito, 0) if gabarito is not None else 0
    return EstatisticasQuestao(
        questao_id=questao_id,
        resposta_correta=gabarito,
        distribuicao=distribuicao,
        total_respostas=total,
        corretas=corretas,
        percentual_acerto=_percentual(corretas, total),
    )


def estatisticas_aluno(sessao: Session, aluno_id: int, provao_id: Optional[int] = None) -> EstatisticasAluno:
    """
    Totais do aluno, geral e por disciplina.

    Com 'provao_id' considera só esse provão (como pontuar_aluno). Sem ele,
    soma todos os provões aplicados às turmas em que o aluno está matriculado.
    """
    buscar_ou_falhar(sessao, Aluno, aluno_id, 'aluno')
    if provao_id is not None:
        provoes = [buscar_ou_falhar(sessao, Provao, provao_id, 'provao')]
    else:
        provoes = _provoes_vinculados(sessao, [turma.id for turma in turmas_do_aluno(sessao, aluno_id)])

    questoes = _questoes(sessao, *[provao.id for provao in provoes])
    respostas = respostas_por_aluno(sessao, [q.id for q in questoes], [aluno_id])

    geral = _corrigir(aluno_id, provao_id, questoes, respostas)
    return EstatisticasAluno(
        aluno_id=aluno_id,
        total_questoes=geral.total,
        questoes_corretas=geral.corretas,
        percentual=geral.percentual,
        por_disciplina=geral.por_disciplina,
        por_provao=[
            _corrigir(aluno_id, provao.id, [q for q in questoes if q.provao_id == provao.id], respostas)
            for provao in provoes
        ],
    )


def estatisticas_turma(sessao: Session, turma_id: int, provao_id: Optional[int] = None) -> EstatisticasTurma:
    """
    Total de alunos, participantes (ao menos uma resposta) e média de
    percentual entre os participantes, geral e por disciplina.

    Sem 'provao_id', agrega todos os provões vinculados à turma e detalha
    cada um em 'por_provao'.
    """
    if provao_id is not None:
        buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    alunos = alunos_da_turma(sessao, turma_id)

    if provao_id is not None:
        if not _vinculado(sessao, provao_id, turma_id):
            return EstatisticasTurma(turma_id, provao_id, len(alunos), 0, 0.0)
        questoes = _questoes(sessao, provao_id)
        respostas = respostas_por_aluno(sessao, [q.id for q in questoes], [a.id for a in alunos])
        return _estatisticas(turma_id, provao_id, alunos, questoes, respostas)

    provoes = _provoes_vinculados(sessao, [turma_id])
    questoes = _questoes(sessao, *[provao.id for provao in provoes])
    respostas = respostas_por_aluno(sessao, [q.id for q in questoes], [a.id for a in alunos])

    geral = _estatisticas(turma_id, None, alunos, questoes, respostas)
    geral.por_provao = [
        _estatisticas(turma_id, provao.id, alunos, [q for q in questoes if q.provao_id == provao.id], respostas)
        for provao in provoes
    ]
    return geral


def resultado_provao(sessao: Session, provao_id: int) -> ResultadoProvao:
    """
    Resultado consolidado de um provão aplicado a várias turmas.

    O ranking geral lista cada aluno uma única vez, associado à primeira
    turma vinculada (na ordem escola/série/turma) em que está matriculado.
    """
    buscar_ou_falhar(sessao, Provao, provao_id, 'provao')
    turmas = turmas_do_provao(sessao, provao_id)
    questoes = _questoes(sessao, provao_id)

    elencos = {turma.id: alunos_da_turma(sessao, turma.id) for turma in turmas}
    alunos, turma_de = [], {}
    for turma in turmas:
        for aluno in elencos[turma.id]:
            if aluno.id not in turma_de:
                turma_de[aluno.id] = turma.id
                alunos.append(aluno)

    respostas = respostas_por_aluno(sessao, [q.id for q in questoes], [a.id for a in alunos])
    ranking = _ranquear(alunos, provao_id, questoes, respostas, turma_de)

    participantes = [p.desempenho for p in ranking if _participou(p.aluno_id, questoes, respostas)]

    resultado = ResultadoProvao(
        provao_id=provao_id,
        turma_ids=[turma.id for turma in turmas],
        ranking=ranking,
        por_turma={
            turma.id: _estatisticas(turma.id, provao_id, elencos[turma.id], questoes, respostas)
            for turma in turmas
        },
        por_disciplina=_medias_por_disciplina(participantes, questoes) if participantes else {},
        total_alunos=len(alunos),
        participantes=len(participantes),
        participacao=_percentual(len(participantes), len(alunos)),
    )
    logger.info(
        f"Resultado do provão {provao_id}: {resultado.participantes}/{resultado.total_alunos} participantes"
    )
    return resultado
