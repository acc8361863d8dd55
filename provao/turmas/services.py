"""
Camada de Serviço das Turmas (Roster)

Gerencia os vínculos N:N Aluno-Turma (matrícula) e Professor-Turma
(atribuição), garantindo que cada par exista no máximo uma vez.
"""

from typing import Dict, Iterable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from provao.cadastro import services as cadastro
from provao.core.database import buscar_ou_falhar, exigir_referencia, transacao
from provao.core.erros import DuplicateAssignment, DuplicateEnrollment, NotFound, ReferentialError
from provao.core.logger import get_logger
from provao.core.models import Aluno, Matricula, Professor, Turma, TurmaProfessor

logger = get_logger(__name__)


# === MATRÍCULAS ===

def matricular(sessao: Session, aluno_id: int, turma_id: int) -> Matricula:
    """
    Matricula o aluno na turma.

    Raises:
        ReferentialError: aluno ou turma inexistente.
        DuplicateEnrollment: o aluno já está matriculado nessa turma.
    """
    exigir_referencia(sessao, Aluno, aluno_id, 'aluno', 'aluno_id')
    exigir_referencia(sessao, Turma, turma_id, 'turma', 'turma_id')

    existente = sessao.query(Matricula).filter_by(aluno_id=aluno_id, turma_id=turma_id).first()
    if existente is not None:
        logger.warning(f"Matrícula duplicada recusada: aluno={aluno_id} turma={turma_id}")
        raise DuplicateEnrollment(f"Aluno {aluno_id} já está matriculado na turma {turma_id}.")

    matricula = Matricula(aluno_id=aluno_id, turma_id=turma_id)
    with transacao(sessao):
        sessao.add(matricula)
        try:
            sessao.flush()
        except IntegrityError as e:
            raise DuplicateEnrollment(f"Aluno {aluno_id} já está matriculado na turma {turma_id}.") from e

    logger.info(f"Aluno {aluno_id} matriculado na turma {turma_id}")
    return matricula


def desmatricular(sessao: Session, aluno_id: int, turma_id: int) -> None:
    """Remove a matrícula (o cadastro do aluno permanece)."""
    matricula = sessao.query(Matricula).filter_by(aluno_id=aluno_id, turma_id=turma_id).first()
    if matricula is None:
        logger.warning(f"Desmatrícula sem matrícula ativa: aluno={aluno_id} turma={turma_id}")
        raise NotFound('matrícula', f"aluno={aluno_id} turma={turma_id}")

    with transacao(sessao):
        sessao.delete(matricula)

    logger.info(f"Aluno {aluno_id} desmatriculado da turma {turma_id}")


# === PROFESSORES ===

def atribuir_professor(sessao: Session, professor_id: int, turma_id: int) -> TurmaProfessor:
    """
    Associa o professor à turma.

    Raises:
        ReferentialError: professor ou turma inexistente.
        DuplicateAssignment: o professor já está associado a essa turma.
    """
    exigir_referencia(sessao, Professor, professor_id, 'professor', 'professor_id')
    exigir_referencia(sessao, Turma, turma_id, 'turma', 'turma_id')

    existente = sessao.query(TurmaProfessor).filter_by(professor_id=professor_id, turma_id=turma_id).first()
    if existente is not None:
        logger.warning(f"Atribuição duplicada recusada: professor={professor_id} turma={turma_id}")
        raise DuplicateAssignment(f"Professor {professor_id} já está associado à turma {turma_id}.")

    atribuicao = TurmaProfessor(professor_id=professor_id, turma_id=turma_id)
    with transacao(sessao):
        sessao.add(atribuicao)
        try:
            sessao.flush()
        except IntegrityError as e:
            raise DuplicateAssignment(f"Professor {professor_id} já está associado à turma {turma_id}.") from e

    logger.info(f"Professor {professor_id} associado à turma {turma_id}")
    return atribuicao


def desatribuir_professor(sessao: Session, professor_id: int, turma_id: int) -> None:
    atribuicao = sessao.query(TurmaProfessor).filter_by(professor_id=professor_id, turma_id=turma_id).first()
    if atribuicao is None:
        logger.warning(f"Desassociação sem atribuição: professor={professor_id} turma={turma_id}")
        raise NotFound('atribuição', f"professor={professor_id} turma={turma_id}")

    with transacao(sessao):
        sessao.delete(atribuicao)

    logger.info(f"Professor {professor_id} desassociado da turma {turma_id}")


def criar_turma(sessao: Session, nome: str, serie_id: int, professor_ids: Iterable[int] = ()) -> Turma:
    """
    Cria a turma já com seus professores, numa única transação:
    se algum professor não existir, nada é gravado.
    """
    professor_ids = list(dict.fromkeys(professor_ids))
    inexistentes = [pid for pid in professor_ids if sessao.get(Professor, pid) is None]
    if inexistentes:
        raise ReferentialError(
            f"Professor(es) não encontrado(s): {', '.join(map(str, inexistentes))}",
            {'professor_ids': inexistentes},
        )

    with transacao(sessao):
        turma = cadastro.adicionar(sessao, 'turma', {'nome': nome, 'serie_id': serie_id})
        for professor_id in professor_ids:
            sessao.add(TurmaProfessor(turma_id=turma.id, professor_id=professor_id))

    logger.info(f"Turma {turma.id} criada com {len(professor_ids)} professor(es)")
    return turma


# === CONSULTAS ===

def alunos_da_turma(sessao: Session, turma_id: int) -> List[Aluno]:
    """Alunos matriculados, em ordem de nome (e id, para desempate)."""
    buscar_ou_falhar(sessao, Turma, turma_id, 'turma')
    return (
        sessao.query(Aluno)
        .join(Matricula, Matricula.aluno_id == Aluno.id)
        .filter(Matricula.turma_id == turma_id)
        .order_by(Aluno.nome, Aluno.id)
        .all()
    )


def professores_da_turma(sessao: Session, turma_id: int) -> List[Professor]:
    buscar_ou_falhar(sessao, Turma, turma_id, 'turma')
    return (
        sessao.query(Professor)
        .join(TurmaProfessor, TurmaProfessor.professor_id == Professor.id)
        .filter(TurmaProfessor.turma_id == turma_id)
        .order_by(Professor.nome, Professor.id)
        .all()
    )


def composicao_turma(sessao: Session, turma_id: int) -> Dict[str, List]:
    """Alunos e professores da turma: {'alunos': [...], 'professores': [...]}"""
    return {
        'alunos': alunos_da_turma(sessao, turma_id),
        'professores': professores_da_turma(sessao, turma_id),
    }


def turmas_do_aluno(sessao: Session, aluno_id: int) -> List[Turma]:
    buscar_ou_falhar(sessao, Aluno, aluno_id, 'aluno')
    return (
        sessao.query(Turma)
        .join(Matricula, Matricula.turma_id == Turma.id)
        .filter(Matricula.aluno_id == aluno_id)
        .order_by(Turma.nome, Turma.id)
        .all()
    )
