import pytest

from provao.core.erros import ReferentialError, ValidationError
from provao.core.models import Resposta
from provao.provoes import services as provoes
from provao.respostas import services as respostas


@pytest.fixture
def questoes(sessao, escola_basica):
    provao = provoes.criar_provao(sessao, 'Provão', [escola_basica['turma_a'].id])
    q1 = provoes.adicionar_questao(sessao, provao.id, 'Matemática', 'D1')
    q2 = provoes.adicionar_questao(sessao, provao.id, 'Português', 'D2')
    return provao, q1, q2


def test_ultima_resposta_vence(sessao, escola_basica, questoes):
    _provao, q1, _q2 = questoes
    ana = escola_basica['ana']

    respostas.registrar_resposta(sessao, ana.id, q1.id, 'A')
    respostas.registrar_resposta(sessao, ana.id, q1.id, 'd')

    assert sessao.query(Resposta).filter_by(aluno_id=ana.id, questao_id=q1.id).count() == 1
    assert respostas.obter_resposta(sessao, ana.id, q1.id).resposta == 'D'


def test_resposta_sem_gabarito_e_aceita(sessao, escola_basica, questoes):
    provao, _q1, q2 = questoes
    registro = respostas.registrar_resposta(sessao, escola_basica['bruno'].id, q2.id, 'E')
    assert registro.id is not None
    assert respostas.respostas_do_aluno(sessao, escola_basica['bruno'].id, provao.id) == {q2.id: 'E'}


def test_alternativa_invalida(sessao, escola_basica, questoes):
    _provao, q1, _q2 = questoes
    with pytest.raises(ValidationError):
        respostas.registrar_resposta(sessao, escola_basica['ana'].id, q1.id, 'X')
    with pytest.raises(ValidationError):
        respostas.registrar_resposta(sessao, escola_basica['ana'].id, q1.id, '')
    assert sessao.query(Resposta).count() == 0


def test_referencias_inexistentes(sessao, escola_basica, questoes):
    _provao, q1, _q2 = questoes
    with pytest.raises(ReferentialError):
        respostas.registrar_resposta(sessao, 999, q1.id, 'A')
    with pytest.raises(ReferentialError):
        respostas.registrar_resposta(sessao, escola_basica['ana'].id, 999, 'A')


def test_folha_de_respostas_em_lote(sessao, escola_basica, questoes):
    provao, q1, q2 = questoes
    ana = escola_basica['ana']

    respostas.registrar_respostas(sessao, ana.id, {q1.id: 'B', q2.id: 'C'})
    assert respostas.respostas_do_aluno(sessao, ana.id, provao.id) == {q1.id: 'B', q2.id: 'C'}


def test_lote_com_erro_nao_grava_nada(sessao, escola_basica, questoes):
    _provao, q1, _q2 = questoes
    ana = escola_basica['ana']

    with pytest.raises(ReferentialError):
        respostas.registrar_respostas(sessao, ana.id, {q1.id: 'B', 999: 'C'})
    assert sessao.query(Resposta).count() == 0


def test_respostas_por_aluno(sessao, escola_basica, questoes):
    _provao, q1, q2 = questoes
    ana, bruno = escola_basica['ana'], escola_basica['bruno']
    respostas.registrar_resposta(sessao, ana.id, q1.id, 'A')
    respostas.registrar_resposta(sessao, bruno.id, q2.id, 'B')

    mapa = respostas.respostas_por_aluno(sessao, [q1.id, q2.id], [ana.id, bruno.id])
    assert mapa == {(ana.id, q1.id): 'A', (bruno.id, q2.id): 'B'}
    assert respostas.respostas_por_aluno(sessao, [], [ana.id]) == {}
