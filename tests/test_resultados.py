import pytest

from provao.core.erros import NotFound
from provao.provoes import services as provoes
from provao.respostas import services as respostas
from provao.resultados import services as resultados
from provao.turmas import services as turmas


@pytest.fixture
def cenario_7a(sessao, escola_basica):
    """
    Turma 7A com Ana e Bruno. Provão T1: Q1 (gabarito A), Q2 (gabarito B).
    Ana marca Q1=A, Q2=A. Bruno marca Q1=B, Q2=B.
    """
    turma_a, ana, bruno = escola_basica['turma_a'], escola_basica['ana'], escola_basica['bruno']

    provao = provoes.criar_provao(sessao, 'T1', [turma_a.id])
    q1 = provoes.adicionar_questao(sessao, provao.id, 'Matemática', 'D1')
    q2 = provoes.adicionar_questao(sessao, provao.id, 'Português', 'D2')
    provoes.definir_gabarito(sessao, q1.id, 'A')
    provoes.definir_gabarito(sessao, q2.id, 'B')

    respostas.registrar_respostas(sessao, ana.id, {q1.id: 'A', q2.id: 'A'})
    respostas.registrar_respostas(sessao, bruno.id, {q1.id: 'B', q2.id: 'B'})

    return dict(escola_basica, provao=provao, q1=q1, q2=q2)


def test_empate_em_50_por_cento(sessao, cenario_7a):
    c = cenario_7a
    assert resultados.pontuar_aluno(sessao, c['ana'].id, c['provao'].id).percentual == 50
    assert resultados.pontuar_aluno(sessao, c['bruno'].id, c['provao'].id).percentual == 50

    ranking = resultados.ranking_turma(sessao, c['turma_a'].id, c['provao'].id)
    # empate mantém a ordem da turma (nome, depois id)
    assert [(p.posicao, p.nome) for p in ranking] == [(1, 'Ana Souza'), (2, 'Bruno Lima')]
    assert all(p.turma_id == c['turma_a'].id for p in ranking)


def test_questao_sem_gabarito_fica_fora_da_conta(sessao, escola_basica):
    ana, turma_a = escola_basica['ana'], escola_basica['turma_a']
    provao = provoes.criar_provao(sessao, 'T1', [turma_a.id])
    q1 = provoes.adicionar_questao(sessao, provao.id, 'Matemática', 'D1')
    q2 = provoes.adicionar_questao(sessao, provao.id, 'Matemática', 'D2')
    provoes.definir_gabarito(sessao, q1.id, 'A')
    respostas.registrar_respostas(sessao, ana.id, {q1.id: 'A', q2.id: 'C'})

    desempenho = resultados.pontuar_aluno(sessao, ana.id, provao.id)
    assert (desempenho.corretas, desempenho.total) == (1, 1)
    assert desempenho.percentual == 100


def test_sem_questoes_gradaveis_da_zero(sessao, escola_basica):
    ana = escola_basica['ana']
    provao = provoes.criar_provao(sessao, 'Sem gabarito', [escola_basica['turma_a'].id])
    questao = provoes.adicionar_questao(sessao, provao.id, 'Português', 'D1')
    respostas.registrar_resposta(sessao, ana.id, questao.id, 'A')

    desempenho = resultados.pontuar_aluno(sessao, ana.id, provao.id)
    assert desempenho.total == 0
    assert desempenho.percentual == 0
    assert desempenho.por_disciplina == {}


def test_sem_resposta_conta_como_erro(sessao, cenario_7a):
    c = cenario_7a
    # Carla (7B) não respondeu nada
    desempenho = resultados.pontuar_aluno(sessao, c['carla'].id, c['provao'].id)
    assert (desempenho.corretas, desempenho.total, desempenho.percentual) == (0, 2, 0)


def test_desempenho_por_disciplina(sessao, cenario_7a):
    c = cenario_7a
    por_disciplina = resultados.pontuar_aluno(sessao, c['ana'].id, c['provao'].id).por_disciplina
    assert por_disciplina['Matemática'].percentual == 100
    assert por_disciplina['Português'].percentual == 0


def test_ranking_nao_crescente(sessao, cenario_7a):
    c = cenario_7a
    provoes.definir_gabarito(sessao, c['q2'].id, 'A')  # agora Ana acerta tudo

    ranking = resultados.ranking_turma(sessao, c['turma_a'].id, c['provao'].id)
    percentuais = [p.percentual for p in ranking]
    assert percentuais == [100, 0]
    assert all(a >= b for a, b in zip(percentuais, percentuais[1:]))
    assert [p.posicao for p in ranking] == [1, 2]


def test_ranking_vazio(sessao, cenario_7a):
    c = cenario_7a
    # provão não atende a 7B
    assert resultados.ranking_turma(sessao, c['turma_b'].id, c['provao'].id) == []

    turmas.desmatricular(sessao, c['ana'].id, c['turma_a'].id)
    turmas.desmatricular(sessao, c['bruno'].id, c['turma_a'].id)
    assert resultados.ranking_turma(sessao, c['turma_a'].id, c['provao'].id) == []


def test_identificadores_invalidos(sessao, cenario_7a):
    with pytest.raises(NotFound):
        resultados.pontuar_aluno(sessao, 999, cenario_7a['provao'].id)
    with pytest.raises(NotFound):
        resultados.ranking_turma(sessao, cenario_7a['turma_a'].id, 999)


def test_excluir_questao_sai_da_correcao(sessao, cenario_7a):
    c = cenario_7a
    provoes.excluir_questao(sessao, c['q2'].id)

    desempenho = resultados.pontuar_aluno(sessao, c['ana'].id, c['provao'].id)
    assert desempenho.total == 1
    assert desempenho.percentual == 100
    assert list(desempenho.por_disciplina) == ['Matemática']


def test_dificuldade_questao(sessao, cenario_7a):
    c = cenario_7a
    alunos = [c['ana'].id, c['bruno'].id, c['carla'].id]

    dificuldade = resultados.dificuldade_questao(sessao, c['q1'].id, alunos)
    assert dificuldade.acertos == 1
    assert dificuldade.total_alunos == 3
    assert dificuldade.percentual == pytest.approx(100 / 3)

    assert resultados.dificuldade_questao(sessao, c['q1'].id, []).percentual == 0


def test_dificuldade_por_questao(sessao, cenario_7a):
    c = cenario_7a
    quadro = resultados.dificuldade_por_questao(sessao, c['turma_a'].id, c['provao'].id)
    assert [(d.ordem, d.acertos, d.percentual) for d in quadro] == [(1, 1, 50), (2, 1, 50)]
    assert resultados.dificuldade_por_questao(sessao, c['turma_b'].id, c['provao'].id) == []


def test_estatisticas_questao(sessao, cenario_7a):
    c = cenario_7a
    estatisticas = resultados.estatisticas_questao(sessao, c['q2'].id)
    assert estatisticas.distribuicao == {'A': 1, 'B': 1, 'C': 0, 'D': 0, 'E': 0}
    assert estatisticas.total_respostas == 2
    assert estatisticas.corretas == 1
    assert estatisticas.percentual_acerto == 50


def test_estatisticas_turma(sessao, cenario_7a):
    c = cenario_7a
    novo = turmas.matricular(sessao, c['carla'].id, c['turma_a'].id)
    assert novo.id is not None

    estatisticas = resultados.estatisticas_turma(sessao, c['turma_a'].id, c['provao'].id)
    assert estatisticas.total_alunos == 3
    # Carla não respondeu: não entra na média
    assert estatisticas.participantes == 2
    assert estatisticas.media == 50
    assert estatisticas.por_disciplina == {'Matemática': 50, 'Português': 50}


def test_resultado_provao_multiturma(sessao, cenario_7a):
    c = cenario_7a
    provoes.vincular_turma(sessao, c['provao'].id, c['turma_b'].id)
    respostas.registrar_respostas(sessao, c['carla'].id, {c['q1'].id: 'A', c['q2'].id: 'B'})

    resultado = resultados.resultado_provao(sessao, c['provao'].id)

    assert resultado.turma_ids == [c['turma_a'].id, c['turma_b'].id]
    assert [(p.posicao, p.nome, p.turma_id) for p in resultado.ranking] == [
        (1, 'Carla Dias', c['turma_b'].id),
        (2, 'Ana Souza', c['turma_a'].id),
        (3, 'Bruno Lima', c['turma_a'].id),
    ]
    assert resultado.por_turma[c['turma_a'].id].media == 50
    assert resultado.por_turma[c['turma_b'].id].media == 100
    assert resultado.participacao == 100
    assert resultado.por_disciplina['Matemática'] == pytest.approx(200 / 3)


def test_resultado_provao_aluno_em_duas_turmas_aparece_uma_vez(sessao, cenario_7a):
    c = cenario_7a
    provoes.vincular_turma(sessao, c['provao'].id, c['turma_b'].id)
    turmas.matricular(sessao, c['ana'].id, c['turma_b'].id)

    resultado = resultados.resultado_provao(sessao, c['provao'].id)
    ids = [p.aluno_id for p in resultado.ranking]
    assert ids.count(c['ana'].id) == 1
    assert resultado.total_alunos == 3
    # Carla não respondeu
    assert resultado.participantes == 2


def test_estatisticas_questao_ignora_turma_nao_vinculada(sessao, escola_basica):
    ana, carla = escola_basica['ana'], escola_basica['carla']
    provao = provoes.criar_provao(sessao, 'Só 7A', [escola_basica['turma_a'].id])
    questao = provoes.adicionar_questao(sessao, provao.id, 'Matemática', 'D1')
    provoes.definir_gabarito(sessao, questao.id, 'A')

    respostas.registrar_resposta(sessao, ana.id, questao.id, 'B')
    # Carla é da 7B, que o provão não atende
    respostas.registrar_resposta(sessao, carla.id, questao.id, 'A')

    estatisticas = resultados.estatisticas_questao(sessao, questao.id)
    assert estatisticas.total_respostas == 1
    assert estatisticas.corretas == 0
    assert estatisticas.percentual_acerto == 0
    assert estatisticas.distribuicao['A'] == 0


@pytest.fixture
def segundo_provao(sessao, cenario_7a):
    """Provão T2 na 7A: uma questão (gabarito C); só Ana responde, e acerta."""
    c = cenario_7a
    t2 = provoes.criar_provao(sessao, 'T2', [c['turma_a'].id])
    q3 = provoes.adicionar_questao(sessao, t2.id, 'Matemática', 'D9')
    provoes.definir_gabarito(sessao, q3.id, 'C')
    respostas.registrar_resposta(sessao, c['ana'].id, q3.id, 'C')
    return dict(c, t2=t2, q3=q3)


def test_estatisticas_turma_todos_os_provoes(sessao, segundo_provao):
    c = segundo_provao
    estatisticas = resultados.estatisticas_turma(sessao, c['turma_a'].id)

    assert estatisticas.provao_id is None
    assert estatisticas.total_alunos == 2
    assert estatisticas.participantes == 2
    # Ana 2/3, Bruno 1/3
    assert estatisticas.media == pytest.approx(50)
    assert [(e.provao_id, e.participantes, e.media) for e in estatisticas.por_provao] == [
        (c['provao'].id, 2, 50),
        (c['t2'].id, 1, 100),
    ]


def test_estatisticas_turma_sem_provoes(sessao, escola_basica):
    estatisticas = resultados.estatisticas_turma(sessao, escola_basica['turma_b'].id)
    assert (estatisticas.total_alunos, estatisticas.participantes, estatisticas.media) == (1, 0, 0)
    assert estatisticas.por_provao == []


def test_estatisticas_aluno(sessao, segundo_provao):
    c = segundo_provao

    geral = resultados.estatisticas_aluno(sessao, c['ana'].id)
    assert (geral.total_questoes, geral.questoes_corretas) == (3, 2)
    assert geral.percentual == pytest.approx(200 / 3)
    assert geral.por_disciplina['Matemática'].percentual == 100
    assert geral.por_disciplina['Português'].percentual == 0
    assert [d.provao_id for d in geral.por_provao] == [c['provao'].id, c['t2'].id]

    # Bruno não respondeu o T2: conta como erro
    bruno = resultados.estatisticas_aluno(sessao, c['bruno'].id)
    assert (bruno.total_questoes, bruno.questoes_corretas) == (3, 1)

    so_t1 = resultados.estatisticas_aluno(sessao, c['ana'].id, c['provao'].id)
    assert (so_t1.total_questoes, so_t1.questoes_corretas, so_t1.percentual) == (2, 1, 50)


def test_estatisticas_aluno_sem_provoes_e_ids_invalidos(sessao, cenario_7a):
    # Carla está na 7B, sem provão vinculado
    carla = resultados.estatisticas_aluno(sessao, cenario_7a['carla'].id)
    assert (carla.total_questoes, carla.percentual, carla.por_provao) == (0, 0, [])

    with pytest.raises(NotFound):
        resultados.estatisticas_aluno(sessao, 999)
    with pytest.raises(NotFound):
        resultados.estatisticas_aluno(sessao, cenario_7a['ana'].id, 999)
