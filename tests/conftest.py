import os

import pytest

# config.py falha sem SECRET_KEY (fail fast); precisa existir antes do import
os.environ.setdefault('SECRET_KEY', 'chave-de-teste')

from config import TestingConfig  # noqa: E402
from provao import create_app  # noqa: E402
from provao.core.database import criar_tabelas, db, remover_tabelas  # noqa: E402


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sessao(app):
    """Sessão num banco em memória recém-criado."""
    with app.app_context():
        remover_tabelas()
        criar_tabelas()
        yield db.session


@pytest.fixture
def escola_basica(sessao):
    """
    EM Castro Alves > 7º Ano > turmas A e B, com três alunos:
    Ana e Bruno na 7A, Carla na 7B.
    """
    from provao.cadastro import services as cadastro
    from provao.turmas import services as turmas

    escola = cadastro.criar(sessao, 'escola', {
        'nome': 'EM Castro Alves', 'codigo_inep': '29123456', 'localizacao': 'Urbano'
    })
    serie = cadastro.criar(sessao, 'serie', {'nome': '7º Ano', 'escola_id': escola.id})
    turma_a = cadastro.criar(sessao, 'turma', {'nome': 'A', 'serie_id': serie.id})
    turma_b = cadastro.criar(sessao, 'turma', {'nome': 'B', 'serie_id': serie.id})

    ana = cadastro.criar(sessao, 'aluno', {'nome': 'Ana Souza', 'matricula': '2024001'})
    bruno = cadastro.criar(sessao, 'aluno', {'nome': 'Bruno Lima', 'matricula': '2024002'})
    carla = cadastro.criar(sessao, 'aluno', {'nome': 'Carla Dias', 'matricula': '2024003'})

    turmas.matricular(sessao, ana.id, turma_a.id)
    turmas.matricular(sessao, bruno.id, turma_a.id)
    turmas.matricular(sessao, carla.id, turma_b.id)

    return {
        'escola': escola, 'serie': serie, 'turma_a': turma_a, 'turma_b': turma_b,
        'ana': ana, 'bruno': bruno, 'carla': carla,
    }
