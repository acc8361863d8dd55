"""
Módulo de Conexão com o Banco de Dados (Core)

A extensão Flask-SQLAlchemy ('db') cuida do engine e da sessão por contexto
de aplicação. Os serviços não importam 'db': recebem a sessão como primeiro
argumento (na aplicação, 'db.session'), o que mantém as regras de negócio
testáveis com qualquer sessão SQLAlchemy.
"""

from contextlib import contextmanager
from typing import Iterable, Iterator

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from provao.core.erros import NotFound, ReferentialError
from provao.core.logger import get_logger

logger = get_logger(__name__)

db = SQLAlchemy(session_options={'autoflush': False, 'expire_on_commit': False})


def _ativar_chaves_estrangeiras(conexao_dbapi, _registro):
    # SQLite só aplica FOREIGN KEY / ON DELETE CASCADE com o pragma ligado
    cursor = conexao_dbapi.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def init_app(app: Flask) -> None:
    """
    Registra a extensão na aplicação. Em SQLite liga as chaves estrangeiras
    em cada conexão nova; com CRIAR_TABELAS, cria o schema na hora.
    """
    db.init_app(app)

    with app.app_context():
        engine = db.engine
        if engine.dialect.name == 'sqlite':
            event.listen(engine, 'connect', _ativar_chaves_estrangeiras)

        if app.config.get('CRIAR_TABELAS'):
            criar_tabelas()

        logger.info(f"Banco configurado: {engine.url.render_as_string(hide_password=True)}")


def criar_tabelas() -> None:
    # Importa os modelos para registrá-los no metadata
    from provao.core import models  # noqa: F401

    db.create_all()
    logger.info("Tabelas criadas (ou já existentes).")


def remover_tabelas() -> None:
    from provao.core import models  # noqa: F401

    db.drop_all()

@contextmanager
def transacao(sessao: Session) -> Iterator[Session]:
    """
    Unidade de trabalho: commit se o bloco terminar, rollback em qualquer erro.
    Escritas compostas (ex.: provão + vínculos com turmas) ficam num único bloco.
    """
    try:
        yield sessao
        sessao.commit()
    except Exception:
        sessao.rollback()
        raise


def buscar_ou_falhar(sessao: Session, modelo, identificador, tipo: str):
    """Retorna o registro pela chave primária ou levanta NotFound."""
    registro = sessao.get(modelo, identificador) if identificador is not None else None
    if registro is None:
        raise NotFound(tipo, identificador)
    return registro


def exigir_referencia(sessao: Session, modelo, identificador, tipo: str, campo: str):
    """
    Como buscar_ou_falhar, mas para chaves estrangeiras de um registro novo:
    levanta ReferentialError em vez de NotFound.
    """
    registro = sessao.get(modelo, identificador) if identificador is not None else None
    if registro is None:
        raise ReferentialError(f"{tipo} não encontrado(a): {identificador}", {'campo': campo})
    return registro


def upsert(sessao: Session, modelo, valores: dict, chaves: Iterable[str]):
    """
    INSERT atômico que, em conflito na restrição única 'chaves', sobrescreve as
    demais colunas (última escrita vence, sem lock explícito).
    Retorna o registro ORM resultante, recarregado do banco.
    """
    chaves = tuple(chaves)
    atualizacoes = {coluna: valor for coluna, valor in valores.items() if coluna not in chaves}
    tabela = modelo.__table__
    dialeto = sessao.get_bind().dialect.name

    if dialeto == 'sqlite':
        stmt = sqlite_insert(tabela).values(**valores)
        stmt = stmt.on_conflict_do_update(index_elements=list(chaves), set_=atualizacoes)
    elif dialeto == 'postgresql':
        stmt = postgresql_insert(tabela).values(**valores)
        stmt = stmt.on_conflict_do_update(index_elements=list(chaves), set_=atualizacoes)
    elif dialeto in ('mysql', 'mariadb'):
        stmt = mysql_insert(tabela).values(**valores).on_duplicate_key_update(**atualizacoes)
    else:
        raise NotImplementedError(f"Upsert não suportado para o dialeto '{dialeto}'.")

    sessao.execute(stmt)

    filtro = {coluna: valores[coluna] for coluna in chaves}
    return sessao.query(modelo).filter_by(**filtro).populate_existing().one()
