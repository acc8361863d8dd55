"""
Módulo de Configuração (Blindado)

Define as classes de configuração da aplicação. Implementa o padrão 'Fail Fast':
se uma variável crítica estiver faltando, a aplicação nem inicia.
"""

import os
from dotenv import load_dotenv

# Carrega variáveis do arquivo .env
load_dotenv()

BANCO_LOCAL_PADRAO = 'sqlite:///provao.db'


def _flag(nome: str, padrao: str = 'False') -> bool:
    return os.environ.get(nome, padrao).lower() in ('true', '1')


class Config:
    """
    Classe de configuração base da aplicação.
    """

    # === SEGURANÇA CRÍTICA (Fail Fast) ===
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        raise ValueError("ERRO CRÍTICO: 'SECRET_KEY' não encontrada no .env. A aplicação não pode iniciar insegura.")

    # === BANCO DE DADOS ===
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')

    # Heroku/Render ainda entregam o esquema antigo 'postgres://'
    if SQLALCHEMY_DATABASE_URI and SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://', 1)

    if not SQLALCHEMY_DATABASE_URI:
        print(f"AVISO: 'DATABASE_URL' não configurada. Usando banco local {BANCO_LOCAL_PADRAO}.")
        SQLALCHEMY_DATABASE_URI = BANCO_LOCAL_PADRAO

    SQLALCHEMY_ECHO = _flag('SQLALCHEMY_ECHO')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cria as tabelas na inicialização (útil em dev; em produção use setup_db.py)
    CRIAR_TABELAS = _flag('CRIAR_TABELAS')

    # === FLASK ===
    DEBUG = _flag('FLASK_DEBUG')
    TESTING = False


class TestingConfig(Config):
    """
    Configuração usada pela suíte de testes: banco SQLite em memória.
    """

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    CRIAR_TABELAS = True
