"""
Módulo Principal da Aplicação (Application Factory)
"""

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import Config

from .core import database
from .core.database import db
from .core.logger import get_logger

logger = get_logger(__name__)


def create_app(config_class=Config):
    """
    Cria e configura uma instância da aplicação Flask.
    """

    app = Flask(__name__, instance_relative_config=True)

    # 1. Carrega a configuração
    app.config.from_object(config_class)

    # 2. Inicializa o banco (Flask-SQLAlchemy)
    database.init_app(app)

    # 3. Rota de Health Check (confere também o banco)
    @app.route("/health")
    def health_check():
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Health check: banco indisponível: {e}")
            return "Banco de dados indisponível.", 503
        return "Servidor Provão no ar!", 200

    return app
