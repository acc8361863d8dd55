"""
Logger dos serviços do Provão.

Cada módulo chama get_logger(__name__) uma vez. A saída vai para stdout e o
nível vem de LOG_LEVEL (INFO se ausente ou inválido).
"""

import logging
import os
import sys


def get_logger(name: str) -> logging.Logger:
    """Logger com handler único em stdout e o formato comum do projeto."""
    logger = logging.getLogger(name)

    # get_logger pode ser chamado de novo para o mesmo nome
    if not logger.handlers:
        nivel = os.environ.get('LOG_LEVEL', 'INFO').upper()
        logger.setLevel(getattr(logging, nivel, logging.INFO))

        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
        )
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
