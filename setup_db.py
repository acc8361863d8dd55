"""
Script Utilitário: setup_db.py
Use este script para criar (ou recriar) as tabelas do banco configurado em DATABASE_URL.

$ python setup_db.py            # cria as tabelas que ainda não existem
$ python setup_db.py --recriar  # APAGA tudo e cria de novo
"""

import sys

from provao import create_app
from provao.core.database import criar_tabelas, db, remover_tabelas

# Inicializa a aplicação para carregar configurações e banco de dados
app = create_app()


def preparar_banco(recriar=False):
    with app.app_context():
        print(f"--- Banco: {db.engine.url.render_as_string(hide_password=True)} ---")

        if recriar:
            confirmacao = input("⚠️  Isso apaga TODOS os dados. Digite 'sim' para continuar: ").strip()
            if confirmacao.lower() != 'sim':
                print("Operação cancelada.")
                return
            remover_tabelas()
            print("Tabelas removidas.")

        criar_tabelas()
        print("✅ SUCESSO! Estrutura do banco pronta.")


if __name__ == "__main__":
    preparar_banco(recriar='--recriar' in sys.argv[1:])
