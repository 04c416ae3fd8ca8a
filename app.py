# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db clinica.db
  python app.py importar snapshot.json
  python app.py painel --hoje 2025-03-10
  python app.py compras verificar
  python app.py importar-lotes entradas.xlsx
  python app.py caixa kpis --periodo month
"""

from clinica.adapters.cli import main

if __name__ == "__main__":
    main()
