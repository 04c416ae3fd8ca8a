# clinica/infra/db.py
"""
Conexão SQLite do painel e leitura de linhas como dicts.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Abre o banco do painel (criando a pasta se CLINICA_DB apontar para uma nova).

    A conexão sai com foreign_keys ligado e ``sqlite3.Row`` como row_factory;
    o bloco é uma transação: commit no fim, rollback se algo levantar.
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetch_dicts(conn: sqlite3.Connection, sql: str, params: Any = ()) -> List[Dict[str, Any]]:
    """Executa um SELECT e devolve as linhas como dicts (novas a cada chamada)."""
    return [dict(r) for r in conn.execute(sql, params).fetchall()]
