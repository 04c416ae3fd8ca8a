# clinica/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: cadastro, tratamentos, doses, estoque, compras, caixa e régua de contato
V2: precificação nos lotes (custo/preço/taxas) e feedback dos contatos dispensados
V3: cadastro base de medicamentos
"""

from __future__ import annotations

from typing import List

from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS diagnostico (
        id TEXT PRIMARY KEY,
        nome TEXT NOT NULL,
        cor TEXT,
        exige_termo INTEGER DEFAULT 0
    );
    """,
    # Responsável achatado em colunas; endereço como JSON
    """
    CREATE TABLE IF NOT EXISTS paciente (
        id TEXT PRIMARY KEY,
        nome_completo TEXT NOT NULL,
        diagnostico_principal TEXT,
        data_nascimento TEXT,
        sexo TEXT,
        ativo INTEGER DEFAULT 1,
        responsavel_nome TEXT,
        responsavel_telefone TEXT,
        responsavel_telefone2 TEXT,
        responsavel_email TEXT,
        responsavel_parentesco TEXT,
        endereco TEXT,
        observacoes_clinicas TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS documento (
        id TEXT PRIMARY KEY,
        paciente_id TEXT NOT NULL,
        nome_arquivo TEXT,
        tipo_arquivo TEXT,
        enviado_em TEXT,
        enviado_por TEXT,
        url TEXT,
        FOREIGN KEY (paciente_id) REFERENCES paciente(id) ON DELETE CASCADE
    );
    """,
    # Marcos da régua como JSON: [{"dia": 7, "mensagem": "..."}]
    """
    CREATE TABLE IF NOT EXISTS protocolo (
        id TEXT PRIMARY KEY,
        nome TEXT NOT NULL,
        categoria TEXT NOT NULL,      -- 'MEDICATION' | 'MONITORING'
        frequencia_dias INTEGER,
        medicamento TEXT,
        meta TEXT,
        mensagem TEXT,
        marcos TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tratamento (
        id TEXT PRIMARY KEY,
        paciente_id TEXT NOT NULL,
        protocolo_id TEXT NOT NULL,
        status TEXT NOT NULL,
        data_inicio TEXT,
        doses_planejadas_antes_consulta INTEGER DEFAULT 0,
        proxima_consulta TEXT,
        observacoes TEXT,
        FOREIGN KEY (paciente_id) REFERENCES paciente(id) ON DELETE CASCADE,
        FOREIGN KEY (protocolo_id) REFERENCES protocolo(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS dose (
        id TEXT PRIMARY KEY,
        tratamento_id TEXT NOT NULL,
        ciclo INTEGER,
        data_aplicacao TEXT,
        status TEXT NOT NULL,
        lote TEXT,
        validade TEXT,
        status_pagamento TEXT,
        pagamento_atualizado_em TEXT,
        ultima_antes_consulta INTEGER DEFAULT 0,
        data_consulta TEXT,
        enfermagem INTEGER DEFAULT 0,
        status_pesquisa TEXT,
        nota_pesquisa INTEGER,
        comentario_pesquisa TEXT,
        lote_estoque_id TEXT,
        FOREIGN KEY (tratamento_id) REFERENCES tratamento(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS lote_estoque (
        id TEXT PRIMARY KEY,
        medicamento TEXT NOT NULL,
        lote TEXT,
        validade TEXT,
        quantidade INTEGER NOT NULL DEFAULT 0 CHECK (quantidade >= 0),
        unidade TEXT,
        data_entrada TEXT,
        ativo INTEGER DEFAULT 1
    );
    """,
    # Uma linha por unidade dispensada
    """
    CREATE TABLE IF NOT EXISTS dispensacao (
        id TEXT PRIMARY KEY,
        data TEXT,
        paciente_id TEXT,
        lote_estoque_id TEXT,
        medicamento TEXT,
        quantidade INTEGER DEFAULT 1,
        dose_id TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS pedido_compra (
        id TEXT PRIMARY KEY,
        medicamento TEXT NOT NULL,
        criado_em TEXT,
        consumo_previsto_10d INTEGER,
        estoque_atual INTEGER,
        status TEXT NOT NULL DEFAULT 'PENDING',
        quantidade_sugerida INTEGER
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS venda (
        id TEXT PRIMARY KEY,
        dose_id TEXT NOT NULL UNIQUE,
        data_venda TEXT,
        preco_venda REAL DEFAULT 0,
        custo_unitario REAL DEFAULT 0,
        comissao REAL DEFAULT 0,
        imposto REAL DEFAULT 0,
        entrega REAL DEFAULT 0,
        outros REAL DEFAULT 0,
        forma_pagamento TEXT,
        medicamento TEXT,
        paciente_id TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS contato_dispensado (
        contato_id TEXT PRIMARY KEY,
        dispensado_em TEXT
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # lote_estoque: precificação usada pelo caixa
    _ensure_column(conn, "lote_estoque", "custo_unitario", "custo_unitario REAL")
    _ensure_column(conn, "lote_estoque", "preco_venda", "preco_venda REAL")
    for col in ("comissao", "imposto", "entrega", "outros"):
        _ensure_column(conn, "lote_estoque", col, f"{col} REAL DEFAULT 0")
    # contato_dispensado: feedback do paciente (JSON)
    _ensure_column(conn, "contato_dispensado", "feedback", "feedback TEXT")


def _apply_v3(conn) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS medicamento (
            id TEXT PRIMARY KEY,
            principio_ativo TEXT NOT NULL,
            dosagem TEXT,
            nome_comercial TEXT,
            fabricante TEXT,
            forma TEXT
        );
        """
    )


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        if ver < 3:
            _apply_v3(conn)
            conn.execute("PRAGMA user_version = 3;")
            ver = 3


def schema_version(db_path: str) -> int:
    with connect(db_path) as conn:
        return conn.execute("PRAGMA user_version;").fetchone()[0] or 0
