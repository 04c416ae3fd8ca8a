# clinica/adapters/snapshot_loader.py
"""
Importação de um snapshot JSON com o formato das respostas da API.

Formato esperado (uma chave por recurso):

    {
      "patients":  {"data": [...], "total": 10, "page": 1, "totalPages": 1},
      "protocols": {"data": [...]},
      "doses":     [...],                 # lista pura também é aceita
      ...
    }

Recursos ausentes são simplesmente ignorados. A gravação segue a ordem das
chaves estrangeiras (pacientes antes de tratamentos, tratamentos antes de doses).
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Callable, Dict, List, Tuple

from clinica.adapters.parsers import (
    parse_contato_dispensado,
    parse_diagnostico,
    parse_dispensacao,
    parse_documento,
    parse_dose,
    parse_lote,
    parse_many,
    parse_medicamento,
    parse_paciente,
    parse_pedido,
    parse_protocolo,
    parse_tratamento,
    parse_venda,
)
from clinica.config import DB_PATH
from clinica.domain.errors import SnapshotInvalido
from clinica.infra.db import connect
from clinica.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_system_event,
    log_transaction,
    print_system,
)
from clinica.infra.migrations import apply_migrations
from clinica.infra.repositories import (
    ContatoRepo,
    DiagnosticoRepo,
    DispensacaoRepo,
    DocumentoRepo,
    DoseRepo,
    LoteRepo,
    MedicamentoRepo,
    PacienteRepo,
    PedidoCompraRepo,
    ProtocoloRepo,
    TratamentoRepo,
    VendaRepo,
)
from clinica.infra.views import create_views

# (chave no JSON, tabela, parser, repositório) na ordem de gravação
RECURSOS: List[Tuple[str, str, Callable, Callable]] = [
    ("medications", "medicamento", parse_medicamento, MedicamentoRepo),
    ("diagnoses", "diagnostico", parse_diagnostico, DiagnosticoRepo),
    ("patients", "paciente", parse_paciente, PacienteRepo),
    ("documents", "documento", parse_documento, DocumentoRepo),
    ("protocols", "protocolo", parse_protocolo, ProtocoloRepo),
    ("treatments", "tratamento", parse_tratamento, TratamentoRepo),
    ("doses", "dose", parse_dose, DoseRepo),
    ("inventory", "lote_estoque", parse_lote, LoteRepo),
    ("dispense-logs", "dispensacao", parse_dispensacao, DispensacaoRepo),
    ("purchase-requests", "pedido_compra", parse_pedido, PedidoCompraRepo),
    ("sales", "venda", parse_venda, VendaRepo),
    ("dismissed-logs", "contato_dispensado", parse_contato_dispensado, ContatoRepo),
]


def extrair_registros(payload: Any) -> List[Dict[str, Any]]:
    """Lista de registros de um recurso: aceita ``{"data": [...]}`` ou a lista pura."""
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    raise ValueError("Formato inválido: esperado {'data': [...]} ou lista")


def load_snapshot_json(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """Lê o arquivo e devolve {recurso: registros brutos} só com os recursos conhecidos."""
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    if not isinstance(doc, dict):
        raise ValueError(f"Snapshot inválido em {path}: esperado objeto JSON")
    return {chave: extrair_registros(doc.get(chave)) for chave, *_ in RECURSOS}


def run_importar_snapshot(path: str, db_path: str = DB_PATH) -> Dict[str, int]:
    """Importa o snapshot (upsert por id) e devolve a contagem por recurso.

    Tudo ou nada: os recursos são gravados numa única transação, e uma
    referência quebrada (ex.: dose de um tratamento ausente) desfaz a
    importação inteira.

    Raises:
        SnapshotInvalido: violação de integridade em algum recurso.
    """
    log_system_event("importar_snapshot_start", {"file_path": path, "db_path": db_path})
    log_file_operation("import", path)
    try:
        apply_migrations(db_path)
        create_views(db_path)
        brutos = load_snapshot_json(path)
        lidos = [(chave, tabela, repo_cls, parse_many(parser, brutos[chave]))
                 for chave, tabela, parser, repo_cls in RECURSOS]

        contagem: Dict[str, int] = {}
        with connect(db_path) as c:
            for chave, tabela, repo_cls, registros in lidos:
                if not registros:
                    continue
                try:
                    n = repo_cls(db_path).upsert_many(registros, conn=c)
                except sqlite3.IntegrityError as e:
                    raise SnapshotInvalido(
                        f"Snapshot inconsistente em '{chave}': {e}. Nada foi importado.",
                        {"recurso": chave, "file_path": path},
                    ) from e
                contagem[chave] = n
        for chave, tabela, _, _ in lidos:
            if chave in contagem:
                log_database_operation(tabela, "UPSERT", contagem[chave], file_path=path)
                print_system(f"✅ {chave}: {contagem[chave]} registro(s)")

        total = sum(contagem.values())
        log_file_operation("import", path, rows_processed=total)
        log_transaction("importar_snapshot", {"file": path}, result=contagem)
        return contagem
    except Exception as e:
        log_transaction("importar_snapshot", {"file": path}, error=str(e))
        log_system_event("importar_snapshot_error", {"file_path": path, "error": str(e)}, level="error")
        raise
