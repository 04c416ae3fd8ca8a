# clinica/infra/logger.py
"""
Logs das operações da clínica, um arquivo por assunto.

    transactions.log  comandos completos (sucesso ou falha)
    doses.log         aplicação, pagamento e pesquisa das doses
    estoque.log       entradas, dispensações e pedidos
    database.log      escritas no SQLite
    system.log        eventos do sistema e importações de arquivo

Nada é gravado por padrão: CLINICA_LOGGING=1 liga os arquivos e
CLINICA_LOGS_DIR troca a pasta (o padrão é ``clinica/logs``).
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


ENABLE_LOGGING = os.getenv("CLINICA_LOGGING", "0").strip().lower() in {"1", "true", "sim", "yes"}
# Espelha no console o que for impresso via print_system
ENABLE_OUTPUT = False


def print_system(*args, **kwargs):
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Logger ``name`` gravando só em ``log_file`` (sem propagar para o root).

    Chamar de novo com o mesmo nome troca o arquivo. O handler abre o arquivo
    na primeira mensagem, então importar este módulo não cria nada no disco.
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for antigo in list(logger.handlers):
        logger.removeHandler(antigo)

    handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    return logger


LOGS_DIR = Path(os.getenv("CLINICA_LOGS_DIR") or (Path(__file__).parent.parent / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "doses": LOGS_DIR / "doses.log",
    "estoque": LOGS_DIR / "estoque.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('clinica.transactions', str(LOG_FILES["transactions"]))
dose_logger = setup_logger('clinica.doses', str(LOG_FILES["doses"]))
estoque_logger = setup_logger('clinica.estoque', str(LOG_FILES["estoque"]))
database_logger = setup_logger('clinica.database', str(LOG_FILES["database"]))
system_logger = setup_logger('clinica.system', str(LOG_FILES["system"]))


def _ativo() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def _registrar(logger: logging.Logger, prefixo: str, campos: Dict[str, Any], level: str = "info") -> None:
    if not _ativo():
        return
    getattr(logger, level.lower(), logger.info)(f"{prefixo}: {campos}")


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra o desfecho de um comando (dispensar, verificar_compras, registrar_venda...).

    Com ``error`` a linha sai em ERROR como TRANSACTION_FAILED; sem, em INFO
    como TRANSACTION_SUCCESS com o ``result``.
    """
    if not _ativo():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_dose(action: str, dose_id: str, tratamento_id: Optional[str] = None, **kwargs) -> None:
    _registrar(dose_logger, f"DOSE_{action.upper()}", {"dose_id": dose_id, "tratamento_id": tratamento_id, **kwargs})


def log_estoque(action: str, medicamento: str, quantidade: int, lote: Optional[str] = None, **kwargs) -> None:
    """Movimentação de estoque: ``action`` é entrada, dispensacao, pedido..."""
    _registrar(
        estoque_logger,
        f"ESTOQUE_{action.upper()}",
        {"medicamento": medicamento, "quantidade": quantidade, "lote": lote, **kwargs},
    )


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    _registrar(database_logger, f"DB_{operation}", {"table": table, "affected_rows": affected_rows, **kwargs})


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """Evento do sistema; ``level`` aceita info, warning ou error."""
    _registrar(system_logger, f"SYSTEM_EVENT: {event}", details or {}, level)


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Importação ou envio de arquivo (snapshot JSON, planilha de lotes, termo)."""
    _registrar(
        system_logger,
        f"FILE_{operation.upper()}",
        {
            "file_path": file_path,
            "rows_processed": rows_processed,
            "at": datetime.now().isoformat(timespec="seconds"),
            **kwargs,
        },
    )


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """Últimas ``lines`` linhas do log ``log_type`` (uma das chaves de LOG_FILES)."""
    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."
    with open(log_file, 'r', encoding='utf-8') as f:
        return ''.join(f.readlines()[-lines:])
