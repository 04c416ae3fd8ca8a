"""
Testes do sistema de logging (arquivos por assunto, desligado por padrão).
"""

import pytest

from clinica.infra import logger as lg


@pytest.fixture
def logs_tmp(tmp_path, monkeypatch):
    """Aponta os loggers para arquivos temporários."""
    arquivos = {tipo: tmp_path / f"{tipo}.log" for tipo in lg.LOG_FILES}
    monkeypatch.setattr(lg, "LOG_FILES", arquivos)
    monkeypatch.setattr(lg, "transaction_logger", lg.setup_logger("clinica.test.transactions", str(arquivos["transactions"])))
    monkeypatch.setattr(lg, "dose_logger", lg.setup_logger("clinica.test.doses", str(arquivos["doses"])))
    monkeypatch.setattr(lg, "estoque_logger", lg.setup_logger("clinica.test.estoque", str(arquivos["estoque"])))
    monkeypatch.setattr(lg, "database_logger", lg.setup_logger("clinica.test.database", str(arquivos["database"])))
    monkeypatch.setattr(lg, "system_logger", lg.setup_logger("clinica.test.system", str(arquivos["system"])))
    return arquivos


def _flush():
    for nome in ("transaction_logger", "dose_logger", "estoque_logger", "database_logger", "system_logger"):
        for h in getattr(lg, nome).handlers:
            h.flush()


def test_logging_desligado_nao_grava(logs_tmp, monkeypatch):
    monkeypatch.setattr(lg, "ENABLE_LOGGING", False)
    monkeypatch.setattr(lg, "ENABLE_OUTPUT", False)
    lg.log_system_event("test_start", {"test_id": "x"})
    lg.log_transaction("op", {"a": 1}, result="ok")
    _flush()
    assert not logs_tmp["system"].exists()
    assert "não encontrado" in lg.get_log_summary("transactions")


def test_logging_ligado(logs_tmp, monkeypatch):
    monkeypatch.setattr(lg, "ENABLE_LOGGING", True)

    lg.log_system_event("test_start", {"test_id": "logging_system_test"})
    lg.log_dose("aplicada", "d1", "t1", status="APPLIED")
    lg.log_estoque("dispensacao", "Risperidona", 1, "RIS-01", paciente_id="p1")
    lg.log_database_operation("venda", "INSERT", 1, id="s1")
    lg.log_file_operation("import", "snapshot.json", rows_processed=50)
    lg.log_transaction("registrar_venda", {"dose_id": "d1"}, result={"venda_id": "s1"})
    lg.log_transaction("registrar_venda", {"dose_id": "d9"}, error="Dose não encontrada")
    lg.log_system_event("falha", {"x": 1}, level="error")
    _flush()

    transacoes = lg.get_log_summary("transactions")
    assert "TRANSACTION_SUCCESS: registrar_venda" in transacoes
    assert "TRANSACTION_FAILED: registrar_venda - Dose não encontrada" in transacoes
    assert "DOSE_APLICADA" in lg.get_log_summary("doses")
    assert "ESTOQUE_DISPENSACAO" in lg.get_log_summary("estoque")
    assert "DB_INSERT" in lg.get_log_summary("database")

    sistema = lg.get_log_summary("system")
    assert "FILE_IMPORT" in sistema
    assert " - ERROR - SYSTEM_EVENT: falha" in sistema


def test_get_log_summary_ultimas_linhas(logs_tmp, monkeypatch):
    monkeypatch.setattr(lg, "ENABLE_LOGGING", True)
    for i in range(5):
        lg.log_system_event(f"evento_{i}")
    _flush()
    resumo = lg.get_log_summary("system", lines=2)
    assert "evento_4" in resumo
    assert "evento_2" not in resumo
    assert lg.get_log_summary("inexistente") == "Log inexistente não encontrado."
