"""
Testes do loader de planilhas de entrada de lotes e da importação via use case.
"""

import tempfile
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from clinica.adapters.gds_loader import _normalize_columns, _to_date_iso, load_lotes_from_xlsx
from clinica.domain.models import StatusPedido
from clinica.infra.repositories import LoteRepo, PedidoCompraRepo
from clinica.usecases.compras import run_verificar_compras
from clinica.usecases.estoque import run_importar_lotes_xlsx

from conftest import HOJE


def _xlsx(data) -> str:
    df = pd.DataFrame(data)
    with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as tmp_file:
        df.to_excel(tmp_file.name, index=False)
        return tmp_file.name


def test_normalize_columns_sinonimos():
    df = pd.DataFrame({
        "Medicação": ["A"],
        "Nº Lote": ["L1"],
        "Vencimento": ["2025-01-01"],
        "Qtde": ["3"],
        "Preço de Venda": ["100"],
        "Frete": ["2"],
        "Coluna Extra": ["x"],
    })
    cols = list(_normalize_columns(df).columns)
    assert cols == ["medicamento", "lote", "validade", "quantidade", "preco_venda", "entrega", "coluna_extra"]


@pytest.mark.parametrize("valor,esperado", [
    ("2025-03-04", "2025-03-04"),
    ("2025-03-04 00:00:00", "2025-03-04"),
    ("04/03/2025", "2025-03-04"),
    ("04-03-2025", "2025-03-04"),
    ("04/03/25", "2025-03-04"),
    (pd.Timestamp("2025-03-04"), "2025-03-04"),
    ("", None),
    (None, None),
    ("sem data", None),
])
def test_to_date_iso(valor, esperado):
    assert _to_date_iso(valor) == esperado


def test_load_lotes_from_xlsx():
    path = _xlsx({
        "Medicamento": ["Risperidona", "Metilfenidato", None],
        "Lote": ["R2", "M3", None],
        "Validade": [datetime(2025, 6, 30), "31/12/2025", None],
        "Quantidade": ["10", "4", None],
        "Custo Unitário": ["R$ 38,50", None, None],
        "Pedido de Compra": ["pc9", None, None],
    })
    try:
        rows = load_lotes_from_xlsx(path)
        assert len(rows) == 2
        r = rows[0]
        assert r["medicamento"] == "Risperidona"
        assert r["validade"] == "2025-06-30"
        assert r["quantidade"] == "10"
        assert r["custo_unitario"] == "R$ 38,50"
        assert r["pedido_id"] == "pc9"
        assert r["data_entrada"] is None
        assert rows[1]["validade"] == "2025-12-31"
        assert rows[1]["pedido_id"] is None
    finally:
        Path(path).unlink()


def test_importar_lotes_xlsx_recebe_pedidos(db_populado):
    pedido = run_verificar_compras(db_populado, HOJE).criados[0]
    path = _xlsx({
        "Medicamento": ["Risperidona", "Risperidona"],
        "Lote": ["R2", "R3"],
        "Validade": ["2025-06-30", "2025-07-30"],
        "Quantidade": ["6", "2"],
        "Preço": ["100", "100"],
        "Pedido": [pedido.id, pedido.id],
    })
    try:
        info = run_importar_lotes_xlsx(path, db_populado, HOJE)
    finally:
        Path(path).unlink()
    assert info["linhas_inseridas"] == 2
    assert info["pedidos_recebidos"] == 1
    assert PedidoCompraRepo(db_populado).get(pedido.id).status == StatusPedido.RECEIVED
    novos = [l for l in LoteRepo(db_populado).list() if l.lote in ("R2", "R3")]
    assert sorted(l.quantidade for l in novos) == [2, 6]
    assert all(l.data_entrada == "2024-03-10" and l.preco_venda == 100.0 for l in novos)


def test_importar_lotes_xlsx_quantidade_invalida(db_path):
    path = _xlsx({"Medicamento": ["Risperidona"], "Lote": ["R2"], "Quantidade": ["0"]})
    try:
        with pytest.raises(ValueError):
            run_importar_lotes_xlsx(path, db_path, HOJE)
    finally:
        Path(path).unlink()
    assert LoteRepo(db_path).list() == []
