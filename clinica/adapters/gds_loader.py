# clinica/adapters/gds_loader.py
"""
Loader de planilhas (XLSX) de ENTRADA DE LOTES.

Essa função:
- lê a planilha usando pandas;
- normaliza cabeçalhos (acentos, variações, sinônimos);
- retorna uma lista de dicionários com as chaves aceitas por
  `clinica.adapters.parsers.parse_lote`.

Observações:
- Datas são normalizadas para ISO (YYYY-MM-DD) quando possível.
- Valores monetários ficam como texto ("R$ 1.234,56"); quem converte é o parser.
- Linhas sem medicamento são ignoradas (planilhas costumam ter rodapé).
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key):
    """Lê um valor da linha do pandas tratando NA como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_date_iso(val: Any) -> Optional[str]:
    """Converte valor para data ISO (YYYY-MM-DD) se possível."""
    if val is None or pd.isna(val):
        return None
    if isinstance(val, pd.Timestamp):
        return val.date().isoformat()
    s = str(val).strip()
    if not s:
        return None
    # ISO primeiro: dayfirst inverteria "2025-03-04"
    if re.match(r"^\d{4}-\d{2}-\d{2}", s):
        return s[:10]
    for fmt in ("%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y"):
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(d):
        return None
    return d.date().isoformat()


ALIASES = {
    "medicamento": "medicamento",
    "medicacao": "medicamento",
    "produto": "medicamento",
    "nome": "medicamento",

    "lote": "lote",
    "numero lote": "lote",
    "n lote": "lote",

    "validade": "validade",
    "data validade": "validade",
    "vencimento": "validade",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",

    "unidade": "unidade",
    "apresentacao": "unidade",

    "data": "data_entrada",
    "entrada": "data_entrada",
    "data entrada": "data_entrada",
    "data de entrada": "data_entrada",

    "custo": "custo_unitario",
    "custo unitario": "custo_unitario",
    "valor unitario": "custo_unitario",

    "preco": "preco_venda",
    "preco venda": "preco_venda",
    "preco de venda": "preco_venda",

    "comissao": "comissao",
    "imposto": "imposto",
    "impostos": "imposto",
    "entrega": "entrega",
    "frete": "entrega",
    "outros": "outros",

    "pedido": "pedido_id",
    "pedido compra": "pedido_id",
    "pedido de compra": "pedido_id",
}

CAMPOS = (
    "medicamento", "lote", "validade", "quantidade", "unidade", "data_entrada",
    "custo_unitario", "preco_venda", "comissao", "imposto", "entrega", "outros", "pedido_id",
)


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = ALIASES.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


# ---------------------------
# loader público (XLSX)
# ---------------------------

def load_lotes_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de entradas de lote.

    Campos de saída (chaves do dict por linha): os de ``CAMPOS``.
    ``validade`` e ``data_entrada`` saem em ISO; os demais como texto ou None.
    """
    df = pd.read_excel(path, dtype="string")
    df = _normalize_columns(df)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        rec = {campo: _safe_get(row, campo) for campo in CAMPOS}
        if not rec["medicamento"]:
            continue
        rec["validade"] = _to_date_iso(rec["validade"])
        rec["data_entrada"] = _to_date_iso(rec["data_entrada"])
        out.append(rec)
    return out
