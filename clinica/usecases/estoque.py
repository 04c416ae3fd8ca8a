# clinica/usecases/estoque.py
"""
UC: Estoque de medicamentos.
- run_estoque(): lotes agrupados por medicamento (com busca).
- registrar_entrada_lote(): entrada de um lote, opcionalmente recebendo um pedido.
- run_importar_lotes_xlsx(path): entradas em lote a partir de planilha.
- dispensar(): baixa do lote com uma linha de dispensação por unidade.
- lotes_a_vencer(): lotes ativos que vencem dentro da janela.
- matriz_consumo(): unidades dispensadas por medicamento x período (pandas).

Obs.:
- O saldo é conferido antes da baixa; nunca fica negativo.
- Receber um pedido PENDING passa por ORDERED antes de RECEIVED.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from clinica.adapters.gds_loader import load_lotes_from_xlsx
from clinica.adapters.parsers import parse_lote
from clinica.config import DB_PATH
from clinica.domain.compras import EstoqueMedicamento, agrupar_estoque, avancar_status
from clinica.domain.datas import diferenca_dias, hoje as _hoje, parse_data
from clinica.domain.models import LoteEstoque, PedidoCompra, RegistroDispensacao, StatusPedido
from clinica.infra.logger import (
    log_database_operation,
    log_estoque,
    log_file_operation,
    log_system_event,
    log_transaction,
    print_system,
)
from clinica.infra.repositories import DispensacaoRepo, LoteRepo, PedidoCompraRepo
from clinica.usecases.painel import preparar_banco

MODOS_CONSUMO = ("monthly", "quarterly")


@dataclass(frozen=True)
class LoteVencendo:
    lote: LoteEstoque
    dias_para_vencer: int

    @property
    def vencido(self) -> bool:
        return self.dias_para_vencer < 0


@dataclass(frozen=True)
class MatrizConsumo:
    modo: str
    periodos: List[str] = field(default_factory=list)
    linhas: List[Tuple[str, List[int], int]] = field(default_factory=list)   # (medicamento, valores, total)
    totais_periodo: List[int] = field(default_factory=list)
    total_geral: int = 0

    @property
    def vazia(self) -> bool:
        return not self.linhas


def run_estoque(busca: str = "", db_path: str = DB_PATH) -> List[EstoqueMedicamento]:
    preparar_banco(db_path)
    return agrupar_estoque(LoteRepo(db_path).list(), busca)


def _receber_pedido(pedido_id: str, db_path: str) -> PedidoCompra:
    repo = PedidoCompraRepo(db_path)
    pedido = repo.get(pedido_id)
    if pedido.status == StatusPedido.PENDING:
        pedido = avancar_status(pedido, StatusPedido.ORDERED)
    pedido = avancar_status(pedido, StatusPedido.RECEIVED)
    salvo = repo.salvar_status(pedido)
    log_database_operation("pedido_compra", "UPDATE", 1, id=pedido_id, status=salvo.status.value)
    return salvo


def _novo_lote(dados: Dict[str, Any], hoje: date) -> LoteEstoque:
    raw = dict(dados)
    raw["id"] = raw.get("id") or uuid.uuid4().hex
    raw["data_entrada"] = raw.get("data_entrada") or hoje.isoformat()
    lote = parse_lote(raw)
    if not lote.medicamento:
        raise ValueError("Medicamento obrigatório na entrada de lote")
    if lote.quantidade <= 0:
        raise ValueError(f"Quantidade inválida para {lote.medicamento}: {lote.quantidade}")
    return lote


def registrar_entrada_lote(
    medicamento: str,
    lote: str,
    validade: Optional[str],
    quantidade: int,
    unidade: str = "Ampola",
    custo_unitario: Optional[float] = None,
    preco_venda: Optional[float] = None,
    pedido_id: Optional[str] = None,
    db_path: str = DB_PATH,
    hoje: Optional[date] = None,
) -> LoteEstoque:
    """Cadastra um lote novo. Com ``pedido_id``, marca o pedido como RECEIVED."""
    hoje = hoje or _hoje()
    dados = {
        "medicamento": medicamento, "lote": lote, "validade": validade, "quantidade": quantidade,
        "unidade": unidade, "custo_unitario": custo_unitario, "preco_venda": preco_venda,
    }
    log_system_event("entrada_lote_start", {"medicamento": medicamento, "lote": lote})
    try:
        preparar_banco(db_path)
        novo = _novo_lote(dados, hoje)
        LoteRepo(db_path).upsert_many([novo])
        log_database_operation("lote_estoque", "INSERT", 1, id=novo.id)
        log_estoque("entrada", novo.medicamento, novo.quantidade, novo.lote, validade=novo.validade)
        if pedido_id:
            _receber_pedido(pedido_id, db_path)
        log_transaction("entrada_lote", dados, result={"lote_id": novo.id, "pedido_id": pedido_id})
        return novo
    except Exception as e:
        log_transaction("entrada_lote", dados, error=str(e))
        log_system_event("entrada_lote_error", {"error": str(e)}, level="error")
        raise


def run_importar_lotes_xlsx(path: str, db_path: str = DB_PATH, hoje: Optional[date] = None) -> Dict[str, Any]:
    """Lê um XLSX de lotes e grava todas as linhas em `lote_estoque`."""
    hoje = hoje or _hoje()
    log_system_event("importar_lotes_start", {"file_path": path})
    log_file_operation("import", path)
    try:
        preparar_banco(db_path)
        rows = load_lotes_from_xlsx(path)
        log_file_operation("import", path, rows_processed=len(rows))
        print_system(f"📄 {len(rows)} linha(s) lidas de {path}")

        lotes = [_novo_lote(r, hoje) for r in rows]
        LoteRepo(db_path).upsert_many(lotes)
        log_database_operation("lote_estoque", "INSERT_MANY", len(lotes), file_path=path)
        for l in lotes:
            log_estoque("entrada", l.medicamento, l.quantidade, l.lote, origem="xlsx")

        pedidos = sorted({r["pedido_id"] for r in rows if r.get("pedido_id")})
        for pid in pedidos:
            _receber_pedido(pid, db_path)

        result = {"arquivo": path, "linhas_inseridas": len(lotes), "pedidos_recebidos": len(pedidos)}
        log_transaction("importar_lotes", {"file": path, "rows_count": len(rows)}, result=result)
        log_system_event("importar_lotes_success", result)
        return result
    except Exception as e:
        log_transaction("importar_lotes", {"file": path}, error=str(e))
        log_system_event("importar_lotes_error", {"file_path": path, "error": str(e)}, level="error")
        raise


def dispensar(
    lote_id: str,
    paciente_id: str,
    dose_id: Optional[str] = None,
    quantidade: int = 1,
    db_path: str = DB_PATH,
    hoje: Optional[date] = None,
) -> LoteEstoque:
    """Baixa ``quantidade`` unidades do lote e devolve o lote atualizado.

    Grava uma dispensação por unidade. Com ``dose_id``, a dose fica vinculada
    ao lote (usado depois pelo caixa para sugerir preço e custo).

    Raises:
        ValueError: quantidade menor que 1.
        EstoqueInsuficiente: lote inativo ou sem saldo.
        RegistroNaoEncontrado: lote ou dose inexistente.
    """
    hoje = hoje or _hoje()
    dados = {"lote_id": lote_id, "paciente_id": paciente_id, "dose_id": dose_id, "quantidade": quantidade}
    log_system_event("dispensar_start", dados)
    try:
        if quantidade < 1:
            raise ValueError(f"Quantidade inválida: {quantidade}")
        preparar_banco(db_path)
        repo = LoteRepo(db_path)
        lote = repo.get(lote_id)
        registros = [
            RegistroDispensacao(
                id=uuid.uuid4().hex,
                data=hoje.isoformat(),
                paciente_id=paciente_id,
                lote_estoque_id=lote_id,
                medicamento=lote.medicamento,
                quantidade=1,
                dose_id=dose_id,
            )
            for _ in range(quantidade)
        ]
        atualizado = repo.debitar(lote_id, registros, dose_id=dose_id)
        log_database_operation("dispensacao", "INSERT_MANY", len(registros), lote_id=lote_id)
        log_estoque("dispensacao", lote.medicamento, quantidade, lote.lote, saldo=atualizado.quantidade)
        if dose_id:
            log_database_operation("dose", "UPDATE", 1, id=dose_id, lote_estoque_id=lote_id)

        log_transaction("dispensar", dados, result={"saldo": atualizado.quantidade})
        return atualizado
    except Exception as e:
        log_transaction("dispensar", dados, error=str(e))
        log_system_event("dispensar_error", {"error": str(e)}, level="error")
        raise


def lotes_a_vencer(janela_dias: int = 30, db_path: str = DB_PATH, hoje: Optional[date] = None) -> List[LoteVencendo]:
    """Lotes ativos com saldo que vencem em até ``janela_dias`` (vencidos inclusos)."""
    hoje = hoje or _hoje()
    preparar_banco(db_path)
    out: List[LoteVencendo] = []
    for l in LoteRepo(db_path).list(somente_ativos=True):
        if l.quantidade <= 0:
            continue
        dias = diferenca_dias(l.validade, hoje)
        if dias is not None and dias <= janela_dias:
            out.append(LoteVencendo(lote=l, dias_para_vencer=dias))
    out.sort(key=lambda v: v.dias_para_vencer)
    return out


def _chave_periodo(data: date, modo: str) -> str:
    if modo == "quarterly":
        return f"{data.year}-Q{(data.month - 1) // 3 + 1}"
    return f"{data.year}-{data.month:02d}"


def matriz_consumo(
    inicio: Optional[str] = None,
    fim: Optional[str] = None,
    modo: str = "monthly",
    db_path: str = DB_PATH,
) -> MatrizConsumo:
    """Matriz medicamento x período com totais por linha, coluna e geral."""
    if modo not in MODOS_CONSUMO:
        raise ValueError(f"Modo desconhecido: {modo} (use {', '.join(MODOS_CONSUMO)})")
    preparar_banco(db_path)
    registros = DispensacaoRepo(db_path).list(inicio, fim)

    linhas = []
    for r in registros:
        d = parse_data(r.data)
        if d is None:
            continue
        linhas.append({"medicamento": r.medicamento, "periodo": _chave_periodo(d, modo), "unidades": int(r.quantidade)})
    if not linhas:
        return MatrizConsumo(modo=modo)

    df = pd.DataFrame(linhas)
    pt = df.pivot_table(
        index="medicamento",
        columns="periodo",
        values="unidades",
        aggfunc="sum",
        fill_value=0,
        margins=True,
        margins_name="Total",
    )
    periodos = [c for c in pt.columns if c != "Total"]
    corpo = pt.drop(index="Total")
    return MatrizConsumo(
        modo=modo,
        periodos=periodos,
        linhas=[
            (str(med), [int(corpo.at[med, p]) for p in periodos], int(corpo.at[med, "Total"]))
            for med in corpo.index
        ],
        totais_periodo=[int(pt.at["Total", p]) for p in periodos],
        total_geral=int(pt.at["Total", "Total"]),
    )
