# clinica/usecases/caixa.py
"""
UC: Caixa (vendas e lucratividade).
- run_registrar_venda(): registra a venda de uma dose aplicada.
- run_kpis(): indicadores do período com comparação ao período anterior.
- run_relatorio_mensal(): resumo, totais por forma de pagamento e vendas do mês.
- run_precificacao(): lucro/margem estimados por lote.
- run_vendas_pendentes(): doses aplicadas ainda sem venda.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from clinica.config import DB_PATH
from clinica.domain.datas import hoje as _hoje
from clinica.domain.models import FormaPagamento, StatusDose, Venda, VendaPendente
from clinica.domain.vendas import (
    ComparativoPeriodo,
    PrecoLote,
    RelatorioMensal,
    calcular_lucro,
    comparar_periodos,
    precificacao_lotes,
    relatorio_mensal,
    vendas_pendentes,
)
from clinica.infra.logger import log_database_operation, log_dose, log_system_event, log_transaction
from clinica.infra.repositories import DoseRepo, LoteRepo, TratamentoRepo, VendaRepo
from clinica.usecases.painel import carregar_snapshot, preparar_banco


def _escolher(valor: Optional[float], padrao: Optional[float]) -> float:
    return float(valor if valor is not None else (padrao or 0.0))


def run_registrar_venda(
    dose_id: str,
    preco_venda: Optional[float] = None,
    custo_unitario: Optional[float] = None,
    comissao: Optional[float] = None,
    imposto: Optional[float] = None,
    entrega: Optional[float] = None,
    outros: Optional[float] = None,
    forma_pagamento: FormaPagamento = FormaPagamento.PIX,
    db_path: str = DB_PATH,
    hoje: Optional[date] = None,
) -> Venda:
    """Registra a venda da dose. Valores omitidos vêm do lote vinculado à dose.

    Raises:
        RegistroNaoEncontrado: dose inexistente.
        ValueError: dose não aplicada, valor negativo ou dose já vendida.
    """
    hoje = hoje or _hoje()
    dados = {"dose_id": dose_id, "preco_venda": preco_venda, "forma_pagamento": str(forma_pagamento)}
    log_system_event("registrar_venda_start", dados)
    try:
        preparar_banco(db_path)
        dose = DoseRepo(db_path).get(dose_id)
        if dose.status != StatusDose.APPLIED:
            raise ValueError(f"Dose {dose_id} ainda não foi aplicada")

        lote = None
        if dose.lote_estoque_id:
            lote = next((l for l in LoteRepo(db_path).list() if l.id == dose.lote_estoque_id), None)
        tratamento = next((t for t in TratamentoRepo(db_path).list() if t.id == dose.tratamento_id), None)

        venda = Venda(
            id=uuid.uuid4().hex,
            dose_id=dose_id,
            data_venda=hoje.isoformat(),
            preco_venda=_escolher(preco_venda, lote.preco_venda if lote else None),
            custo_unitario=_escolher(custo_unitario, lote.custo_unitario if lote else None),
            comissao=_escolher(comissao, lote.comissao if lote else None),
            imposto=_escolher(imposto, lote.imposto if lote else None),
            entrega=_escolher(entrega, lote.entrega if lote else None),
            outros=_escolher(outros, lote.outros if lote else None),
            forma_pagamento=forma_pagamento,
            medicamento=lote.medicamento if lote else None,
            paciente_id=tratamento.paciente_id if tratamento else None,
        )
        valores = (venda.preco_venda, venda.custo_unitario, venda.comissao, venda.imposto, venda.entrega, venda.outros)
        if any(v < 0 for v in valores):
            raise ValueError("Valores da venda não podem ser negativos")

        VendaRepo(db_path).insert(venda)
        log_database_operation("venda", "INSERT", 1, id=venda.id, dose_id=dose_id)
        log_dose("venda", dose_id, dose.tratamento_id, preco=venda.preco_venda)

        lucro = calcular_lucro(*valores)
        log_transaction("registrar_venda", dados, result={"venda_id": venda.id, "lucro_liquido": lucro.lucro_liquido})
        return venda
    except Exception as e:
        log_transaction("registrar_venda", dados, error=str(e))
        log_system_event("registrar_venda_error", {"error": str(e)}, level="error")
        raise


def run_kpis(periodo: str = "month", db_path: str = DB_PATH, hoje: Optional[date] = None) -> ComparativoPeriodo:
    hoje = hoje or _hoje()
    preparar_banco(db_path)
    return comparar_periodos(VendaRepo(db_path).list(), periodo, hoje)


def run_relatorio_mensal(ano: int, mes: int, db_path: str = DB_PATH) -> RelatorioMensal:
    if not 1 <= mes <= 12:
        raise ValueError(f"Mês inválido: {mes}")
    preparar_banco(db_path)
    return relatorio_mensal(VendaRepo(db_path).list(), ano, mes)


def run_precificacao(ordenar_por: str = "margin", ordem: str = "desc", db_path: str = DB_PATH) -> List[PrecoLote]:
    preparar_banco(db_path)
    return precificacao_lotes(LoteRepo(db_path).list(somente_ativos=True), ordenar_por, ordem)


def run_vendas_pendentes(db_path: str = DB_PATH) -> List[VendaPendente]:
    snap = carregar_snapshot(db_path)
    return vendas_pendentes(snap.doses, snap.vendas, snap.lotes, snap.tratamentos, snap.pacientes)
