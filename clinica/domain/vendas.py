# clinica/domain/vendas.py
"""
Caixa: lucratividade por venda, KPIs por período e precificação de lotes.

Fórmulas (por venda):
    lucro_bruto   = preco_venda - custo_unitario
    opex          = comissao + imposto + entrega + outros
    lucro_liquido = lucro_bruto - opex
    margem        = lucro_liquido / preco_venda * 100   (0 se preço = 0)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from clinica.domain.datas import parse_data
from clinica.domain.models import (
    Dose,
    FormaPagamento,
    LoteEstoque,
    Paciente,
    StatusDose,
    Tratamento,
    Venda,
    VendaPendente,
)
from clinica.domain.policies import faixa_margem

PERIODOS = ("month", "3months", "year", "all")

ROTULOS_PERIODO = {
    "month": "Mês",
    "3months": "3 Meses",
    "year": "Ano",
    "all": "Tudo",
}

ROTULOS_FORMA_PAGAMENTO = {
    FormaPagamento.PIX: "PIX",
    FormaPagamento.CARD: "Cartão",
    FormaPagamento.BOLETO: "Boleto",
}


@dataclass(frozen=True)
class Lucro:
    lucro_bruto: float
    opex: float
    lucro_liquido: float
    margem_liquida: float


@dataclass(frozen=True)
class KPIs:
    receita_bruta: float = 0.0
    total_vendas: int = 0
    cmv: float = 0.0
    opex: float = 0.0
    lucro_liquido: float = 0.0
    margem_liquida: float = 0.0


@dataclass(frozen=True)
class ComparativoPeriodo:
    periodo: str
    atual: KPIs
    anterior: Optional[KPIs]
    variacao: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class RelatorioMensal:
    ano: int
    mes: int
    resumo: KPIs
    por_forma_pagamento: Dict[FormaPagamento, Dict[str, float]]
    vendas: List[Venda]


@dataclass(frozen=True)
class PrecoLote:
    lote_id: str
    medicamento: str
    lote: str
    validade: Optional[str]
    quantidade: int
    preco_venda: float
    custo_unitario: float
    lucro_estimado: float
    margem_estimada: float
    faixa: str

    @property
    def margem_fmt(self) -> str:
        return f"{self.margem_estimada:.1f}%"


def calcular_lucro(
    preco_venda: float,
    custo_unitario: float = 0.0,
    comissao: float = 0.0,
    imposto: float = 0.0,
    entrega: float = 0.0,
    outros: float = 0.0,
) -> Lucro:
    preco = float(preco_venda or 0)
    bruto = preco - float(custo_unitario or 0)
    opex = float(comissao or 0) + float(imposto or 0) + float(entrega or 0) + float(outros or 0)
    liquido = bruto - opex
    margem = liquido / preco * 100 if preco > 0 else 0.0
    return Lucro(lucro_bruto=bruto, opex=opex, lucro_liquido=liquido, margem_liquida=margem)


def lucro_venda(v: Venda) -> Lucro:
    return calcular_lucro(v.preco_venda, v.custo_unitario, v.comissao, v.imposto, v.entrega, v.outros)


def kpis(vendas: Iterable[Venda]) -> KPIs:
    vendas = list(vendas)
    receita = sum(float(v.preco_venda or 0) for v in vendas)
    cmv = sum(float(v.custo_unitario or 0) for v in vendas)
    opex = sum(lucro_venda(v).opex for v in vendas)
    liquido = receita - cmv - opex
    margem = liquido / receita * 100 if receita > 0 else 0.0
    return KPIs(
        receita_bruta=receita,
        total_vendas=len(vendas),
        cmv=cmv,
        opex=opex,
        lucro_liquido=liquido,
        margem_liquida=margem,
    )


def variacao(atual: float, anterior: float) -> Optional[float]:
    """Variação percentual; ``None`` quando o período anterior é zero."""
    if not anterior:
        return None
    return (atual - anterior) / anterior * 100


def _inicio_mes(ano: int, mes: int) -> date:
    # normaliza meses fora de 1..12
    ano += (mes - 1) // 12
    mes = (mes - 1) % 12 + 1
    return date(ano, mes, 1)


def intervalo_periodo(periodo: str, hoje: date) -> Tuple[Optional[Tuple[date, date]], Optional[Tuple[date, date]]]:
    """Intervalos (inclusivos) do período atual e do anterior.

    - month: mês corrente até hoje; anterior = mês passado inteiro.
    - 3months: últimos 3 meses (incluindo o corrente); anterior = os 3 antes.
    - year: ano corrente até hoje; anterior = ano passado inteiro.
    - all: sem filtro e sem comparação.
    """
    if periodo == "all":
        return None, None
    if periodo == "month":
        ini = _inicio_mes(hoje.year, hoje.month)
        ant_ini = _inicio_mes(hoje.year, hoje.month - 1)
    elif periodo == "3months":
        ini = _inicio_mes(hoje.year, hoje.month - 2)
        ant_ini = _inicio_mes(hoje.year, hoje.month - 5)
    elif periodo == "year":
        ini = date(hoje.year, 1, 1)
        ant_ini = date(hoje.year - 1, 1, 1)
    else:
        raise ValueError(f"Período desconhecido: {periodo}")
    ant_fim = date.fromordinal(ini.toordinal() - 1)
    return (ini, hoje), (ant_ini, ant_fim)


def filtrar_vendas(vendas: Iterable[Venda], intervalo: Optional[Tuple[date, date]]) -> List[Venda]:
    if intervalo is None:
        return list(vendas)
    ini, fim = intervalo
    out = []
    for v in vendas:
        d = parse_data(v.data_venda)
        if d is not None and ini <= d <= fim:
            out.append(v)
    return out


def comparar_periodos(vendas: Sequence[Venda], periodo: str, hoje: date) -> ComparativoPeriodo:
    atual_int, anterior_int = intervalo_periodo(periodo, hoje)
    atual = kpis(filtrar_vendas(vendas, atual_int))
    if anterior_int is None:
        return ComparativoPeriodo(periodo=periodo, atual=atual, anterior=None)
    anterior = kpis(filtrar_vendas(vendas, anterior_int))
    var = {
        "receita_bruta": variacao(atual.receita_bruta, anterior.receita_bruta),
        "total_vendas": variacao(atual.total_vendas, anterior.total_vendas),
        "lucro_liquido": variacao(atual.lucro_liquido, anterior.lucro_liquido),
    }
    return ComparativoPeriodo(periodo=periodo, atual=atual, anterior=anterior, variacao=var)


def relatorio_mensal(vendas: Iterable[Venda], ano: int, mes: int) -> RelatorioMensal:
    ini = _inicio_mes(ano, mes)
    fim = date.fromordinal(_inicio_mes(ano, mes + 1).toordinal() - 1)
    do_mes = sorted(filtrar_vendas(vendas, (ini, fim)), key=lambda v: parse_data(v.data_venda))
    por_forma: Dict[FormaPagamento, Dict[str, float]] = {}
    for v in do_mes:
        item = por_forma.setdefault(v.forma_pagamento, {"count": 0, "total": 0.0})
        item["count"] += 1
        item["total"] += float(v.preco_venda or 0)
    return RelatorioMensal(ano=ano, mes=mes, resumo=kpis(do_mes), por_forma_pagamento=por_forma, vendas=do_mes)


def precificacao_lotes(
    lotes: Iterable[LoteEstoque], ordenar_por: str = "margin", ordem: str = "desc"
) -> List[PrecoLote]:
    """Lucro e margem estimados por lote (apenas lotes com preço e custo)."""
    out: List[PrecoLote] = []
    for l in lotes:
        if l.preco_venda is None or l.custo_unitario is None:
            continue
        lucro = calcular_lucro(l.preco_venda, l.custo_unitario, l.comissao, l.imposto, l.entrega, l.outros)
        margem = round(lucro.margem_liquida, 1)
        out.append(PrecoLote(
            lote_id=l.id,
            medicamento=l.medicamento,
            lote=l.lote,
            validade=l.validade,
            quantidade=l.quantidade,
            preco_venda=float(l.preco_venda),
            custo_unitario=float(l.custo_unitario),
            lucro_estimado=lucro.lucro_liquido,
            margem_estimada=margem,
            faixa=faixa_margem(margem),
        ))

    chaves = {
        "margin": lambda p: p.margem_estimada,
        "profit": lambda p: p.lucro_estimado,
        "medication": lambda p: p.medicamento.casefold(),
    }
    if ordenar_por not in chaves:
        raise ValueError(f"Ordenação desconhecida: {ordenar_por}")
    out.sort(key=chaves[ordenar_por], reverse=(ordem == "desc"))
    return out


def vendas_pendentes(
    doses: Iterable[Dose],
    vendas: Iterable[Venda],
    lotes: Iterable[LoteEstoque],
    tratamentos: Iterable[Tratamento] = (),
    pacientes: Iterable[Paciente] = (),
) -> List[VendaPendente]:
    """Doses aplicadas sem venda registrada, com preços padrão do lote vinculado."""
    vendidas = {v.dose_id for v in vendas}
    por_lote = {l.id: l for l in lotes}
    por_tratamento = {t.id: t for t in tratamentos}
    por_paciente = {p.id: p for p in pacientes}

    out: List[VendaPendente] = []
    for d in doses:
        if d.status != StatusDose.APPLIED or d.id in vendidas:
            continue
        lote = por_lote.get(d.lote_estoque_id) if d.lote_estoque_id else None
        t = por_tratamento.get(d.tratamento_id)
        paciente = por_paciente.get(t.paciente_id) if t else None
        out.append(VendaPendente(
            dose_id=d.id,
            paciente_id=paciente.id if paciente else (t.paciente_id if t else None),
            paciente_nome=paciente.nome_completo if paciente else "-",
            medicamento=lote.medicamento if lote else "-",
            data_aplicacao=d.data_aplicacao,
            preco_venda=float(lote.preco_venda or 0) if lote else 0.0,
            custo_unitario=float(lote.custo_unitario or 0) if lote else 0.0,
            comissao=lote.comissao if lote else 0.0,
            imposto=lote.imposto if lote else 0.0,
            entrega=lote.entrega if lote else 0.0,
            outros=lote.outros if lote else 0.0,
        ))
    out.sort(key=lambda p: parse_data(p.data_aplicacao) or date.min)
    return out
