# clinica/domain/compras.py
"""
Gatilho de compras: prevê o consumo dos próximos dias a partir das doses
projetadas e sugere pedidos quando o estoque não cobre a demanda.

Heurística gulosa, sem estado e idempotente por chamada: rodar duas vezes
seguidas não cria um segundo pedido PENDING para o mesmo medicamento.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Sequence

from clinica.config import DEFAULTS
from clinica.domain.errors import TransicaoInvalida
from clinica.domain.models import (
    Dose,
    LoteEstoque,
    PedidoCompra,
    Protocolo,
    StatusPedido,
    StatusTratamento,
    Tratamento,
)
from clinica.domain.policies import dispara_compra, quantidade_sugerida
from clinica.domain.projecao import projetar_proxima_dose


@dataclass(frozen=True)
class ResultadoGatilho:
    pedidos: List[PedidoCompra]
    criados: List[PedidoCompra] = field(default_factory=list)
    mensagem: str = ""


@dataclass(frozen=True)
class EstoqueMedicamento:
    medicamento: str
    total: int
    lotes: List[LoteEstoque]


# Transições permitidas: PENDING -> ORDERED -> RECEIVED
TRANSICOES = {
    StatusPedido.PENDING: StatusPedido.ORDERED,
    StatusPedido.ORDERED: StatusPedido.RECEIVED,
}


def chave_medicamento(nome: str) -> str:
    """Normaliza o nome do medicamento para comparação (caixa e espaços)."""
    return " ".join((nome or "").split()).casefold()


def demanda_prevista(
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    doses: Iterable[Dose],
    hoje: date,
    horizonte_dias: int = DEFAULTS.horizonte_compra_dias,
) -> Dict[str, int]:
    """Doses previstas por medicamento nos próximos ``horizonte_dias`` dias.

    A chave do resultado é o nome do medicamento como aparece no primeiro
    protocolo encontrado; nomes equivalentes (caixa/espaços) somam juntos.
    """
    por_protocolo = {p.id: p for p in protocolos}
    doses = list(doses)
    nomes: Dict[str, str] = {}
    demanda: Dict[str, int] = {}
    for t in tratamentos:
        if t.status != StatusTratamento.ONGOING:
            continue
        proto = por_protocolo.get(t.protocolo_id)
        if proto is None or not proto.is_medicamentoso or not proto.medicamento.strip():
            continue
        ev = projetar_proxima_dose(t, proto, doses, hoje)
        if ev is None or not (0 <= ev.diff_dias <= horizonte_dias):
            continue
        chave = chave_medicamento(proto.medicamento)
        nome = nomes.setdefault(chave, proto.medicamento.strip())
        demanda[nome] = demanda.get(nome, 0) + 1
    return demanda


def estoque_total(lotes: Iterable[LoteEstoque], medicamento: str) -> int:
    chave = chave_medicamento(medicamento)
    return sum(
        int(l.quantidade or 0) for l in lotes
        if l.ativo and chave_medicamento(l.medicamento) == chave
    )


def agrupar_estoque(lotes: Iterable[LoteEstoque], busca: str = "") -> List[EstoqueMedicamento]:
    """Lotes agrupados por medicamento, com total, filtrados por substring do nome."""
    grupos: Dict[str, List[LoteEstoque]] = {}
    for l in lotes:
        grupos.setdefault(l.medicamento, []).append(l)
    termo = busca.casefold()
    return [
        EstoqueMedicamento(medicamento=nome, total=sum(int(l.quantidade or 0) for l in itens), lotes=itens)
        for nome, itens in grupos.items()
        if termo in nome.casefold()
    ]


def verificar_gatilhos(
    demanda: Mapping[str, int],
    lotes: Sequence[LoteEstoque],
    pedidos: Sequence[PedidoCompra],
    hoje: date,
    fator: int = DEFAULTS.fator_compra,
    novo_id: Callable[[], str] = lambda: uuid.uuid4().hex,
) -> ResultadoGatilho:
    """Cria pedidos para medicamentos cujo estoque não cobre a demanda.

    Pedidos novos entram no início da lista; pedidos existentes nunca são
    alterados. Medicamentos com pedido PENDING já aberto são ignorados.
    """
    pendentes = {chave_medicamento(p.medicamento) for p in pedidos if p.status == StatusPedido.PENDING}
    criados: List[PedidoCompra] = []
    for medicamento, qtd in demanda.items():
        if not qtd:
            continue
        chave = chave_medicamento(medicamento)
        if chave in pendentes:
            continue
        total = estoque_total(lotes, medicamento)
        if not dispara_compra(total, qtd):
            continue
        criados.append(PedidoCompra(
            id=novo_id(),
            medicamento=medicamento,
            criado_em=hoje.isoformat(),
            consumo_previsto_10d=qtd,
            estoque_atual=total,
            status=StatusPedido.PENDING,
            quantidade_sugerida=quantidade_sugerida(qtd, fator),
        ))
        pendentes.add(chave)

    if criados:
        mensagem = f"{len(criados)} pedido(s) de compra gerado(s)"
    else:
        mensagem = "Nenhum pedido de compra necessário"
    return ResultadoGatilho(pedidos=criados + list(pedidos), criados=criados, mensagem=mensagem)


def avancar_status(pedido: PedidoCompra, novo_status: StatusPedido) -> PedidoCompra:
    """Retorna uma cópia do pedido no novo status (somente PENDING -> ORDERED -> RECEIVED)."""
    novo_status = StatusPedido(novo_status)
    if TRANSICOES.get(pedido.status) != novo_status:
        raise TransicaoInvalida(
            f"Transição inválida do pedido {pedido.id}: {pedido.status.value} -> {novo_status.value}"
        )
    return replace(pedido, status=novo_status)
