# clinica/domain/pendencias.py
"""
Agregações de pendências operacionais sobre a lista completa de doses.

- doses_atrasadas: última dose aplicada de cada tratamento cuja próxima data já passou.
- pesquisas_pendentes: doses de enfermagem com pesquisa em aberto.
- consultas_proximas: retornos a agendar ou nos próximos 30 dias.
- janela_atividade: lista de trabalho (hoje ± 7 dias + pendências antigas).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping

from clinica.config import DEFAULTS
from clinica.domain.datas import diferenca_dias, parse_data
from clinica.domain.models import Dose, StatusDose, StatusPagamento, StatusPesquisa
from clinica.domain.projecao import chave_recencia


@dataclass(frozen=True)
class DoseAtrasada:
    dose: Dose
    proxima_data: date
    dias_atraso: int


def doses_atrasadas(doses: Iterable[Dose], frequencias: Mapping[str, int], hoje: date) -> List[DoseAtrasada]:
    """Tratamentos em atraso, ordenados do maior atraso para o menor.

    ``frequencias`` mapeia tratamento_id -> frequência em dias (ver
    ``projecao.frequencias_por_tratamento``); tratamentos sem frequência
    conhecida são ignorados.
    """
    ultimas: Dict[str, Dose] = {}
    for d in doses:
        if d.status != StatusDose.APPLIED or parse_data(d.data_aplicacao) is None:
            continue
        atual = ultimas.get(d.tratamento_id)
        if atual is None or chave_recencia(d) > chave_recencia(atual):
            ultimas[d.tratamento_id] = d

    out: List[DoseAtrasada] = []
    for tid, d in ultimas.items():
        freq = frequencias.get(tid)
        if not freq:
            continue
        proxima = d.proxima_data_calculada(freq)
        diff = diferenca_dias(proxima, hoje)
        if diff is not None and diff < 0:
            out.append(DoseAtrasada(dose=d, proxima_data=proxima, dias_atraso=-diff))
    out.sort(key=lambda x: x.dias_atraso, reverse=True)
    return out


def pesquisas_pendentes(doses: Iterable[Dose]) -> List[Dose]:
    abertas = {StatusPesquisa.WAITING, StatusPesquisa.SENT, StatusPesquisa.NOT_SENT}
    return [
        d for d in doses
        if d.enfermagem and (d.status_pesquisa in abertas or not d.nota_pesquisa)
    ]


def consultas_proximas(
    doses: Iterable[Dose], hoje: date, janela_dias: int = DEFAULTS.janela_consultas_dias
) -> List[Dose]:
    """Doses que fecham o bloco pré-consulta: sem data (a agendar) ou consulta em até ``janela_dias``."""
    out = []
    for d in doses:
        if not d.ultima_antes_consulta:
            continue
        if parse_data(d.data_consulta) is None:
            out.append(d)
            continue
        diff = diferenca_dias(d.data_consulta, hoje)
        if 0 <= diff <= janela_dias:
            out.append(d)
    # Sem data primeiro, depois por data crescente
    out.sort(key=lambda d: (parse_data(d.data_consulta) is not None, parse_data(d.data_consulta) or date.min))
    return out


def janela_atividade(
    doses: Iterable[Dose], hoje: date, dias: int = DEFAULTS.janela_atividade_dias
) -> List[Dose]:
    """Lista de trabalho operacional.

    Entram as doses dentro de ``hoje ± dias`` e as doses anteriores à janela
    que ainda estão pendentes ou sem pagamento. Doses já aplicadas e pagas
    nunca entram. Ordenação crescente por data de aplicação; doses sem
    data válida ficam de fora.
    """
    out = []
    for d in doses:
        if d.status == StatusDose.APPLIED and d.status_pagamento == StatusPagamento.PAID:
            continue
        diff = diferenca_dias(d.data_aplicacao, hoje)
        if diff is None:
            continue
        na_janela = -dias <= diff <= dias
        antiga = diff < -dias
        pendente = d.status == StatusDose.PENDING or d.status_pagamento != StatusPagamento.PAID
        if na_janela or (antiga and pendente):
            out.append(d)
    out.sort(key=lambda d: parse_data(d.data_aplicacao))
    return out


def doses_nao_aceitas(doses: Iterable[Dose]) -> List[Dose]:
    return [d for d in doses if d.status == StatusDose.NOT_ACCEPTED]
