# clinica/domain/projecao.py
"""
Projeção da próxima dose de um tratamento.

Regras:
- A referência é a última dose APLICADA (maior data de aplicação; empate
  resolvido pelo maior ciclo e, em seguida, pelo maior id).
- Próxima data = aplicação + frequência do protocolo; próximo ciclo = ciclo + 1.
- Sem doses aplicadas, a próxima dose é o início do tratamento (ciclo 1).
- Projeções com 60 dias ou mais de atraso são descartadas.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from clinica.config import DEFAULTS
from clinica.domain.datas import diferenca_dias, parse_data
from clinica.domain.models import Dose, Protocolo, StatusDose, Tratamento


@dataclass(frozen=True)
class EventoProjetado:
    data: date
    ciclo: int
    atrasada: bool
    diff_dias: int


def chave_recencia(d: Dose) -> Tuple[date, int, str]:
    return (parse_data(d.data_aplicacao) or date.min, d.ciclo or 0, str(d.id))


def ultima_dose_aplicada(doses: Iterable[Dose]) -> Optional[Dose]:
    aplicadas = [d for d in doses if d.status == StatusDose.APPLIED and parse_data(d.data_aplicacao)]
    if not aplicadas:
        return None
    return max(aplicadas, key=chave_recencia)


def doses_do_tratamento(doses: Iterable[Dose], tratamento_id: str) -> List[Dose]:
    return [d for d in doses if d.tratamento_id == tratamento_id]


def frequencias_por_tratamento(
    tratamentos: Iterable[Tratamento], protocolos: Iterable[Protocolo]
) -> Dict[str, int]:
    """Mapa tratamento_id -> frequência (dias) do protocolo associado."""
    por_id = {p.id: p for p in protocolos}
    out: Dict[str, int] = {}
    for t in tratamentos:
        p = por_id.get(t.protocolo_id)
        if p is not None and p.frequencia_dias:
            out[t.id] = int(p.frequencia_dias)
    return out


def projetar_proxima_dose(
    tratamento: Tratamento,
    protocolo: Protocolo,
    doses: Iterable[Dose],
    hoje: date,
    limite_atraso_dias: int = DEFAULTS.limite_atraso_dias,
) -> Optional[EventoProjetado]:
    """Projeta a próxima dose do ``tratamento``.

    ``doses`` pode conter doses de outros tratamentos; apenas as do
    tratamento informado são consideradas. Retorna ``None`` quando a data
    não pode ser determinada ou quando o atraso é de ``limite_atraso_dias``
    dias ou mais.
    """
    proprias = doses_do_tratamento(doses, tratamento.id)
    ultima = ultima_dose_aplicada(proprias)
    if ultima is not None:
        proxima = ultima.proxima_data_calculada(protocolo.frequencia_dias)
        ciclo = (ultima.ciclo or 0) + 1
    else:
        proxima = parse_data(tratamento.data_inicio)
        ciclo = 1

    diff = diferenca_dias(proxima, hoje)
    if proxima is None or diff is None:
        return None
    if diff <= -limite_atraso_dias:
        return None
    return EventoProjetado(data=proxima, ciclo=ciclo, atrasada=diff < 0, diff_dias=diff)


def ciclo_e_ultima_antes_consulta(tratamento: Tratamento, doses: Iterable[Dose]) -> Tuple[int, bool]:
    """Número do próximo ciclo a registrar e se ele fecha o bloco antes da consulta."""
    proximo = len(doses_do_tratamento(doses, tratamento.id)) + 1
    planejadas = tratamento.doses_planejadas_antes_consulta or 0
    return proximo, planejadas > 0 and proximo == planejadas
