# clinica/domain/nps.py
"""
Net Promoter Score das pesquisas de enfermagem.

Duas variantes, pelo local de uso:
- ``nps_enfermagem``: tela de enfermagem, janela de 30/60 dias, classifica
  promotores (>= 9), neutros (7-8) e detratores (<= 6).
- ``nps_painel``: indicador do painel, sem janela, considera apenas notas > 0.

Em ambas, NPS = round((promotores - detratores) / total * 100). Sem respostas,
o resultado é ``score=None`` com ``sem_dados=True``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from math import floor
from typing import Iterable, List, Optional

from clinica.config import DEFAULTS
from clinica.domain.datas import parse_data, somar_dias
from clinica.domain.models import Dose, StatusPesquisa


@dataclass(frozen=True)
class NPSResultado:
    score: Optional[int]
    total: int
    promotores: int = 0
    neutros: int = 0
    detratores: int = 0

    @property
    def sem_dados(self) -> bool:
        return self.total == 0


def _arredonda(x: float) -> int:
    # meio arredonda para cima (+0.5 -> 1, -12.5 -> -12)
    return int(floor(x + 0.5))


def calcular_nps(notas: Iterable[int]) -> NPSResultado:
    notas = list(notas)
    total = len(notas)
    if total == 0:
        return NPSResultado(score=None, total=0)
    promotores = sum(1 for n in notas if n >= 9)
    detratores = sum(1 for n in notas if n <= 6)
    neutros = total - promotores - detratores
    score = _arredonda((promotores - detratores) / total * 100)
    return NPSResultado(
        score=score, total=total, promotores=promotores, neutros=neutros, detratores=detratores
    )


def nps_enfermagem(
    doses: Iterable[Dose], hoje: date, janela_dias: int = DEFAULTS.janela_nps_dias
) -> NPSResultado:
    corte = somar_dias(hoje, -janela_dias)
    notas: List[int] = []
    for d in doses:
        if d.status_pesquisa != StatusPesquisa.ANSWERED or d.nota_pesquisa is None:
            continue
        aplicada = parse_data(d.data_aplicacao)
        if aplicada is None or aplicada < corte:
            continue
        notas.append(int(d.nota_pesquisa))
    return calcular_nps(notas)


def nps_painel(doses: Iterable[Dose]) -> NPSResultado:
    notas = [
        int(d.nota_pesquisa) for d in doses
        if d.status_pesquisa == StatusPesquisa.ANSWERED and d.nota_pesquisa is not None and d.nota_pesquisa > 0
    ]
    return calcular_nps(notas)
