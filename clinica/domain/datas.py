# clinica/domain/datas.py
"""
Aritmética de datas de calendário.

Todas as funções trabalham com a data "limpa" (sem horário): um valor
'2024-01-01T23:30:00' e um valor '2024-01-01' representam o mesmo dia.
Nenhuma função deste módulo levanta exceção para datas inválidas; elas
retornam ``None`` e o chamador decide o que exibir (ver ``formatar_data``).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

DataLike = Union[str, date, datetime, None]

_FORMATOS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y")


def hoje() -> date:
    return date.today()


def parse_data(valor: DataLike) -> Optional[date]:
    """Converte ``valor`` para ``date`` ignorando horário e fuso.

    Aceita ``date``, ``datetime``, strings ISO (com ou sem horário, com ``Z``
    ou offset) e o formato brasileiro ``DD/MM/AAAA``. Retorna ``None`` quando
    não for possível interpretar o valor.
    """
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    s = str(valor).strip()
    if not s:
        return None
    # Parte da data de um timestamp ISO: evita deslocamento de fuso
    if "T" in s:
        s = s.split("T", 1)[0]
    elif " " in s:
        s = s.split(" ", 1)[0]
    for fmt in _FORMATOS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def somar_dias(data: DataLike, dias: int) -> Optional[date]:
    """Retorna uma nova data ``dias`` após ``data`` (o valor de entrada não é alterado)."""
    d = parse_data(data)
    if d is None:
        return None
    try:
        return d + timedelta(days=int(dias))
    except (TypeError, ValueError, OverflowError):
        return None


def diferenca_dias(futura: DataLike, passada: DataLike) -> Optional[int]:
    """Diferença em dias inteiros entre duas datas de calendário.

    Positiva quando ``futura`` é posterior a ``passada``. Usada tanto para
    "dias em atraso" (negativo) quanto para "faltam N dias" (positivo).
    """
    f = parse_data(futura)
    p = parse_data(passada)
    if f is None or p is None:
        return None
    return (f - p).days


def formatar_data(valor: DataLike) -> str:
    """Formata como DD/MM/AAAA; datas ausentes ou inválidas viram '-'."""
    d = parse_data(valor)
    if d is None:
        return "-"
    return d.strftime("%d/%m/%Y")


def to_iso(valor: DataLike) -> Optional[str]:
    d = parse_data(valor)
    return d.isoformat() if d else None
