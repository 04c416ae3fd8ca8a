"""
Políticas de decisão e limiares de exibição.

Este módulo concentra as regras de negócio "de uma linha" usadas pelas
agregações do domínio: quando disparar um pedido de compra, quanto
sugerir comprar e em que faixa uma margem de lucro se encontra. Manter
essas regras aqui evita que limiares numéricos se espalhem pelas telas.
"""

from __future__ import annotations

from typing import Optional


def dispara_compra(estoque_total: Optional[float], demanda: Optional[float]) -> bool:
    """Indica se o estoque não cobre a demanda prevista.

    Regras:
        - Demanda ausente ou zero nunca dispara pedido.
        - Estoque ausente é tratado como zero.
        - ``estoque_total <= demanda`` → dispara.

    Args:
        estoque_total: Soma das quantidades dos lotes ativos do medicamento.
        demanda: Número de doses previstas no horizonte de compra.

    Returns:
        ``True`` quando um pedido de compra deve ser criado.
    """
    try:
        d = float(demanda) if demanda is not None else 0.0
        e = float(estoque_total) if estoque_total is not None else 0.0
    except (TypeError, ValueError):
        return False
    if d <= 0:
        return False
    return e <= d


def quantidade_sugerida(demanda: int, fator: int = 3) -> int:
    """Quantidade sugerida para o pedido de compra.

    A sugestão cobre ``fator`` vezes a demanda prevista no horizonte
    (padrão: 3x a demanda de 10 dias).

    Args:
        demanda: Doses previstas.
        fator: Multiplicador de segurança.

    Returns:
        ``demanda * fator`` (nunca negativo).
    """
    return max(0, int(demanda) * int(fator))


def faixa_margem(margem_pct: Optional[float]) -> str:
    """Classifica a margem estimada de um lote para exibição.

    Regras:
        - ``>= 30`` → ``'good'``
        - ``>= 15`` → ``'fair'``
        - demais valores (ou ausente) → ``'poor'``

    Args:
        margem_pct: Margem líquida em percentual.

    Returns:
        ``'good'``, ``'fair'`` ou ``'poor'``.
    """
    if margem_pct is None:
        return "poor"
    if margem_pct >= 30:
        return "good"
    if margem_pct >= 15:
        return "fair"
    return "poor"
