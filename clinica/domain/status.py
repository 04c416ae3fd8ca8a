# clinica/domain/status.py
"""
Classificação de status para exibição.

Cada status do domínio é mapeado para uma categoria de apresentação
(``sucesso``, ``info``, ``neutro``, ``alerta``, ``perigo``, ``padrao``) e
para um rótulo em português. As interfaces (CLI/TUI) convertem a categoria
em estilo do Rich via ``ESTILOS``.
"""

from __future__ import annotations

from typing import Optional

from clinica.domain.models import (
    StatusDose,
    StatusPagamento,
    StatusPesquisa,
    StatusPedido,
    StatusTratamento,
)

SUCESSO = "sucesso"
INFO = "info"
NEUTRO = "neutro"
ALERTA = "alerta"
PERIGO = "perigo"
PADRAO = "padrao"

# Categoria -> estilo Rich
ESTILOS = {
    SUCESSO: "green",
    INFO: "blue",
    NEUTRO: "bright_black",
    ALERTA: "dark_orange",
    PERIGO: "red",
    PADRAO: "white",
}

ROTULOS_DOSE = {
    StatusDose.PENDING: "Pendente",
    StatusDose.APPLIED: "Aplicada",
    StatusDose.NOT_ACCEPTED: "Não Realizada",
}

ROTULOS_PAGAMENTO = {
    StatusPagamento.WAITING_PIX: "Aguardando PIX",
    StatusPagamento.WAITING_CARD: "Aguardando Cartão",
    StatusPagamento.WAITING_BOLETO: "Aguardando Boleto",
    StatusPagamento.PAID: "PAGO",
    StatusPagamento.WAITING_DELIVERY: "AGUARDANDO ENTREGA",
}

ROTULOS_PESQUISA = {
    StatusPesquisa.WAITING: "Aguardando",
    StatusPesquisa.SENT: "Enviado",
    StatusPesquisa.ANSWERED: "Respondido",
    StatusPesquisa.NOT_SENT: "Não Enviado",
}

ROTULOS_TRATAMENTO = {
    StatusTratamento.ONGOING: "Em andamento",
    StatusTratamento.FINISHED: "Encerrado",
    StatusTratamento.REFUSED: "Recusado",
    StatusTratamento.EXTERNAL: "Medicamento Externo",
    StatusTratamento.SUSPENDED: "Suspenso",
}

ROTULOS_PEDIDO = {
    StatusPedido.PENDING: "Pendente",
    StatusPedido.ORDERED: "Pedido feito",
    StatusPedido.RECEIVED: "Recebido",
}

_CATEGORIA_DOSE_PAGAMENTO = {
    StatusDose.APPLIED: SUCESSO,
    StatusDose.PENDING: INFO,
    StatusDose.NOT_ACCEPTED: NEUTRO,
    StatusPagamento.PAID: SUCESSO,
    StatusPagamento.WAITING_DELIVERY: ALERTA,
    StatusPagamento.WAITING_PIX: NEUTRO,
    StatusPagamento.WAITING_CARD: NEUTRO,
    StatusPagamento.WAITING_BOLETO: NEUTRO,
}

_CATEGORIA_TRATAMENTO = {
    StatusTratamento.ONGOING: SUCESSO,
    StatusTratamento.FINISHED: NEUTRO,
    StatusTratamento.REFUSED: PERIGO,
    StatusTratamento.SUSPENDED: ALERTA,
}

# Paleta fixa de cores de diagnóstico (nomes de cor do Rich)
PALETA_DIAGNOSTICOS = (
    "magenta",
    "blue",
    "green",
    "purple",
    "yellow",
    "slate_blue1",
    "cyan",
    "orchid",
    "chartreuse3",
    "dark_orange",
    "dark_cyan",
    "medium_purple",
    "sky_blue1",
    "hot_pink",
    "gold1",
)


def categoria_status(status) -> str:
    """Categoria de apresentação de um status de dose ou de pagamento."""
    return _CATEGORIA_DOSE_PAGAMENTO.get(status, PADRAO)


def categoria_tratamento(status: Optional[StatusTratamento]) -> str:
    return _CATEGORIA_TRATAMENTO.get(status, PADRAO)


def rotulo(status) -> str:
    """Rótulo em português para qualquer enum de status (ou '-' se ausente)."""
    if status is None:
        return "-"
    for tabela in (ROTULOS_DOSE, ROTULOS_PAGAMENTO, ROTULOS_PESQUISA, ROTULOS_TRATAMENTO, ROTULOS_PEDIDO):
        if status in tabela:
            return tabela[status]
    return str(getattr(status, "value", status))


def _int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n >= 0x80000000 else n


def hash_nome(nome: str) -> int:
    """Hash de string em 32 bits (h = c + (h << 5) - h) sobre unidades UTF-16."""
    h = 0
    dados = nome.encode("utf-16-le")
    for i in range(0, len(dados), 2):
        c = dados[i] | (dados[i + 1] << 8)
        h = c + (_int32(_int32(h) << 5) - h)
    return h


def cor_diagnostico(nome: Optional[str], cor: Optional[str] = None) -> str:
    """Cor determinística do diagnóstico; uma cor explícita sempre vence."""
    if cor:
        return cor
    if not nome:
        return PALETA_DIAGNOSTICOS[0]
    return PALETA_DIAGNOSTICOS[abs(hash_nome(nome)) % len(PALETA_DIAGNOSTICOS)]


def categoria_nps(score: Optional[int]) -> str:
    """Faixa do NPS: >=70 bom, >=30 regular, abaixo disso ruim."""
    if score is None:
        return NEUTRO
    if score >= 70:
        return SUCESSO
    if score >= 30:
        return ALERTA
    return PERIGO
