from datetime import date, datetime

import pytest

from clinica.domain.datas import diferenca_dias, formatar_data, parse_data, somar_dias, to_iso
from clinica.domain.models import StatusDose, StatusPagamento, StatusPedido, StatusTratamento
from clinica.domain.status import (
    ALERTA,
    NEUTRO,
    PADRAO,
    PALETA_DIAGNOSTICOS,
    PERIGO,
    SUCESSO,
    categoria_nps,
    categoria_status,
    categoria_tratamento,
    cor_diagnostico,
    hash_nome,
    rotulo,
)


@pytest.mark.parametrize("valor,esperado", [
    ("2024-01-01", date(2024, 1, 1)),
    ("2024-01-01T23:30:00Z", date(2024, 1, 1)),
    ("2024-01-01T01:00:00-03:00", date(2024, 1, 1)),
    ("2024-01-01 08:00:00", date(2024, 1, 1)),
    ("05/03/2024", date(2024, 3, 5)),
    (datetime(2024, 2, 29, 22, 0), date(2024, 2, 29)),
    (date(2024, 2, 29), date(2024, 2, 29)),
    ("", None),
    ("abc", None),
    (None, None),
])
def test_parse_data(valor, esperado):
    assert parse_data(valor) == esperado


def test_somar_dias_nao_altera_entrada_e_tolera_invalidos():
    base = date(2024, 1, 31)
    assert somar_dias(base, 1) == date(2024, 2, 1)
    assert base == date(2024, 1, 31)
    assert somar_dias("2024-02-28", 1) == date(2024, 2, 29)
    assert somar_dias("2024-03-01", -1) == date(2024, 2, 29)
    assert somar_dias(None, 3) is None
    assert somar_dias("xx", 3) is None


def test_diferenca_dias_sinal():
    assert diferenca_dias("2024-01-10", "2024-01-01") == 9
    assert diferenca_dias("2024-01-01", "2024-01-10") == -9
    # horário não interfere
    assert diferenca_dias("2024-01-02T00:30:00Z", "2024-01-01T23:59:00Z") == 1
    assert diferenca_dias(None, "2024-01-01") is None


def test_formatar_data_e_iso():
    assert formatar_data("2024-03-05") == "05/03/2024"
    assert formatar_data(None) == "-"
    assert formatar_data("invalida") == "-"
    assert to_iso("05/03/2024") == "2024-03-05"
    assert to_iso("") is None


def test_rotulos():
    assert rotulo(StatusDose.APPLIED) == "Aplicada"
    assert rotulo(StatusDose.NOT_ACCEPTED) == "Não Realizada"
    assert rotulo(StatusPagamento.PAID) == "PAGO"
    assert rotulo(StatusTratamento.EXTERNAL) == "Medicamento Externo"
    assert rotulo(StatusPedido.ORDERED) == "Pedido feito"
    assert rotulo(None) == "-"


def test_categorias_de_status():
    assert categoria_status(StatusDose.APPLIED) == SUCESSO
    assert categoria_status(StatusPagamento.WAITING_DELIVERY) == ALERTA
    assert categoria_status(StatusPagamento.WAITING_PIX) == NEUTRO
    assert categoria_status(None) == PADRAO
    assert categoria_tratamento(StatusTratamento.REFUSED) == PERIGO
    assert categoria_tratamento(StatusTratamento.EXTERNAL) == PADRAO


def test_hash_nome_compativel_com_32_bits():
    assert hash_nome("") == 0
    assert hash_nome("a") == 97
    assert hash_nome("ab") == 97 * 31 + 98
    longo = "Transtorno do Espectro Autista" * 3
    assert hash_nome(longo) == hash_nome(longo)


def test_cor_diagnostico_deterministica():
    assert cor_diagnostico("TEA", "#123456") == "#123456"
    assert cor_diagnostico(None) == PALETA_DIAGNOSTICOS[0]
    cor = cor_diagnostico("TEA")
    assert cor in PALETA_DIAGNOSTICOS
    assert cor_diagnostico("TEA") == cor


@pytest.mark.parametrize("score,categoria", [
    (100, SUCESSO), (70, SUCESSO), (69, ALERTA), (30, ALERTA), (29, PERIGO), (-40, PERIGO), (None, NEUTRO),
])
def test_categoria_nps(score, categoria):
    assert categoria_nps(score) == categoria
