import json

import pytest

from clinica.adapters.parsers import (
    parse_bool,
    parse_contato_dispensado,
    parse_dose,
    parse_enum,
    parse_lote,
    parse_medicamento,
    parse_paciente,
    parse_protocolo,
    parse_tratamento,
    parse_valor,
)
from clinica.domain.models import (
    CategoriaProtocolo,
    ClassificacaoFeedback,
    FormaPagamento,
    StatusDose,
    StatusPagamento,
    StatusPesquisa,
    StatusTratamento,
    Urgencia,
)


@pytest.mark.parametrize("cls,valor,esperado", [
    (StatusDose, "APPLIED", StatusDose.APPLIED),
    (StatusDose, "applied", StatusDose.APPLIED),
    (StatusDose, "Aplicada", StatusDose.APPLIED),
    (StatusDose, "Não Realizada", StatusDose.NOT_ACCEPTED),
    (StatusPagamento, "PAGO", StatusPagamento.PAID),
    (StatusPagamento, "Aguardando Cartão", StatusPagamento.WAITING_CARD),
    (StatusTratamento, "Em andamento", StatusTratamento.ONGOING),
    (StatusPesquisa, "Respondido", StatusPesquisa.ANSWERED),
    (CategoriaProtocolo, "Medicamentoso", CategoriaProtocolo.MEDICATION),
    (CategoriaProtocolo, "Régua de Contato (Acompanhamento)", CategoriaProtocolo.MONITORING),
    (FormaPagamento, "Cartão", FormaPagamento.CARD),
    (Urgencia, "media", Urgencia.MEDIA),
])
def test_parse_enum_aceita_codigos_e_rotulos(cls, valor, esperado):
    assert parse_enum(cls, valor) == esperado


def test_parse_enum_invalido_e_default():
    with pytest.raises(ValueError):
        parse_enum(StatusDose, "talvez")
    assert parse_enum(StatusDose, None) is None
    assert parse_enum(StatusDose, "", StatusDose.PENDING) == StatusDose.PENDING


@pytest.mark.parametrize("txt,esperado", [
    ("R$ 1.234,56", 1234.56),
    ("12,5", 12.5),
    ("1234.5", 1234.5),
    (850, 850.0),
    ("abc", None),
    (None, None),
])
def test_parse_valor(txt, esperado):
    assert parse_valor(txt) == esperado


def test_parse_bool():
    assert parse_bool("sim")
    assert parse_bool(1)
    assert not parse_bool("não")
    assert parse_bool(None, default=True)
    assert not parse_bool("???")


def test_parse_paciente_camel_case():
    p = parse_paciente({
        "id": "p1",
        "fullName": "Ana",
        "mainDiagnosis": "TEA",
        "birthDate": "05/03/2018",
        "guardian": {"fullName": "Maria", "phonePrimary": "1199"},
        "address": {"street": "Rua A", "number": "1", "neighborhood": "B", "city": "C", "state": "SP",
                    "zipCode": "000"},
    })
    assert p.data_nascimento == "2018-03-05"
    assert p.responsavel.nome_completo == "Maria"
    assert p.endereco.cidade == "C"
    assert p.ativo


def test_parse_protocolo_marcos_ordenados_e_json():
    raw = {"id": "pr", "name": "X", "category": "MONITORING", "frequencyDays": "0",
           "milestones": [{"day": 30, "message": "b"}, {"day": 7, "message": "a"}]}
    p = parse_protocolo(raw)
    assert p.categoria == CategoriaProtocolo.MONITORING
    assert [m.dia for m in p.marcos] == [7, 30]
    # formato salvo no SQLite
    p2 = parse_protocolo({"id": "pr", "nome": "X", "categoria": "MEDICATION", "frequencia_dias": 28,
                          "marcos": json.dumps([{"dia": 14, "mensagem": "c"}])})
    assert p2.is_medicamentoso
    assert p2.marcos[0].mensagem == "c"


def test_parse_tratamento_e_dose():
    t = parse_tratamento({"id": "t", "patientId": "p", "protocolId": "pr", "startDate": "2024-01-01T00:00:00Z"})
    assert t.status == StatusTratamento.ONGOING
    assert t.data_inicio == "2024-01-01T00:00:00Z"

    d = parse_dose({"id": "d", "treatmentId": "t", "cycleNumber": "2", "applicationDate": "2024-01-29",
                    "status": "Pendente", "surveyScore": 15, "nurse": "true"})
    assert d.ciclo == 2
    assert d.status == StatusDose.PENDING
    assert d.nota_pesquisa == 10
    assert d.enfermagem
    assert d.status_pagamento is None
    assert d.status_pesquisa == StatusPesquisa.NOT_SENT


def test_parse_lote_valores_monetarios():
    l = parse_lote({"id": "l", "medicamento": " Risperidona ", "lote": "R1", "quantidade": "10",
                    "custo_unitario": "R$ 40,00", "preco_venda": "100", "comissao": None})
    assert l.medicamento == "Risperidona"
    assert l.quantidade == 10
    assert l.custo_unitario == 40.0
    assert l.preco_venda == 100.0
    assert l.comissao == 0.0
    assert l.unidade == "Ampola"


def test_parse_medicamento():
    m = parse_medicamento({"id": "m1", "activeIngredient": " Risperidona ", "dosage": "1 mg",
                           "tradeName": "Risperdal", "pharmaceuticalForm": "Solução oral"})
    assert m.rotulo == "Risperidona 1 mg"
    assert m.nome_comercial == "Risperdal"
    assert m.fabricante is None
    assert m.forma == "Solução oral"
    assert parse_medicamento({"id": "m2", "principio_ativo": "Metilfenidato"}).rotulo == "Metilfenidato"


def test_parse_contato_dispensado_com_feedback():
    c = parse_contato_dispensado({
        "contactId": "t1_m_7",
        "dismissedAt": "2024-01-08T14:00:00",
        "feedback": {"text": "ok", "classification": "NEGATIVO", "urgency": "ALTA", "needsMedicalResponse": True},
    })
    assert c.feedback.classificacao == ClassificacaoFeedback.NEGATIVO
    assert c.feedback.urgencia == Urgencia.ALTA
    assert c.feedback.precisa_resposta_medica
    assert parse_contato_dispensado({"contato_id": "x", "dispensado_em": "2024"}).feedback is None
