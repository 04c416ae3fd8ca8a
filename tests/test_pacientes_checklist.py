import pytest

from clinica.domain.checklist import NA, OK, PENDENTE, checklist_operacional, dose_ativa
from clinica.domain.errors import DocumentoInvalido
from clinica.domain.models import (
    CategoriaProtocolo,
    Diagnostico,
    DocumentoConsentimento,
    Dose,
    Endereco,
    Paciente,
    Protocolo,
    Responsavel,
    StatusDose,
    StatusPagamento,
    StatusPesquisa,
    StatusTratamento,
    Tratamento,
)
from clinica.domain.pacientes import (
    SEM_DIAGNOSTICO,
    estatisticas_pacientes,
    paciente_ativo,
    pacientes_por_diagnostico,
    pacientes_sem_termo,
    validar_documento,
)

ENDERECO = Endereco("Rua A", "10", "Centro", "São Paulo", "SP", "01000-000")


def _paciente(pid, diag="TEA", ativo=True, endereco=ENDERECO):
    return Paciente(id=pid, nome_completo=f"Paciente {pid}", diagnostico_principal=diag, ativo=ativo,
                    responsavel=Responsavel("Resp", "1199"), endereco=endereco)


def _trat(tid, status):
    return Tratamento(id=tid, paciente_id="p1", protocolo_id="pr1", status=status, data_inicio="2024-01-01")


def test_paciente_ativo():
    assert paciente_ativo([_trat("a", StatusTratamento.FINISHED), _trat("b", StatusTratamento.EXTERNAL)])
    assert paciente_ativo([_trat("a", StatusTratamento.ONGOING)])
    assert not paciente_ativo([_trat("a", StatusTratamento.FINISHED), _trat("b", StatusTratamento.SUSPENDED)])
    assert not paciente_ativo([])


def test_estatisticas_e_diagnosticos():
    pacientes = [_paciente("1"), _paciente("2", "TDAH"), _paciente("3"), _paciente("4", ""),
                 _paciente("5", "TDAH", ativo=False)]
    e = estatisticas_pacientes(pacientes)
    assert (e.ativos, e.inativos, e.total) == (4, 1, 5)
    assert pacientes_por_diagnostico(pacientes) == [("TEA", 2), ("TDAH", 1), (SEM_DIAGNOSTICO, 1)]


def test_pacientes_sem_termo():
    diags = [Diagnostico("dg1", "TEA", exige_termo=True), Diagnostico("dg2", "TDAH")]
    pacientes = [_paciente("1", " tea "), _paciente("2"), _paciente("3", "TDAH"), _paciente("4", ativo=False)]
    docs = [DocumentoConsentimento("doc1", "2", "termo.pdf", "pdf")]
    assert [p.id for p in pacientes_sem_termo(pacientes, diags, docs)] == ["1"]


def test_validar_documento():
    assert validar_documento("termo.PDF", 1000) == "pdf"
    assert validar_documento("termo.docx", 1000) == "docx"
    with pytest.raises(DocumentoInvalido):
        validar_documento("foto.png", 1000)
    with pytest.raises(DocumentoInvalido) as exc:
        validar_documento("termo.pdf", 5 * 1024 * 1024 + 1)
    assert "5MB" in str(exc.value)
    # erros de negócio também são ValueError
    assert isinstance(exc.value, ValueError)


# -------------------------
# checklist operacional
# -------------------------

PROTOCOLOS = [
    Protocolo(id="pr1", nome="Mensal", categoria=CategoriaProtocolo.MEDICATION, frequencia_dias=28),
    Protocolo(id="pr2", nome="Acomp", categoria=CategoriaProtocolo.MONITORING, frequencia_dias=0),
]


def _dose(did, tid, data, status=StatusDose.APPLIED, pagamento=StatusPagamento.PAID, **kw):
    return Dose(id=did, tratamento_id=tid, ciclo=1, data_aplicacao=data, status=status,
                status_pagamento=pagamento, **kw)


def test_dose_ativa_primeira_em_aberto():
    doses = [
        _dose("c", "t", "2024-03-01", status=StatusDose.PENDING, pagamento=None),
        _dose("a", "t", "2024-01-01"),
        _dose("b", "t", "2024-02-01", enfermagem=True, status_pesquisa=StatusPesquisa.SENT),
    ]
    assert dose_ativa(doses).id == "b"
    assert dose_ativa([_dose("a", "t", "2024-01-01"), _dose("z", "t", "2024-02-01")]).id == "z"
    assert dose_ativa([]) is None


def test_checklist_operacional():
    pacientes = [_paciente("p1", "TEA"), _paciente("p2", "TDAH", endereco=None), _paciente("p3", "TDAH")]
    diags = [Diagnostico("dg1", "TEA", exige_termo=True)]
    tratamentos = [
        Tratamento(id="t1", paciente_id="p1", protocolo_id="pr1", status=StatusTratamento.ONGOING,
                   data_inicio="2024-01-01"),
        Tratamento(id="t2", paciente_id="p2", protocolo_id="pr1", status=StatusTratamento.ONGOING,
                   data_inicio="2024-01-01"),
        Tratamento(id="t3", paciente_id="p3", protocolo_id="pr1", status=StatusTratamento.ONGOING,
                   data_inicio="2024-01-01"),
        Tratamento(id="t4", paciente_id="p3", protocolo_id="pr2", status=StatusTratamento.ONGOING,
                   data_inicio="2024-01-01"),
        Tratamento(id="t5", paciente_id="p1", protocolo_id="pr1", status=StatusTratamento.FINISHED,
                   data_inicio="2023-01-01"),
    ]
    doses = [
        _dose("d1", "t1", "2024-03-01", status=StatusDose.PENDING, pagamento=StatusPagamento.WAITING_DELIVERY),
        _dose("d2", "t2", "2024-03-01"),
        _dose("d3", "t3", "2024-03-01"),
    ]
    itens = checklist_operacional(tratamentos, PROTOCOLOS, pacientes, doses, diags, [])
    por_id = {i.tratamento_id: i for i in itens}
    assert set(por_id) == {"t1", "t2"}

    t1 = por_id["t1"]
    assert t1.dose_id == "d1"
    assert t1.etapas == {
        "registration": OK,
        "medication": PENDENTE,
        "consent": PENDENTE,
        "payment": OK,
        "delivery": PENDENTE,
        "application": PENDENTE,
        "survey": OK,
    }

    t2 = por_id["t2"]
    assert t2.etapas["registration"] == PENDENTE
    assert t2.etapas["consent"] == NA
    assert t2.faltantes == ["Endereco Completo"]
