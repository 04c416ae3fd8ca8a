from dataclasses import replace
from datetime import date

from clinica.domain.models import (
    CategoriaProtocolo,
    Dose,
    Protocolo,
    StatusDose,
    StatusPagamento,
    StatusPesquisa,
    StatusTratamento,
    Tratamento,
)
from clinica.domain.pendencias import (
    consultas_proximas,
    doses_atrasadas,
    doses_nao_aceitas,
    janela_atividade,
    pesquisas_pendentes,
)
from clinica.domain.projecao import (
    ciclo_e_ultima_antes_consulta,
    frequencias_por_tratamento,
    projetar_proxima_dose,
    ultima_dose_aplicada,
)


def _trat(tid="t1", inicio="2024-01-01", status=StatusTratamento.ONGOING, planejadas=0):
    return Tratamento(id=tid, paciente_id="p1", protocolo_id="pr1", status=status,
                      data_inicio=inicio, doses_planejadas_antes_consulta=planejadas)


def _proto(freq=28):
    return Protocolo(id="pr1", nome="Mensal", categoria=CategoriaProtocolo.MEDICATION,
                     frequencia_dias=freq, medicamento="Risperidona")


def _dose(did, data, ciclo=1, status=StatusDose.APPLIED, tid="t1", **kw):
    return Dose(id=did, tratamento_id=tid, ciclo=ciclo, data_aplicacao=data, status=status, **kw)


# -------------------------
# projeção
# -------------------------

def test_projecao_no_prazo():
    ev = projetar_proxima_dose(_trat(), _proto(), [_dose("d1", "2024-01-01")], date(2024, 1, 20))
    assert ev.data == date(2024, 1, 29)
    assert ev.ciclo == 2
    assert ev.diff_dias == 9
    assert not ev.atrasada


def test_projecao_atrasada():
    ev = projetar_proxima_dose(_trat(), _proto(), [_dose("d1", "2024-01-01")], date(2024, 2, 5))
    assert ev.diff_dias == -7
    assert ev.atrasada


def test_projecao_sem_doses_aplicadas_usa_inicio():
    doses = [_dose("d1", "2024-01-01", status=StatusDose.PENDING)]
    ev = projetar_proxima_dose(_trat(inicio="2024-01-15"), _proto(), doses, date(2024, 1, 10))
    assert ev.data == date(2024, 1, 15)
    assert ev.ciclo == 1
    assert ev.diff_dias == 5


def test_projecao_descarta_atraso_de_60_dias():
    doses = [_dose("d1", "2024-01-01")]
    # próxima = 2024-01-29
    assert projetar_proxima_dose(_trat(), _proto(), doses, date(2024, 3, 28)).diff_dias == -59
    assert projetar_proxima_dose(_trat(), _proto(), doses, date(2024, 3, 29)) is None


def test_projecao_ignora_doses_de_outros_tratamentos():
    doses = [_dose("d1", "2024-01-01"), _dose("x9", "2024-03-01", ciclo=9, tid="outro")]
    ev = projetar_proxima_dose(_trat(), _proto(), doses, date(2024, 1, 20))
    assert ev.ciclo == 2


def test_projecao_data_invalida():
    assert projetar_proxima_dose(_trat(inicio="?"), _proto(), [], date(2024, 1, 1)) is None


def test_ultima_dose_desempate_por_ciclo_e_id():
    a = _dose("a", "2024-01-01", ciclo=1)
    b = _dose("b", "2024-01-01", ciclo=2)
    assert ultima_dose_aplicada([b, a]).id == "b"
    c = _dose("c", "2024-01-01", ciclo=2)
    assert ultima_dose_aplicada([c, b]).id == "c"
    assert ultima_dose_aplicada([_dose("p", "2024-01-01", status=StatusDose.PENDING)]) is None


def test_frequencias_ignora_protocolo_sem_frequencia():
    protos = [_proto(28), Protocolo(id="pr2", nome="Acomp", categoria=CategoriaProtocolo.MONITORING,
                                    frequencia_dias=0)]
    trats = [_trat("t1"), Tratamento(id="t2", paciente_id="p1", protocolo_id="pr2",
                                     status=StatusTratamento.ONGOING, data_inicio="2024-01-01")]
    assert frequencias_por_tratamento(trats, protos) == {"t1": 28}


def test_ciclo_e_ultima_antes_consulta():
    doses = [_dose("d1", "2024-01-01"), _dose("d2", "2024-01-29", ciclo=2)]
    assert ciclo_e_ultima_antes_consulta(_trat(planejadas=3), doses) == (3, True)
    assert ciclo_e_ultima_antes_consulta(_trat(planejadas=0), doses) == (3, False)


# -------------------------
# pendências
# -------------------------

def test_doses_atrasadas_ordenadas_por_atraso():
    doses = [
        _dose("a1", "2024-01-01", tid="ta"),
        _dose("a0", "2023-12-04", tid="ta"),
        _dose("b1", "2024-01-20", tid="tb"),
        _dose("c1", "2024-01-25", tid="tc"),
        _dose("z1", "2023-01-01", tid="sem_freq"),
    ]
    freq = {"ta": 28, "tb": 14, "tc": 28}
    out = doses_atrasadas(doses, freq, date(2024, 2, 5))
    assert [x.dose.id for x in out] == ["a1", "b1"]
    assert [x.dias_atraso for x in out] == [7, 2]
    assert out[0].proxima_data == date(2024, 1, 29)


def test_dose_nao_aceita_tira_tratamento_dos_atrasados():
    doses = [_dose("a1", "2024-01-01", tid="ta"), _dose("b1", "2024-01-20", tid="tb")]
    freq = {"ta": 28, "tb": 14}
    hoje = date(2024, 2, 5)
    assert [x.dose.tratamento_id for x in doses_atrasadas(doses, freq, hoje)] == ["ta", "tb"]

    doses[0] = replace(doses[0], status=StatusDose.NOT_ACCEPTED)
    assert [x.dose.tratamento_id for x in doses_atrasadas(doses, freq, hoje)] == ["tb"]


def test_pesquisas_pendentes():
    doses = [
        _dose("ok", "2024-01-01", enfermagem=True, status_pesquisa=StatusPesquisa.ANSWERED, nota_pesquisa=9),
        _dose("enviada", "2024-01-01", enfermagem=True, status_pesquisa=StatusPesquisa.SENT),
        _dose("sem_nota", "2024-01-01", enfermagem=True, status_pesquisa=StatusPesquisa.ANSWERED, nota_pesquisa=0),
        _dose("fora", "2024-01-01", enfermagem=False, status_pesquisa=StatusPesquisa.SENT),
    ]
    assert [d.id for d in pesquisas_pendentes(doses)] == ["enviada", "sem_nota"]


def test_consultas_proximas():
    hoje = date(2024, 3, 10)
    doses = [
        _dose("perto", "2024-03-01", ultima_antes_consulta=True, data_consulta="2024-03-20"),
        _dose("agendar", "2024-03-01", ultima_antes_consulta=True),
        _dose("longe", "2024-03-01", ultima_antes_consulta=True, data_consulta="2024-05-01"),
        _dose("passada", "2024-03-01", ultima_antes_consulta=True, data_consulta="2024-03-01"),
        _dose("comum", "2024-03-01", data_consulta="2024-03-12"),
    ]
    assert [d.id for d in consultas_proximas(doses, hoje)] == ["agendar", "perto"]


def test_janela_atividade():
    hoje = date(2024, 3, 10)
    pago = StatusPagamento.PAID
    doses = [
        _dose("fechada", "2024-03-09", status_pagamento=pago),
        _dose("futura", "2024-03-15", status=StatusDose.PENDING),
        _dose("antiga_pendente", "2024-02-01", status=StatusDose.PENDING),
        _dose("antiga_sem_pagto", "2024-02-10", status_pagamento=StatusPagamento.WAITING_PIX),
        _dose("antiga_paga", "2024-02-10", status_pagamento=pago),
        _dose("longe", "2024-04-01", status=StatusDose.PENDING),
        _dose("sem_data", "", status=StatusDose.PENDING),
        _dose("recusada", "2024-03-08", status=StatusDose.NOT_ACCEPTED),
    ]
    ids = [d.id for d in janela_atividade(doses, hoje)]
    assert ids == ["antiga_pendente", "antiga_sem_pagto", "recusada", "futura"]
    assert [d.id for d in doses_nao_aceitas(doses)] == ["recusada"]
