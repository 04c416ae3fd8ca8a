import sqlite3

import pytest

from clinica.domain.errors import EstoqueInsuficiente, RegistroNaoEncontrado
from clinica.domain.models import (
    CategoriaProtocolo,
    ClassificacaoFeedback,
    Dose,
    Endereco,
    FeedbackPaciente,
    LoteEstoque,
    Medicamento,
    Paciente,
    Protocolo,
    RegistroDispensacao,
    Responsavel,
    StatusDose,
    StatusTratamento,
    Tratamento,
    Venda,
)
from clinica.infra.db import connect
from clinica.infra.migrations import apply_migrations, schema_version
from clinica.infra.repositories import (
    ContatoRepo,
    DispensacaoRepo,
    DoseRepo,
    LoteRepo,
    MedicamentoRepo,
    PacienteRepo,
    ParamsRepo,
    ProtocoloRepo,
    TratamentoRepo,
    VendaRepo,
)
from clinica.infra.views import create_views


@pytest.fixture
def db(db_path):
    apply_migrations(db_path)
    create_views(db_path)
    return db_path


def _seed_tratamento(db):
    PacienteRepo(db).upsert_many([Paciente(id="p1", nome_completo="Ana")])
    ProtocoloRepo(db).upsert_many([
        Protocolo(id="pr1", nome="Mensal", categoria=CategoriaProtocolo.MEDICATION, frequencia_dias=28),
    ])
    TratamentoRepo(db).upsert_many([
        Tratamento(id="t1", paciente_id="p1", protocolo_id="pr1", status=StatusTratamento.ONGOING,
                   data_inicio="2024-01-01"),
    ])


def test_migrations_idempotentes(db):
    assert schema_version(db) == 3
    apply_migrations(db)
    assert schema_version(db) == 3
    with connect(db) as c:
        cols = {r[1] for r in c.execute("PRAGMA table_info(lote_estoque)")}
        views = {r[0] for r in c.execute("SELECT name FROM sqlite_master WHERE type='view'")}
    assert {"custo_unitario", "preco_venda", "comissao"} <= cols
    assert {"vw_estoque_medicamento", "vw_consumo_mensal"} <= views


def test_params_as_config(db):
    repo = ParamsRepo(db)
    assert repo.as_config().fator_compra == 3
    repo.set_many([("fator_compra", "4"), ("janela_nps_dias", "60")])
    cfg = repo.as_config()
    assert cfg.fator_compra == 4
    assert cfg.janela_nps_dias == 60
    assert cfg.horizonte_compra_dias == 10
    assert repo.get("inexistente") is None
    assert repo.get_all() == {"fator_compra": "4", "janela_nps_dias": "60"}


def test_paciente_roundtrip(db):
    p = Paciente(
        id="p1", nome_completo="Ana", diagnostico_principal="TEA",
        responsavel=Responsavel("Maria", "1199", parentesco="Mãe"),
        endereco=Endereco("Rua A", "1", "Centro", "SP", "SP", "000"),
    )
    PacienteRepo(db).upsert_many([p])
    assert PacienteRepo(db).get("p1") == p
    with pytest.raises(RegistroNaoEncontrado):
        PacienteRepo(db).get("nada")


def test_protocolo_roundtrip_com_marcos(db):
    from clinica.domain.models import Marco

    p = Protocolo(id="pr", nome="X", categoria=CategoriaProtocolo.MONITORING, frequencia_dias=0,
                  marcos=[Marco(7, "a"), Marco(30, "b")])
    ProtocoloRepo(db).upsert_many([p])
    assert ProtocoloRepo(db).list() == [p]


def test_medicamento_roundtrip(db):
    repo = MedicamentoRepo(db)
    m = Medicamento(id="m1", principio_ativo="Risperidona", dosagem="1 mg", fabricante="Janssen")
    repo.upsert_many([m, Medicamento(id="m2", principio_ativo="Aripiprazol")])
    assert repo.get("m1") == m
    assert [x.id for x in repo.list()] == ["m2", "m1"]
    with pytest.raises(RegistroNaoEncontrado):
        repo.get("nada")


def test_atualizar_status_recalcula_paciente(db):
    _seed_tratamento(db)
    t = TratamentoRepo(db).atualizar_status("t1", StatusTratamento.FINISHED)
    assert t.status == StatusTratamento.FINISHED
    assert not PacienteRepo(db).get("p1").ativo
    TratamentoRepo(db).atualizar_status("t1", StatusTratamento.EXTERNAL)
    assert PacienteRepo(db).get("p1").ativo


def test_tratamento_atualizar_dados(db):
    _seed_tratamento(db)
    t = TratamentoRepo(db).atualizar("t1", proxima_consulta="2024-04-01", doses_planejadas_antes_consulta=3)
    assert (t.proxima_consulta, t.doses_planejadas_antes_consulta) == ("2024-04-01", 3)
    assert TratamentoRepo(db).get("t1") == t
    with pytest.raises(ValueError):
        TratamentoRepo(db).atualizar("t1", status="FINISHED")
    with pytest.raises(RegistroNaoEncontrado):
        TratamentoRepo(db).atualizar("nada", observacoes="x")
    with pytest.raises(RegistroNaoEncontrado):
        TratamentoRepo(db).get("nada")


def test_dose_fk_e_atualizar(db):
    with pytest.raises(sqlite3.IntegrityError):
        DoseRepo(db).upsert_many([
            Dose(id="d1", tratamento_id="nao_existe", ciclo=1, data_aplicacao="2024-01-01", status=StatusDose.APPLIED),
        ])
    _seed_tratamento(db)
    DoseRepo(db).upsert_many([
        Dose(id="d1", tratamento_id="t1", ciclo=1, data_aplicacao="2024-01-01", status=StatusDose.PENDING),
    ])
    d = DoseRepo(db).atualizar("d1", status=StatusDose.APPLIED, lote="R1")
    assert d.status == StatusDose.APPLIED
    assert d.lote == "R1"
    with pytest.raises(ValueError):
        DoseRepo(db).atualizar("d1", inexistente=1)
    with pytest.raises(RegistroNaoEncontrado):
        DoseRepo(db).atualizar("nada", lote="X")


def _registros(n, lote_id="l1"):
    return [
        RegistroDispensacao(id=f"r{i}", data="2024-03-01", paciente_id="p1", lote_estoque_id=lote_id,
                            medicamento="Risperidona")
        for i in range(n)
    ]


def test_debitar_confere_saldo(db):
    repo = LoteRepo(db)
    repo.upsert_many([LoteEstoque(id="l1", medicamento="Risperidona", lote="R1", validade="2025-01-01",
                                  quantidade=2)])
    with pytest.raises(EstoqueInsuficiente):
        repo.debitar("l1", _registros(3))
    assert repo.get("l1").quantidade == 2
    assert DispensacaoRepo(db).list() == []

    lote = repo.debitar("l1", _registros(2))
    assert lote.quantidade == 0
    assert len(DispensacaoRepo(db).list()) == 2
    assert DispensacaoRepo(db).consumo_mensal() == [
        {"ano_mes": "2024-03", "medicamento": "Risperidona", "unidades": 2},
    ]


def test_debitar_dose_inexistente_nao_baixa_estoque(db):
    repo = LoteRepo(db)
    repo.upsert_many([LoteEstoque(id="l1", medicamento="Risperidona", lote="R1", validade="2025-01-01",
                                  quantidade=5)])
    with pytest.raises(RegistroNaoEncontrado):
        repo.debitar("l1", _registros(2), dose_id="nao_existe")
    assert repo.get("l1").quantidade == 5
    assert DispensacaoRepo(db).list() == []


def test_debitar_lote_inativo_ou_inexistente(db):
    LoteRepo(db).upsert_many([LoteEstoque(id="l1", medicamento="R", lote="R1", validade=None, quantidade=5,
                                          ativo=False)])
    with pytest.raises(EstoqueInsuficiente):
        LoteRepo(db).debitar("l1", _registros(1))
    with pytest.raises(RegistroNaoEncontrado):
        LoteRepo(db).debitar("nada", _registros(1, "nada"))


def test_estoque_por_medicamento_view(db):
    LoteRepo(db).upsert_many([
        LoteEstoque(id="a", medicamento="R", lote="1", validade="2025-01-01", quantidade=2),
        LoteEstoque(id="b", medicamento="R", lote="2", validade="2024-06-01", quantidade=3),
        LoteEstoque(id="c", medicamento="R", lote="3", validade="2024-01-01", quantidade=9, ativo=False),
    ])
    assert LoteRepo(db).estoque_por_medicamento() == [
        {"medicamento": "R", "lotes": 2, "estoque_total": 5, "validade_mais_proxima": "2024-06-01"},
    ]
    assert [l.id for l in LoteRepo(db).list(somente_ativos=True)] == ["b", "a"]


def test_venda_uma_por_dose(db):
    repo = VendaRepo(db)
    repo.insert(Venda(id="v1", dose_id="d1", data_venda="2024-03-01", preco_venda=100.0))
    with pytest.raises(ValueError):
        repo.insert(Venda(id="v2", dose_id="d1", data_venda="2024-03-02", preco_venda=100.0))
    assert [v.id for v in repo.list()] == ["v1"]


def test_contato_dispensar_idempotente_com_feedback(db):
    repo = ContatoRepo(db)
    fb = FeedbackPaciente(texto="Bem", classificacao=ClassificacaoFeedback.POSITIVO)
    assert repo.dispensar("t1_m_7", "2024-01-08T10:00:00", fb)
    assert not repo.dispensar("t1_m_7", "2024-01-09T10:00:00")
    logs = repo.list()
    assert len(logs) == 1
    assert logs[0].dispensado_em == "2024-01-08T10:00:00"
    assert logs[0].feedback == fb
