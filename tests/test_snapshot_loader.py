import json

import pytest

from clinica.adapters.snapshot_loader import extrair_registros, load_snapshot_json, run_importar_snapshot
from clinica.domain.errors import SnapshotInvalido
from clinica.domain.models import CategoriaProtocolo, StatusDose, StatusPagamento
from clinica.infra.repositories import ContatoRepo, DoseRepo, MedicamentoRepo, PacienteRepo, ProtocoloRepo

from conftest import snapshot_payload


def test_extrair_registros():
    assert extrair_registros({"data": [{"id": 1}], "total": 1}) == [{"id": 1}]
    assert extrair_registros([{"id": 2}]) == [{"id": 2}]
    assert extrair_registros(None) == []
    with pytest.raises(ValueError):
        extrair_registros({"items": []})
    with pytest.raises(ValueError):
        extrair_registros("texto")


def test_load_snapshot_json_ignora_recursos_desconhecidos(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"patients": [{"id": "p"}], "outra_coisa": [1, 2]}), encoding="utf-8")
    brutos = load_snapshot_json(str(path))
    assert brutos["patients"] == [{"id": "p"}]
    assert brutos["doses"] == []
    assert "outra_coisa" not in brutos


def test_load_snapshot_json_invalido(tmp_path):
    path = tmp_path / "s.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_snapshot_json(str(path))


def test_importar_snapshot(db_path, snapshot_file):
    contagem = run_importar_snapshot(snapshot_file, db_path)
    assert contagem == {
        "diagnoses": 2,
        "patients": 3,
        "protocols": 2,
        "treatments": 3,
        "doses": 3,
        "inventory": 3,
        "dispense-logs": 4,
        "purchase-requests": 1,
        "sales": 2,
        "dismissed-logs": 1,
    }
    d2 = DoseRepo(db_path).get("d2")
    assert d2.status == StatusDose.APPLIED
    assert d2.status_pagamento == StatusPagamento.WAITING_PIX
    protos = {p.id: p for p in ProtocoloRepo(db_path).list()}
    assert protos["pr2"].categoria == CategoriaProtocolo.MONITORING
    assert [m.dia for m in protos["pr1"].marcos] == [7, 90]
    assert ContatoRepo(db_path).list()[0].feedback.texto == "Tudo bem"


def test_importar_snapshot_e_upsert(db_path, tmp_path):
    payload = snapshot_payload()
    path = tmp_path / "s.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    run_importar_snapshot(str(path), db_path)

    payload["patients"]["data"][0]["fullName"] = "Ana Souza Lima"
    path.write_text(json.dumps(payload), encoding="utf-8")
    run_importar_snapshot(str(path), db_path)

    pacientes = PacienteRepo(db_path).list()
    assert len(pacientes) == 3
    assert PacienteRepo(db_path).get("p1").nome_completo == "Ana Souza Lima"


def test_importar_snapshot_com_cadastro_de_medicamentos(db_path, tmp_path):
    payload = snapshot_payload()
    payload["medications"] = {"data": [
        {"id": "m1", "activeIngredient": "Risperidona", "dosage": "1 mg", "manufacturer": "Janssen"},
        {"id": "m2", "activeIngredient": "Metilfenidato", "dosage": "10 mg"},
    ]}
    path = tmp_path / "s.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    contagem = run_importar_snapshot(str(path), db_path)
    assert contagem["medications"] == 2
    meds = MedicamentoRepo(db_path).list()
    assert [m.rotulo for m in meds] == ["Metilfenidato 10 mg", "Risperidona 1 mg"]
    assert MedicamentoRepo(db_path).get("m1").fabricante == "Janssen"


def test_importar_snapshot_arquivo_inexistente(db_path, tmp_path):
    with pytest.raises(FileNotFoundError):
        run_importar_snapshot(str(tmp_path / "nao_existe.json"), db_path)


def _snapshot_dose_orfa(tmp_path):
    payload = snapshot_payload()
    payload["doses"]["data"].append(
        {"id": "d9", "treatmentId": "t_inexistente", "cycleNumber": 1, "applicationDate": "2024-03-01",
         "status": "APPLIED"}
    )
    path = tmp_path / "orfa.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_importar_snapshot_referencia_quebrada_desfaz_tudo(db_path, tmp_path):
    with pytest.raises(SnapshotInvalido) as exc:
        run_importar_snapshot(_snapshot_dose_orfa(tmp_path), db_path)
    assert "doses" in str(exc.value)
    assert exc.value.detalhe["recurso"] == "doses"
    assert PacienteRepo(db_path).list() == []
    assert ProtocoloRepo(db_path).list() == []
