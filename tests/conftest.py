import json
from datetime import date
from pathlib import Path

import pytest

from clinica.adapters.snapshot_loader import run_importar_snapshot

# Data de referência usada pelos testes que leem o snapshot abaixo
HOJE = date(2024, 3, 10)


def snapshot_payload():
    """Snapshot pequeno no formato da API (camelCase, {"data": [...]})."""
    return {
        "diagnoses": {"data": [
            {"id": "dg1", "name": "TEA", "color": "#ff00ff", "requiresConsent": True},
            {"id": "dg2", "name": "TDAH", "requiresConsent": False},
        ]},
        "patients": {"data": [
            {
                "id": "p1",
                "fullName": "Ana Souza",
                "mainDiagnosis": "TEA",
                "active": True,
                "guardian": {"fullName": "Maria Souza", "phonePrimary": "11999990000", "relationship": "Mãe"},
                "address": {
                    "street": "Rua A", "number": "10", "neighborhood": "Centro",
                    "city": "São Paulo", "state": "SP", "zipCode": "01000-000",
                },
            },
            {
                "id": "p2",
                "fullName": "Bruno Lima",
                "mainDiagnosis": "TDAH",
                "active": True,
                "guardian": {"fullName": "João Lima", "phonePrimary": "11988880000"},
            },
            {"id": "p3", "fullName": "Carla Dias", "mainDiagnosis": "TEA", "active": False},
        ], "total": 3, "page": 1, "totalPages": 1},
        "documents": {"data": []},
        "protocols": {"data": [
            {
                "id": "pr1",
                "name": "Risperidona Mensal",
                "category": "MEDICATION",
                "frequencyDays": 28,
                "medicationType": "Risperidona",
                "milestones": [
                    {"day": 90, "message": "Revisão de 90 dias"},
                    {"day": 7, "message": "Como foi a primeira semana?"},
                ],
            },
            {
                "id": "pr2",
                "name": "Acompanhamento",
                "category": "Régua de Contato (Acompanhamento)",
                "frequencyDays": 0,
                "milestones": [{"day": 60, "message": "Contato de 60 dias"}],
            },
        ]},
        "treatments": [
            {"id": "t1", "patientId": "p1", "protocolId": "pr1", "status": "ONGOING",
             "startDate": "2024-01-01", "plannedDosesBeforeConsult": 3},
            {"id": "t2", "patientId": "p2", "protocolId": "pr1", "status": "ONGOING", "startDate": "2024-02-20"},
            {"id": "t3", "patientId": "p2", "protocolId": "pr2", "status": "ONGOING", "startDate": "2024-01-15"},
        ],
        "doses": {"data": [
            {"id": "d1", "treatmentId": "t1", "cycleNumber": 1, "applicationDate": "2024-01-01T10:00:00Z",
             "status": "APPLIED", "paymentStatus": "PAID", "nurse": True,
             "surveyStatus": "ANSWERED", "surveyScore": 10},
            {"id": "d2", "treatmentId": "t1", "cycleNumber": 2, "applicationDate": "2024-01-29",
             "status": "Aplicada", "paymentStatus": "Aguardando PIX", "nurse": True,
             "surveyStatus": "ANSWERED", "surveyScore": 6,
             "isLastBeforeConsult": True, "consultationDate": "2024-03-20"},
            {"id": "d3", "treatmentId": "t2", "cycleNumber": 1, "applicationDate": "2024-02-20",
             "status": "APPLIED", "paymentStatus": "PAID", "nurse": False, "inventoryLotId": "l1"},
        ]},
        "inventory": {"data": [
            {"id": "l1", "medicationName": "Risperidona", "lotNumber": "RIS-01", "expiryDate": "2024-03-25",
             "quantity": 1, "unitCost": 40, "baseSalePrice": 100, "defaultCommission": 5, "defaultTax": 5},
            {"id": "l2", "medicationName": "Metilfenidato", "lotNumber": "MET-01", "expiryDate": "2024-03-01",
             "quantity": 2, "unitCost": 10, "baseSalePrice": 12},
            {"id": "l3", "medicationName": "Metilfenidato", "lotNumber": "MET-02", "expiryDate": "2025-01-01",
             "quantity": 5},
        ]},
        "dispense-logs": [
            {"id": "dl1", "date": "2024-01-01", "patientId": "p1", "inventoryItemId": "l1",
             "medicationName": "Risperidona", "quantity": 1, "doseId": "d1"},
            {"id": "dl2", "date": "2024-01-29", "patientId": "p1", "inventoryItemId": "l1",
             "medicationName": "Risperidona", "quantity": 1, "doseId": "d2"},
            {"id": "dl3", "date": "2024-02-20", "patientId": "p2", "inventoryItemId": "l1",
             "medicationName": "Risperidona", "quantity": 1, "doseId": "d3"},
            {"id": "dl4", "date": "2024-02-21", "patientId": "p2", "inventoryItemId": "l2",
             "medicationName": "Metilfenidato", "quantity": 1},
        ],
        "purchase-requests": [
            {"id": "pc0", "medicationName": "Metilfenidato", "createdAt": "2024-01-10",
             "predictedConsumption10Days": 2, "currentStock": 0, "status": "RECEIVED", "suggestedQuantity": 6},
        ],
        "sales": [
            {"id": "s1", "doseId": "d1", "saleDate": "2024-01-02", "salePrice": 100, "unitCost": 40,
             "commission": 5, "tax": 5, "paymentMethod": "PIX"},
            {"id": "s2", "doseId": "d3", "saleDate": "2024-03-05", "salePrice": 100, "unitCost": 40,
             "paymentMethod": "CARD"},
        ],
        "dismissed-logs": [
            {"contactId": "t1_m_7", "dismissedAt": "2024-01-08T14:00:00",
             "feedback": {"text": "Tudo bem", "classification": "POSITIVO"}},
        ],
    }


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "clinica_test.sqlite")


@pytest.fixture
def snapshot_file(tmp_path: Path) -> str:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot_payload(), ensure_ascii=False), encoding="utf-8")
    return str(path)


@pytest.fixture
def db_populado(db_path: str, snapshot_file: str) -> str:
    run_importar_snapshot(snapshot_file, db_path)
    return db_path
