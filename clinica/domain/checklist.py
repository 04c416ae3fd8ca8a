# clinica/domain/checklist.py
"""
Checklist operacional por tratamento medicamentoso.

Etapas: cadastro, medicação, termo, pagamento, entrega, aplicação e
pesquisa. Cada etapa fica OK, PENDING ou NA. Apenas tratamentos com
alguma etapa pendente entram na lista.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from clinica.domain.datas import parse_data
from clinica.domain.models import (
    Diagnostico,
    DocumentoConsentimento,
    Dose,
    Paciente,
    Protocolo,
    StatusDose,
    StatusPagamento,
    StatusPesquisa,
    StatusTratamento,
    Tratamento,
)
from clinica.domain.pacientes import exige_termo

OK = "OK"
PENDENTE = "PENDING"
NA = "NA"

ETAPAS = ("registration", "medication", "consent", "payment", "delivery", "application", "survey")

ROTULOS_ETAPA = {
    "registration": "Cadastro",
    "medication": "Medicação",
    "consent": "Termo",
    "payment": "Pagamento",
    "delivery": "Entrega",
    "application": "Aplicação",
    "survey": "Pesquisa",
}


@dataclass(frozen=True)
class ItemChecklist:
    tratamento_id: str
    paciente_id: str
    dose_id: Optional[str]
    paciente_nome: str
    responsavel_nome: str
    telefone: str
    diagnostico: str
    protocolo_nome: str
    etapas: Dict[str, str]
    faltantes: List[str] = field(default_factory=list)

    @property
    def completo(self) -> bool:
        return all(s in (OK, NA) for s in self.etapas.values())


def campos_faltantes(paciente: Paciente) -> List[str]:
    faltam = []
    if not paciente.nome_completo:
        faltam.append("Nome Completo")
    if not paciente.responsavel.nome_completo:
        faltam.append("Nome Responsavel")
    if not paciente.responsavel.telefone:
        faltam.append("Telefone")
    if paciente.endereco is None:
        faltam.append("Endereco Completo")
    return faltam


def _dose_em_aberto(d: Dose) -> bool:
    if d.status != StatusDose.APPLIED or d.status_pagamento != StatusPagamento.PAID:
        return True
    return d.enfermagem and d.status_pesquisa not in (StatusPesquisa.ANSWERED, StatusPesquisa.NOT_SENT)


def dose_ativa(doses: Iterable[Dose]) -> Optional[Dose]:
    """Primeira dose (por data) ainda em aberto; se todas fechadas, a última."""
    ordenadas = sorted(doses, key=lambda d: parse_data(d.data_aplicacao) or date.min)
    if not ordenadas:
        return None
    for d in ordenadas:
        if _dose_em_aberto(d):
            return d
    return ordenadas[-1]


def etapas_da_dose(dose: Optional[Dose]) -> Dict[str, str]:
    etapas = {"medication": OK, "payment": PENDENTE, "delivery": PENDENTE, "application": PENDENTE, "survey": PENDENTE}
    if dose is None:
        return etapas
    pago = dose.status_pagamento == StatusPagamento.PAID
    etapas["medication"] = PENDENTE if dose.status == StatusDose.PENDING else OK
    etapas["payment"] = OK if pago or dose.status_pagamento == StatusPagamento.WAITING_DELIVERY else PENDENTE
    etapas["delivery"] = OK if pago else PENDENTE
    etapas["application"] = OK if dose.status in (StatusDose.APPLIED, StatusDose.NOT_ACCEPTED) else PENDENTE
    pesquisa_ok = dose.status_pesquisa in (StatusPesquisa.ANSWERED, StatusPesquisa.NOT_SENT) or not dose.enfermagem
    etapas["survey"] = OK if pesquisa_ok else PENDENTE
    return etapas


def checklist_operacional(
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    pacientes: Iterable[Paciente],
    doses: Iterable[Dose],
    diagnosticos: Iterable[Diagnostico],
    documentos: Iterable[DocumentoConsentimento],
) -> List[ItemChecklist]:
    por_protocolo = {p.id: p for p in protocolos}
    por_paciente = {p.id: p for p in pacientes}
    doses = list(doses)
    diagnosticos = list(diagnosticos)
    com_documento = {d.paciente_id for d in documentos}

    itens: List[ItemChecklist] = []
    for t in tratamentos:
        proto = por_protocolo.get(t.protocolo_id)
        paciente = por_paciente.get(t.paciente_id)
        if proto is None or paciente is None or not proto.is_medicamentoso:
            continue
        if t.status in (StatusTratamento.FINISHED, StatusTratamento.REFUSED):
            continue

        ativa = dose_ativa(d for d in doses if d.tratamento_id == t.id)
        faltantes = campos_faltantes(paciente)
        etapas = {"registration": OK if not faltantes else PENDENTE}
        if exige_termo(paciente, diagnosticos):
            etapas["consent"] = OK if paciente.id in com_documento else PENDENTE
        else:
            etapas["consent"] = NA
        etapas.update(etapas_da_dose(ativa))

        item = ItemChecklist(
            tratamento_id=t.id,
            paciente_id=paciente.id,
            dose_id=ativa.id if ativa else None,
            paciente_nome=paciente.nome_completo,
            responsavel_nome=paciente.responsavel.nome_completo,
            telefone=paciente.responsavel.telefone,
            diagnostico=paciente.diagnostico_principal,
            protocolo_nome=proto.nome,
            etapas={k: etapas[k] for k in ETAPAS},
            faltantes=faltantes,
        )
        if not item.completo:
            itens.append(item)
    return itens
