# clinica/usecases/protocolos.py
"""
UC: Cadastro base de medicamentos e protocolos.
- run_cadastrar_medicamento() / run_listar_medicamentos()
- run_registrar_protocolo(): cria ou edita um protocolo; a régua de contato
  é gravada ordenada por dia.
- run_listar_protocolos()
"""

from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Tuple, Union

from clinica.config import DB_PATH
from clinica.domain.models import CategoriaProtocolo, Marco, Medicamento, Protocolo
from clinica.infra.logger import log_database_operation, log_system_event, log_transaction
from clinica.infra.repositories import MedicamentoRepo, ProtocoloRepo
from clinica.usecases.painel import preparar_banco

MarcoLike = Union[Marco, Tuple[int, str]]


def run_cadastrar_medicamento(
    principio_ativo: str,
    dosagem: str = "",
    nome_comercial: Optional[str] = None,
    fabricante: Optional[str] = None,
    forma: Optional[str] = None,
    medicamento_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Medicamento:
    """Cadastra (ou, com ``medicamento_id``, substitui) um item do cadastro base.

    Raises:
        ValueError: princípio ativo vazio ou apresentação já cadastrada.
    """
    dados = {"principio_ativo": principio_ativo, "dosagem": dosagem, "id": medicamento_id}
    log_system_event("cadastrar_medicamento_start", dados)
    try:
        preparar_banco(db_path)
        med = Medicamento(
            id=medicamento_id or uuid.uuid4().hex,
            principio_ativo=(principio_ativo or "").strip(),
            dosagem=(dosagem or "").strip(),
            nome_comercial=nome_comercial or None,
            fabricante=fabricante or None,
            forma=forma or None,
        )
        if not med.principio_ativo:
            raise ValueError("Princípio ativo obrigatório")

        repo = MedicamentoRepo(db_path)
        for outro in repo.list():
            if outro.id != med.id and outro.rotulo.lower() == med.rotulo.lower():
                raise ValueError(f"Medicamento já cadastrado: {outro.rotulo} ({outro.id})")
        repo.upsert_many([med])
        log_database_operation("medicamento", "UPSERT", 1, id=med.id)
        log_transaction("cadastrar_medicamento", dados, result={"medicamento_id": med.id})
        return med
    except Exception as e:
        log_transaction("cadastrar_medicamento", dados, error=str(e))
        log_system_event("cadastrar_medicamento_error", {"error": str(e)}, level="error")
        raise


def run_listar_medicamentos(db_path: str = DB_PATH) -> List[Medicamento]:
    preparar_banco(db_path)
    return MedicamentoRepo(db_path).list()


def _marcos_ordenados(marcos: Iterable[MarcoLike]) -> List[Marco]:
    out: List[Marco] = []
    for m in marcos:
        if not isinstance(m, Marco):
            m = Marco(dia=int(m[0]), mensagem=str(m[1]))
        if m.dia < 0:
            raise ValueError(f"Dia do marco inválido: {m.dia}")
        if not (m.mensagem or "").strip():
            raise ValueError(f"Marco do dia {m.dia} sem mensagem")
        out.append(Marco(dia=m.dia, mensagem=m.mensagem.strip()))
    out.sort(key=lambda m: m.dia)
    dias = [m.dia for m in out]
    repetidos = sorted({d for d in dias if dias.count(d) > 1})
    if repetidos:
        raise ValueError(f"Mais de um marco no mesmo dia: {repetidos}")
    return out


def run_registrar_protocolo(
    nome: str,
    categoria: CategoriaProtocolo,
    frequencia_dias: int = 0,
    medicamento: str = "",
    medicamento_id: Optional[str] = None,
    meta: Optional[str] = None,
    mensagem: Optional[str] = None,
    marcos: Iterable[MarcoLike] = (),
    protocolo_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Protocolo:
    """Cria um protocolo ou, com ``protocolo_id``, edita um existente.

    Com ``medicamento_id`` o rótulo do medicamento vem do cadastro base.
    Protocolos medicamentosos exigem medicamento e frequência > 0; os de
    acompanhamento não guardam medicamento.

    Raises:
        RegistroNaoEncontrado: protocolo ou medicamento inexistente.
        ValueError: dados inválidos ou dois marcos no mesmo dia.
    """
    dados = {"nome": nome, "categoria": categoria.value, "protocolo_id": protocolo_id}
    log_system_event("registrar_protocolo_start", dados)
    try:
        preparar_banco(db_path)
        repo = ProtocoloRepo(db_path)
        if protocolo_id:
            repo.get(protocolo_id)
        if not (nome or "").strip():
            raise ValueError("Nome do protocolo obrigatório")
        if medicamento_id:
            medicamento = MedicamentoRepo(db_path).get(medicamento_id).rotulo

        if categoria == CategoriaProtocolo.MEDICATION:
            if not (medicamento or "").strip():
                raise ValueError("Protocolo medicamentoso exige o medicamento")
            if frequencia_dias <= 0:
                raise ValueError(f"Frequência inválida: {frequencia_dias}")
        else:
            medicamento = ""
            if frequencia_dias < 0:
                raise ValueError(f"Frequência inválida: {frequencia_dias}")

        proto = Protocolo(
            id=protocolo_id or uuid.uuid4().hex,
            nome=nome.strip(),
            categoria=categoria,
            frequencia_dias=frequencia_dias,
            medicamento=(medicamento or "").strip(),
            meta=meta or None,
            mensagem=mensagem or None,
            marcos=_marcos_ordenados(marcos),
        )
        repo.upsert_many([proto])
        log_database_operation("protocolo", "UPDATE" if protocolo_id else "INSERT", 1, id=proto.id)
        log_transaction("registrar_protocolo", dados, result={"protocolo_id": proto.id, "marcos": len(proto.marcos)})
        return proto
    except Exception as e:
        log_transaction("registrar_protocolo", dados, error=str(e))
        log_system_event("registrar_protocolo_error", {"error": str(e)}, level="error")
        raise


def run_listar_protocolos(db_path: str = DB_PATH) -> List[Protocolo]:
    preparar_banco(db_path)
    return ProtocoloRepo(db_path).list()
