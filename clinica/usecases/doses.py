# clinica/usecases/doses.py
"""
UC: Registro de doses e manutenção de tratamentos.
- run_registrar_dose(): nova dose com ciclo automático e marcação de
  "última antes da consulta".
- run_atualizar_dose(): atualização rápida (status, pagamento, pesquisa...).
- run_atualizar_tratamento(): status e dados do tratamento.

Obs.:
- Sem acompanhamento da enfermagem a pesquisa fica sempre NOT_SENT.
- Trocar a situação do pagamento registra o momento da troca.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from clinica.config import DB_PATH
from clinica.domain.datas import to_iso
from clinica.domain.models import (
    Dose,
    StatusDose,
    StatusPagamento,
    StatusPesquisa,
    StatusTratamento,
    Tratamento,
)
from clinica.domain.projecao import ciclo_e_ultima_antes_consulta
from clinica.infra.logger import log_database_operation, log_dose, log_system_event, log_transaction
from clinica.infra.repositories import DoseRepo, TratamentoRepo
from clinica.usecases.painel import preparar_banco


def _data_iso(valor: str, campo: str) -> str:
    iso = to_iso(valor)
    if iso is None:
        raise ValueError(f"Data inválida para {campo}: {valor!r}")
    return iso


def _validar_nota(nota: Optional[int]) -> None:
    if nota is not None and not 0 <= nota <= 10:
        raise ValueError(f"Nota da pesquisa fora de 0-10: {nota}")


def run_registrar_dose(
    tratamento_id: str,
    data_aplicacao: str,
    status: StatusDose = StatusDose.APPLIED,
    status_pagamento: Optional[StatusPagamento] = None,
    lote: str = "",
    enfermagem: bool = False,
    status_pesquisa: Optional[StatusPesquisa] = None,
    nota_pesquisa: Optional[int] = None,
    comentario_pesquisa: Optional[str] = None,
    data_consulta: Optional[str] = None,
    db_path: str = DB_PATH,
    agora: Optional[datetime] = None,
) -> Dose:
    """Registra a próxima dose do tratamento.

    O ciclo é o número de doses já registradas + 1. Quando ele fecha o bloco
    de ``doses_planejadas_antes_consulta``, a dose sai marcada como última
    antes da consulta, com a data da consulta informada ou a do tratamento.

    Raises:
        RegistroNaoEncontrado: tratamento inexistente.
        ValueError: data inválida ou nota fora de 0-10.
    """
    agora = agora or datetime.now()
    dados = {"tratamento_id": tratamento_id, "data_aplicacao": data_aplicacao, "status": status.value}
    log_system_event("registrar_dose_start", dados)
    try:
        preparar_banco(db_path)
        aplicacao = _data_iso(data_aplicacao, "data_aplicacao")
        _validar_nota(nota_pesquisa)
        tratamento = TratamentoRepo(db_path).get(tratamento_id)
        repo = DoseRepo(db_path)
        ciclo, ultima = ciclo_e_ultima_antes_consulta(tratamento, repo.list(tratamento_id))

        consulta = None
        if ultima:
            consulta = _data_iso(data_consulta, "data_consulta") if data_consulta else tratamento.proxima_consulta

        dose = Dose(
            id=uuid.uuid4().hex,
            tratamento_id=tratamento_id,
            ciclo=ciclo,
            data_aplicacao=aplicacao,
            status=status,
            lote=lote,
            status_pagamento=status_pagamento,
            pagamento_atualizado_em=agora.isoformat(timespec="seconds") if status_pagamento else None,
            ultima_antes_consulta=ultima,
            data_consulta=consulta,
            enfermagem=enfermagem,
            status_pesquisa=(status_pesquisa or StatusPesquisa.NOT_SENT) if enfermagem else StatusPesquisa.NOT_SENT,
            nota_pesquisa=nota_pesquisa,
            comentario_pesquisa=comentario_pesquisa,
        )
        repo.upsert_many([dose])
        log_database_operation("dose", "INSERT", 1, id=dose.id)
        log_dose("registrada", dose.id, tratamento_id, ciclo=ciclo, ultima_antes_consulta=ultima)
        log_transaction("registrar_dose", dados, result={"dose_id": dose.id, "ciclo": ciclo})
        return dose
    except Exception as e:
        log_transaction("registrar_dose", dados, error=str(e))
        log_system_event("registrar_dose_error", {"error": str(e)}, level="error")
        raise


def run_atualizar_dose(
    dose_id: str,
    status: Optional[StatusDose] = None,
    status_pagamento: Optional[StatusPagamento] = None,
    data_aplicacao: Optional[str] = None,
    lote: Optional[str] = None,
    enfermagem: Optional[bool] = None,
    status_pesquisa: Optional[StatusPesquisa] = None,
    nota_pesquisa: Optional[int] = None,
    comentario_pesquisa: Optional[str] = None,
    db_path: str = DB_PATH,
    agora: Optional[datetime] = None,
) -> Dose:
    """Altera apenas os campos informados e devolve a dose atualizada."""
    agora = agora or datetime.now()
    campos: Dict[str, Any] = {
        k: v for k, v in {
            "status": status,
            "status_pagamento": status_pagamento,
            "lote": lote,
            "enfermagem": enfermagem,
            "status_pesquisa": status_pesquisa,
            "nota_pesquisa": nota_pesquisa,
            "comentario_pesquisa": comentario_pesquisa,
        }.items() if v is not None
    }
    dados = {"dose_id": dose_id, "campos": sorted(campos) + (["data_aplicacao"] if data_aplicacao else [])}
    log_system_event("atualizar_dose_start", dados)
    try:
        preparar_banco(db_path)
        repo = DoseRepo(db_path)
        atual = repo.get(dose_id)
        if data_aplicacao:
            campos["data_aplicacao"] = _data_iso(data_aplicacao, "data_aplicacao")
        if not campos:
            raise ValueError("Nada a alterar. Informe pelo menos um campo.")
        _validar_nota(nota_pesquisa)

        if status_pagamento is not None and status_pagamento != atual.status_pagamento:
            campos["pagamento_atualizado_em"] = agora.isoformat(timespec="seconds")
        com_enfermagem = campos.get("enfermagem", atual.enfermagem)
        if not com_enfermagem and campos.get("status_pesquisa", atual.status_pesquisa) != StatusPesquisa.NOT_SENT:
            campos["status_pesquisa"] = StatusPesquisa.NOT_SENT

        dose = repo.atualizar(dose_id, **campos)
        log_database_operation("dose", "UPDATE", 1, id=dose_id, campos=sorted(campos))
        log_dose("atualizada", dose_id, dose.tratamento_id, status=dose.status.value)
        log_transaction("atualizar_dose", dados, result={"status": dose.status.value})
        return dose
    except Exception as e:
        log_transaction("atualizar_dose", dados, error=str(e))
        log_system_event("atualizar_dose_error", {"error": str(e)}, level="error")
        raise


def run_atualizar_tratamento(
    tratamento_id: str,
    status: Optional[StatusTratamento] = None,
    proxima_consulta: Optional[str] = None,
    doses_planejadas: Optional[int] = None,
    observacoes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Tratamento:
    """Atualiza o tratamento. Mudanças de status recalculam a situação do paciente."""
    dados = {"tratamento_id": tratamento_id, "status": status.value if status else None}
    log_system_event("atualizar_tratamento_start", dados)
    try:
        preparar_banco(db_path)
        if doses_planejadas is not None and doses_planejadas < 0:
            raise ValueError(f"Doses planejadas inválidas: {doses_planejadas}")
        campos: Dict[str, Any] = {}
        if proxima_consulta:
            campos["proxima_consulta"] = _data_iso(proxima_consulta, "proxima_consulta")
        if doses_planejadas is not None:
            campos["doses_planejadas_antes_consulta"] = doses_planejadas
        if observacoes is not None:
            campos["observacoes"] = observacoes
        if not campos and status is None:
            raise ValueError("Nada a alterar. Informe pelo menos um campo.")

        repo = TratamentoRepo(db_path)
        tratamento = repo.atualizar(tratamento_id, **campos) if campos else repo.get(tratamento_id)
        if status is not None:
            tratamento = repo.atualizar_status(tratamento_id, status)
        log_database_operation("tratamento", "UPDATE", 1, id=tratamento_id, campos=sorted(campos))
        log_transaction("atualizar_tratamento", dados, result={"status": tratamento.status.value})
        return tratamento
    except Exception as e:
        log_transaction("atualizar_tratamento", dados, error=str(e))
        log_system_event("atualizar_tratamento_error", {"error": str(e)}, level="error")
        raise
