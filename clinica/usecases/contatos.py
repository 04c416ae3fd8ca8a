# clinica/usecases/contatos.py
"""
UC: Régua de contato.
- run_proximos_contatos(): contatos em aberto.
- run_dispensar_contato(): botão OK (idempotente), com feedback opcional.
- run_historico_contatos(): contatos já dispensados.
- run_linha_do_tempo(): próximos eventos de um paciente.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from clinica.config import DB_PATH
from clinica.domain.datas import hoje as _hoje
from clinica.domain.models import FeedbackPaciente
from clinica.domain.regua import (
    Contato,
    ContatoHistorico,
    EventoLinhaDoTempo,
    historico_contatos,
    linha_do_tempo_paciente,
    proximos_contatos,
)
from clinica.infra.logger import log_database_operation, log_system_event, log_transaction
from clinica.infra.repositories import ContatoRepo
from clinica.usecases.painel import carregar_snapshot, preparar_banco


def run_proximos_contatos(db_path: str = DB_PATH, hoje: Optional[date] = None) -> List[Contato]:
    hoje = hoje or _hoje()
    snap = carregar_snapshot(db_path)
    return proximos_contatos(
        snap.tratamentos, snap.protocolos, snap.pacientes, snap.dispensados, hoje, snap.config.limite_atraso_dias
    )


def run_dispensar_contato(
    contato_id: str,
    feedback: Optional[FeedbackPaciente] = None,
    agora: Optional[datetime] = None,
    db_path: str = DB_PATH,
) -> bool:
    """Dispensa o contato. Retorna False quando ele já estava dispensado."""
    agora = agora or datetime.now()
    log_system_event("dispensar_contato_start", {"contato_id": contato_id})
    try:
        preparar_banco(db_path)
        criado = ContatoRepo(db_path).dispensar(contato_id, agora.isoformat(timespec="seconds"), feedback)
        if criado:
            log_database_operation("contato_dispensado", "INSERT", 1, contato_id=contato_id)
        log_transaction("dispensar_contato", {"contato_id": contato_id}, result="criado" if criado else "ja_dispensado")
        return criado
    except Exception as e:
        log_transaction("dispensar_contato", {"contato_id": contato_id}, error=str(e))
        log_system_event("dispensar_contato_error", {"error": str(e)}, level="error")
        raise


def run_historico_contatos(
    dias: Optional[int] = 30, db_path: str = DB_PATH, hoje: Optional[date] = None
) -> List[ContatoHistorico]:
    hoje = hoje or _hoje()
    snap = carregar_snapshot(db_path)
    return historico_contatos(snap.tratamentos, snap.protocolos, snap.pacientes, snap.dispensados, hoje, dias)


def run_linha_do_tempo(
    paciente_id: str, db_path: str = DB_PATH, hoje: Optional[date] = None
) -> List[EventoLinhaDoTempo]:
    hoje = hoje or _hoje()
    snap = carregar_snapshot(db_path)
    return linha_do_tempo_paciente(
        paciente_id, snap.tratamentos, snap.protocolos, snap.pacientes, snap.doses, snap.dispensados, hoje,
        snap.config.limite_atraso_dias,
    )
