# clinica/usecases/painel.py
"""
UC: Painel clínico.

- carregar_snapshot(): lê todas as tabelas e devolve um Snapshot imutável.
- run_painel(): calcula os indicadores do painel a partir do snapshot.
- run_nps(): NPS da enfermagem e NPS geral.

As regras ficam no domínio; aqui só se carrega o estado e se registra o log.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from clinica.config import DB_PATH, DefaultConfig
from clinica.domain.datas import hoje as _hoje
from clinica.domain.models import (
    ContatoDispensado,
    Diagnostico,
    DocumentoConsentimento,
    Dose,
    LoteEstoque,
    Paciente,
    PedidoCompra,
    Protocolo,
    RegistroDispensacao,
    Tratamento,
    Venda,
)
from clinica.domain.nps import NPSResultado, nps_enfermagem, nps_painel
from clinica.domain.pacientes import (
    EstatisticasPacientes,
    estatisticas_pacientes,
    pacientes_por_diagnostico,
    pacientes_sem_termo,
)
from clinica.domain.pendencias import (
    DoseAtrasada,
    consultas_proximas,
    doses_atrasadas,
    doses_nao_aceitas,
    janela_atividade,
    pesquisas_pendentes,
)
from clinica.domain.projecao import frequencias_por_tratamento
from clinica.domain.regua import Contato, proximos_contatos
from clinica.infra.logger import log_database_operation, log_system_event
from clinica.infra.migrations import apply_migrations
from clinica.infra.repositories import (
    ContatoRepo,
    DiagnosticoRepo,
    DispensacaoRepo,
    DocumentoRepo,
    DoseRepo,
    LoteRepo,
    PacienteRepo,
    ParamsRepo,
    PedidoCompraRepo,
    ProtocoloRepo,
    TratamentoRepo,
    VendaRepo,
)
from clinica.infra.views import create_views


@dataclass(frozen=True)
class Snapshot:
    """Estado completo lido do banco; tuplas para não ser alterado por quem consome."""
    pacientes: Tuple[Paciente, ...] = ()
    diagnosticos: Tuple[Diagnostico, ...] = ()
    documentos: Tuple[DocumentoConsentimento, ...] = ()
    protocolos: Tuple[Protocolo, ...] = ()
    tratamentos: Tuple[Tratamento, ...] = ()
    doses: Tuple[Dose, ...] = ()
    lotes: Tuple[LoteEstoque, ...] = ()
    dispensacoes: Tuple[RegistroDispensacao, ...] = ()
    pedidos: Tuple[PedidoCompra, ...] = ()
    vendas: Tuple[Venda, ...] = ()
    dispensados: Tuple[ContatoDispensado, ...] = ()
    config: DefaultConfig = field(default_factory=DefaultConfig)


@dataclass(frozen=True)
class Painel:
    hoje: date
    estatisticas: EstatisticasPacientes
    atrasadas: List[DoseAtrasada]
    pesquisas_pendentes: List[Dose]
    consultas_proximas: List[Dose]
    janela_atividade: List[Dose]
    contatos: List[Contato]
    nps: NPSResultado
    por_diagnostico: List[Tuple[str, int]]
    sem_termo: List[Paciente]
    nao_aceitas: List[Dose]


def preparar_banco(db_path: str = DB_PATH) -> None:
    """Garante schema e views atualizados."""
    apply_migrations(db_path)
    log_database_operation("migrations", "APPLY", 0)
    create_views(db_path)
    log_database_operation("views", "CREATE", 0)


def carregar_snapshot(db_path: str = DB_PATH) -> Snapshot:
    preparar_banco(db_path)
    snap = Snapshot(
        pacientes=tuple(PacienteRepo(db_path).list()),
        diagnosticos=tuple(DiagnosticoRepo(db_path).list()),
        documentos=tuple(DocumentoRepo(db_path).list()),
        protocolos=tuple(ProtocoloRepo(db_path).list()),
        tratamentos=tuple(TratamentoRepo(db_path).list()),
        doses=tuple(DoseRepo(db_path).list()),
        lotes=tuple(LoteRepo(db_path).list()),
        dispensacoes=tuple(DispensacaoRepo(db_path).list()),
        pedidos=tuple(PedidoCompraRepo(db_path).list()),
        vendas=tuple(VendaRepo(db_path).list()),
        dispensados=tuple(ContatoRepo(db_path).list()),
        config=ParamsRepo(db_path).as_config(),
    )
    log_database_operation("snapshot", "SELECT", len(snap.doses), pacientes=len(snap.pacientes))
    return snap


def montar_painel(snap: Snapshot, hoje: date) -> Painel:
    cfg = snap.config
    freq = frequencias_por_tratamento(snap.tratamentos, snap.protocolos)
    return Painel(
        hoje=hoje,
        estatisticas=estatisticas_pacientes(snap.pacientes),
        atrasadas=doses_atrasadas(snap.doses, freq, hoje),
        pesquisas_pendentes=pesquisas_pendentes(snap.doses),
        consultas_proximas=consultas_proximas(snap.doses, hoje, cfg.janela_consultas_dias),
        janela_atividade=janela_atividade(snap.doses, hoje, cfg.janela_atividade_dias),
        contatos=proximos_contatos(
            snap.tratamentos, snap.protocolos, snap.pacientes, snap.dispensados, hoje, cfg.limite_atraso_dias
        ),
        nps=nps_painel(snap.doses),
        por_diagnostico=pacientes_por_diagnostico(snap.pacientes),
        sem_termo=pacientes_sem_termo(snap.pacientes, snap.diagnosticos, snap.documentos),
        nao_aceitas=doses_nao_aceitas(snap.doses),
    )


def run_painel(db_path: str = DB_PATH, hoje: Optional[date] = None) -> Painel:
    hoje = hoje or _hoje()
    log_system_event("painel_start", {"db_path": db_path, "hoje": hoje.isoformat()})
    try:
        painel = montar_painel(carregar_snapshot(db_path), hoje)
        log_system_event("painel_success", {
            "atrasadas": len(painel.atrasadas),
            "contatos": len(painel.contatos),
            "nps": painel.nps.score,
        })
        return painel
    except Exception as e:
        log_system_event("painel_error", {"error": str(e)}, level="error")
        raise


def run_nps(
    db_path: str = DB_PATH, hoje: Optional[date] = None, janela: Optional[int] = None
) -> Tuple[NPSResultado, NPSResultado]:
    """NPS da enfermagem e NPS geral do painel.

    ``janela`` (dias) troca a janela da enfermagem só nesta consulta; sem ela
    vale o parâmetro ``janela_nps_dias``.
    """
    if janela is not None and janela <= 0:
        raise ValueError(f"Janela do NPS inválida: {janela}")
    hoje = hoje or _hoje()
    snap = carregar_snapshot(db_path)
    dias = janela if janela is not None else snap.config.janela_nps_dias
    return nps_enfermagem(snap.doses, hoje, dias), nps_painel(snap.doses)
