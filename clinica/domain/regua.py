# clinica/domain/regua.py
"""
Régua de contato: marcos de relacionamento de cada protocolo.

Cada marco gera um contato ``"{tratamento_id}_m_{dia}"`` na data
``início do tratamento + dia``. Um contato sai da lista apenas quando é
dispensado manualmente (botão OK); contatos com mais de 60 dias de atraso
deixam de ser exibidos.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from clinica.config import DEFAULTS
from clinica.domain.datas import diferenca_dias, parse_data, somar_dias
from clinica.domain.models import (
    CategoriaProtocolo,
    ContatoDispensado,
    Dose,
    FeedbackPaciente,
    Paciente,
    Protocolo,
    StatusTratamento,
    Tratamento,
)
from clinica.domain.projecao import projetar_proxima_dose


@dataclass(frozen=True)
class Contato:
    id: str
    tratamento_id: str
    paciente_id: str
    paciente_nome: str
    responsavel_nome: str
    telefone: str
    protocolo_nome: str
    mensagem: str
    data: date
    diff_dias: int
    is_monitoramento: bool


@dataclass(frozen=True)
class ContatoHistorico:
    id: str
    dispensado_em: str
    paciente_nome: str
    protocolo_nome: str
    mensagem: str
    is_monitoramento: bool
    feedback: Optional[FeedbackPaciente] = None


@dataclass(frozen=True)
class EventoLinhaDoTempo:
    data: date
    tipo: str                 # 'dose' | 'contato'
    descricao: str
    diff_dias: int
    atrasado: bool


def contato_id(tratamento_id: str, dia: int) -> str:
    return f"{tratamento_id}_m_{dia}"


def _ids_dispensados(dispensados: Iterable[ContatoDispensado]) -> set:
    return {c.contato_id for c in dispensados}


def _gerar_contatos(
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    pacientes: Iterable[Paciente],
    dispensados: Iterable[ContatoDispensado],
    hoje: date,
) -> List[Contato]:
    por_protocolo = {p.id: p for p in protocolos}
    por_paciente = {p.id: p for p in pacientes}
    ignorar = _ids_dispensados(dispensados)

    out: List[Contato] = []
    for t in tratamentos:
        if t.status != StatusTratamento.ONGOING:
            continue
        proto = por_protocolo.get(t.protocolo_id)
        paciente = por_paciente.get(t.paciente_id)
        if proto is None or not proto.marcos or paciente is None:
            continue
        for m in proto.marcos:
            cid = contato_id(t.id, m.dia)
            if cid in ignorar:
                continue
            data = somar_dias(t.data_inicio, m.dia)
            diff = diferenca_dias(data, hoje)
            if diff is None:
                continue
            out.append(Contato(
                id=cid,
                tratamento_id=t.id,
                paciente_id=paciente.id,
                paciente_nome=paciente.nome_completo,
                responsavel_nome=paciente.responsavel.nome_completo,
                telefone=paciente.responsavel.telefone,
                protocolo_nome=proto.nome,
                mensagem=m.mensagem,
                data=data,
                diff_dias=diff,
                is_monitoramento=proto.categoria == CategoriaProtocolo.MONITORING,
            ))
    return out


def proximos_contatos(
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    pacientes: Iterable[Paciente],
    dispensados: Iterable[ContatoDispensado],
    hoje: date,
    limite_atraso_dias: int = DEFAULTS.limite_atraso_dias,
) -> List[Contato]:
    """Contatos em aberto (futuros ou atrasados há menos de ``limite_atraso_dias``), por data."""
    contatos = _gerar_contatos(tratamentos, protocolos, pacientes, dispensados, hoje)
    out = [c for c in contatos if c.diff_dias >= -limite_atraso_dias]
    out.sort(key=lambda c: c.data)
    return out


def contatos_do_paciente(
    paciente_id: str,
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    pacientes: Iterable[Paciente],
    dispensados: Iterable[ContatoDispensado],
    hoje: date,
) -> List[Contato]:
    """Contatos do paciente na janela curta (-10 < diff < 90)."""
    proprios = [t for t in tratamentos if t.paciente_id == paciente_id]
    contatos = _gerar_contatos(proprios, protocolos, pacientes, dispensados, hoje)
    out = [c for c in contatos if -10 < c.diff_dias < 90]
    out.sort(key=lambda c: c.data)
    return out


def dispensar_contato(
    dispensados: Sequence[ContatoDispensado],
    contato: str,
    dispensado_em: str,
    feedback: Optional[FeedbackPaciente] = None,
) -> List[ContatoDispensado]:
    """Retorna uma nova lista com ``contato`` dispensado.

    Idempotente: se o contato já foi dispensado, a lista volta inalterada.
    """
    atual = list(dispensados)
    if contato in _ids_dispensados(atual):
        return atual
    atual.append(ContatoDispensado(contato_id=contato, dispensado_em=dispensado_em, feedback=feedback))
    return atual


def historico_contatos(
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    pacientes: Iterable[Paciente],
    dispensados: Iterable[ContatoDispensado],
    hoje: date,
    dias: Optional[int] = 30,
) -> List[ContatoHistorico]:
    """Contatos já dispensados, do mais recente para o mais antigo.

    ``dias=None`` devolve todo o histórico; caso contrário, apenas os
    dispensados a partir de ``hoje - dias``.
    """
    logs = {c.contato_id: c for c in dispensados}
    por_protocolo = {p.id: p for p in protocolos}
    por_paciente = {p.id: p for p in pacientes}
    corte = somar_dias(hoje, -dias) if dias is not None else None

    out: List[ContatoHistorico] = []
    for t in tratamentos:
        proto = por_protocolo.get(t.protocolo_id)
        paciente = por_paciente.get(t.paciente_id)
        if proto is None or not proto.marcos or paciente is None:
            continue
        for m in proto.marcos:
            log = logs.get(contato_id(t.id, m.dia))
            if log is None:
                continue
            quando = parse_data(log.dispensado_em)
            if corte is not None and (quando is None or quando < corte):
                continue
            out.append(ContatoHistorico(
                id=log.contato_id,
                dispensado_em=log.dispensado_em,
                paciente_nome=paciente.nome_completo,
                protocolo_nome=proto.nome,
                mensagem=m.mensagem,
                is_monitoramento=proto.categoria == CategoriaProtocolo.MONITORING,
                feedback=log.feedback,
            ))
    out.sort(key=lambda h: (parse_data(h.dispensado_em) or date.min, h.dispensado_em), reverse=True)
    return out


def linha_do_tempo_paciente(
    paciente_id: str,
    tratamentos: Iterable[Tratamento],
    protocolos: Iterable[Protocolo],
    pacientes: Iterable[Paciente],
    doses: Iterable[Dose],
    dispensados: Iterable[ContatoDispensado],
    hoje: date,
    limite_atraso_dias: int = DEFAULTS.limite_atraso_dias,
) -> List[EventoLinhaDoTempo]:
    """Próximas doses projetadas + contatos da régua do paciente, por data.

    Doses atrasadas há ``limite_atraso_dias`` ou mais ficam de fora, como no painel.
    """
    tratamentos = [t for t in tratamentos if t.paciente_id == paciente_id]
    protocolos = list(protocolos)
    doses = list(doses)
    por_protocolo = {p.id: p for p in protocolos}

    eventos: List[EventoLinhaDoTempo] = []
    for t in tratamentos:
        proto = por_protocolo.get(t.protocolo_id)
        if t.status != StatusTratamento.ONGOING or proto is None or not proto.is_medicamentoso:
            continue
        ev = projetar_proxima_dose(t, proto, doses, hoje, limite_atraso_dias)
        if ev is None:
            continue
        eventos.append(EventoLinhaDoTempo(
            data=ev.data,
            tipo="dose",
            descricao=f"{proto.nome} - ciclo {ev.ciclo}",
            diff_dias=ev.diff_dias,
            atrasado=ev.atrasada,
        ))

    for c in contatos_do_paciente(paciente_id, tratamentos, protocolos, pacientes, dispensados, hoje):
        eventos.append(EventoLinhaDoTempo(
            data=c.data,
            tipo="contato",
            descricao=c.mensagem,
            diff_dias=c.diff_dias,
            atrasado=c.diff_dias < 0,
        ))

    eventos.sort(key=lambda e: e.data)
    return eventos
