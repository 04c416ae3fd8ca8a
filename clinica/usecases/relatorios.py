# clinica/usecases/relatorios.py
"""
Relatórios tabulares (colunas, linhas, mensagem) para o DataTable do Textual:
- doses atrasadas
- régua de contato (próximos contatos)
- checklist operacional
- estoque por medicamento
- lotes a vencer (janela de dias)
- matriz de consumo (mensal/trimestral)
- pedidos de compra
- painel, NPS e caixa (KPIs, precificação, vendas pendentes)
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from clinica.config import DB_PATH
from clinica.domain.checklist import ETAPAS, ROTULOS_ETAPA, checklist_operacional
from clinica.domain.datas import formatar_data, hoje as _hoje
from clinica.domain.status import rotulo
from clinica.infra.logger import log_system_event, system_logger
from clinica.usecases.caixa import run_kpis, run_precificacao, run_vendas_pendentes
from clinica.usecases.compras import run_listar_pedidos
from clinica.usecases.contatos import run_proximos_contatos
from clinica.usecases.estoque import lotes_a_vencer, matriz_consumo, run_estoque
from clinica.usecases.painel import carregar_snapshot, montar_painel, run_nps

Tabela = tuple[list[str], list[list], Optional[str]]


# ----------------------
# 1) Doses atrasadas
# ----------------------

def relatorio_atrasadas(db_path: str = DB_PATH, hoje: Optional[date] = None) -> Tabela:
    snap = carregar_snapshot(db_path)
    painel = montar_painel(snap, hoje or _hoje())
    nomes = {p.id: p.nome_completo for p in snap.pacientes}
    paciente_de = {t.id: nomes.get(t.paciente_id, "-") for t in snap.tratamentos}
    columns = ["Dose", "Paciente", "Ciclo", "Aplicação", "Próxima", "Dias de atraso"]
    rows = [
        [
            a.dose.id,
            paciente_de.get(a.dose.tratamento_id, "-"),
            a.dose.ciclo,
            formatar_data(a.dose.data_aplicacao),
            formatar_data(a.proxima_data),
            a.dias_atraso,
        ]
        for a in painel.atrasadas
    ]
    system_logger.info(f"REPORT_ATRASADAS: {len(rows)} doses atrasadas")
    return columns, rows, None if rows else "Nenhuma dose atrasada."


# ----------------------
# 2) Régua de contato
# ----------------------

def relatorio_contatos(db_path: str = DB_PATH, hoje: Optional[date] = None) -> Tabela:
    contatos = run_proximos_contatos(db_path, hoje)
    columns = ["ID", "Paciente", "Responsável", "Telefone", "Protocolo", "Data", "Dias", "Mensagem"]
    rows = [
        [
            c.id,
            c.paciente_nome,
            c.responsavel_nome,
            c.telefone,
            c.protocolo_nome,
            formatar_data(c.data),
            c.diff_dias,
            c.mensagem,
        ]
        for c in contatos
    ]
    return columns, rows, None if rows else "Nenhum contato pendente."


# ----------------------
# 3) Checklist operacional
# ----------------------

def relatorio_checklist(db_path: str = DB_PATH) -> Tabela:
    """Tratamentos medicamentosos com alguma etapa pendente."""
    log_system_event("relatorio_checklist_start", {"db_path": db_path})
    try:
        snap = carregar_snapshot(db_path)
        itens = checklist_operacional(
            snap.tratamentos, snap.protocolos, snap.pacientes, snap.doses, snap.diagnosticos, snap.documentos
        )
        columns = ["Paciente", "Protocolo"] + [ROTULOS_ETAPA[e] for e in ETAPAS] + ["Cadastro faltando"]
        rows = [
            [i.paciente_nome, i.protocolo_nome]
            + [i.etapas.get(e, "") for e in ETAPAS]
            + [", ".join(i.faltantes)]
            for i in itens
        ]
        log_system_event("relatorio_checklist_success", {"itens": len(rows)})
        return columns, rows, None if rows else "Checklist em dia."
    except Exception as e:
        log_system_event("relatorio_checklist_error", {"error": str(e)}, level="error")
        raise


# ----------------------
# 4) Estoque
# ----------------------

def relatorio_estoque(busca: str = "", db_path: str = DB_PATH) -> Tabela:
    grupos = run_estoque(busca, db_path)
    columns = ["Medicamento", "Lote", "Validade", "Quantidade", "Unidade", "Ativo"]
    rows = []
    for g in grupos:
        for l in g.lotes:
            rows.append([g.medicamento, l.lote, formatar_data(l.validade), l.quantidade, l.unidade,
                         "Sim" if l.ativo else "Não"])
        rows.append([f"{g.medicamento} (total)", "", "", g.total, "", ""])
    return columns, rows, None if rows else "Nenhum lote cadastrado."


# ----------------------
# 5) Lotes a vencer
# ----------------------

def relatorio_vencimentos(janela_dias: int = 30, db_path: str = DB_PATH, hoje: Optional[date] = None) -> Tabela:
    log_system_event("relatorio_vencimentos_start", {"janela_dias": janela_dias, "db_path": db_path})
    try:
        itens = lotes_a_vencer(janela_dias, db_path, hoje or _hoje())
        columns = ["Medicamento", "Lote", "Validade", "Quantidade", "Dias", "Situação"]
        rows = [
            [
                v.lote.medicamento,
                v.lote.lote,
                formatar_data(v.lote.validade),
                v.lote.quantidade,
                v.dias_para_vencer,
                "Vencido" if v.vencido else "A vencer",
            ]
            for v in itens
        ]
        log_system_event("relatorio_vencimentos_success", {"total_lotes": len(rows)})
        return columns, rows, None if rows else "Nenhum lote a vencer encontrado."
    except Exception as e:
        log_system_event("relatorio_vencimentos_error", {"janela_dias": janela_dias, "error": str(e)}, level="error")
        raise


# ----------------------
# 6) Matriz de consumo
# ----------------------

def relatorio_consumo(
    inicio: Optional[str] = None, fim: Optional[str] = None, modo: str = "monthly", db_path: str = DB_PATH
) -> Tabela:
    log_system_event("relatorio_consumo_start", {"inicio": inicio, "fim": fim, "modo": modo})
    try:
        m = matriz_consumo(inicio, fim, modo, db_path)
        if m.vazia:
            return ["Medicamento", "Total"], [], "Nenhuma dispensação no período."
        columns = ["Medicamento"] + list(m.periodos) + ["Total"]
        rows = [[med] + valores + [total] for med, valores, total in m.linhas]
        rows.append(["Total"] + list(m.totais_periodo) + [m.total_geral])
        log_system_event("relatorio_consumo_success", {"medicamentos": len(m.linhas), "total": m.total_geral})
        return columns, rows, None
    except Exception as e:
        log_system_event("relatorio_consumo_error", {"error": str(e)}, level="error")
        raise


# ----------------------
# 7) Pedidos de compra
# ----------------------

def relatorio_pedidos(db_path: str = DB_PATH) -> Tabela:
    pedidos = run_listar_pedidos(None, db_path)
    columns = ["ID", "Medicamento", "Criado em", "Consumo 10d", "Estoque", "Sugerido", "Status"]
    rows = [
        [
            p.id,
            p.medicamento,
            formatar_data(p.criado_em),
            p.consumo_previsto_10d,
            p.estoque_atual,
            p.quantidade_sugerida if p.quantidade_sugerida is not None else "-",
            rotulo(p.status),
        ]
        for p in pedidos
    ]
    return columns, rows, None if rows else "Nenhum pedido de compra."


# ----------------------
# 8) Painel e NPS
# ----------------------

def relatorio_painel(db_path: str = DB_PATH, hoje: Optional[date] = None) -> Tabela:
    p = montar_painel(carregar_snapshot(db_path), hoje or _hoje())
    nps = "Sem dados" if p.nps.sem_dados else p.nps.score
    rows = [
        ["Pacientes ativos", p.estatisticas.ativos],
        ["Pacientes inativos", p.estatisticas.inativos],
        ["Doses atrasadas", len(p.atrasadas)],
        ["Contatos pendentes", len(p.contatos)],
        ["Pesquisas pendentes", len(p.pesquisas_pendentes)],
        ["Consultas próximas", len(p.consultas_proximas)],
        ["Doses não realizadas", len(p.nao_aceitas)],
        ["Pacientes sem termo", len(p.sem_termo)],
        ["NPS", nps],
    ]
    rows += [[f"Diagnóstico: {nome}", n] for nome, n in p.por_diagnostico]
    return ["Indicador", "Valor"], rows, None


def relatorio_nps(db_path: str = DB_PATH, hoje: Optional[date] = None) -> Tabela:
    enfermagem, geral = run_nps(db_path, hoje)
    columns = ["Visão", "NPS", "Respostas", "Promotores", "Neutros", "Detratores"]
    rows = [
        [nome, "Sem dados" if r.sem_dados else r.score, r.total, r.promotores, r.neutros, r.detratores]
        for nome, r in (("Enfermagem", enfermagem), ("Geral", geral))
    ]
    return columns, rows, None


# ----------------------
# 9) Caixa
# ----------------------

def relatorio_kpis(periodo: str = "month", db_path: str = DB_PATH, hoje: Optional[date] = None) -> Tabela:
    comp = run_kpis(periodo, db_path, hoje)
    a = comp.atual

    def _var(chave):
        v = comp.variacao.get(chave)
        return "-" if v is None else f"{v:.1f}%"

    rows = [
        ["Receita bruta", f"{a.receita_bruta:.2f}", _var("receita_bruta")],
        ["Vendas", a.total_vendas, _var("total_vendas")],
        ["CMV", f"{a.cmv:.2f}", ""],
        ["OPEX", f"{a.opex:.2f}", ""],
        ["Lucro líquido", f"{a.lucro_liquido:.2f}", _var("lucro_liquido")],
        ["Margem líquida", f"{a.margem_liquida:.1f}%", ""],
    ]
    return ["Indicador", "Valor", "Variação"], rows, None


def relatorio_precificacao(ordenar_por: str = "margin", ordem: str = "desc", db_path: str = DB_PATH) -> Tabela:
    itens = run_precificacao(ordenar_por, ordem, db_path)
    columns = ["Medicamento", "Lote", "Preço", "Custo", "Lucro estimado", "Margem", "Faixa"]
    rows = [
        [p.medicamento, p.lote, f"{p.preco_venda:.2f}", f"{p.custo_unitario:.2f}",
         f"{p.lucro_estimado:.2f}", p.margem_fmt, p.faixa]
        for p in itens
    ]
    return columns, rows, None if rows else "Nenhum lote com preço e custo cadastrados."


def relatorio_vendas_pendentes(db_path: str = DB_PATH) -> Tabela:
    itens = run_vendas_pendentes(db_path)
    columns = ["Dose", "Paciente", "Medicamento", "Aplicação", "Preço sugerido"]
    rows = [
        [p.dose_id, p.paciente_nome, p.medicamento, formatar_data(p.data_aplicacao), f"{p.preco_venda:.2f}"]
        for p in itens
    ]
    return columns, rows, None if rows else "Nenhuma venda pendente."
