# clinica/adapters/cli.py
"""
CLI do painel clínico (Typer).

Comandos principais:
- migrate                       -> aplica migrações e cria views
- importar <json>               -> importa um snapshot no formato da API
- importar-lotes <xlsx>         -> entradas de lote a partir de planilha
- params set/get/show           -> gerencia parâmetros globais
- painel                        -> indicadores do dia
- atrasadas / contatos / nps    -> pendências, régua de contato e NPS
- contato-ok <id>               -> dispensa um contato (com feedback opcional)
- termo <paciente> <arquivo> / sem-termo -> termos de consentimento
- historico / linha-do-tempo    -> contatos dispensados e próximos eventos
- dose nova|atualizar / tratamento atualizar
- medicamentos novo|listar / protocolos salvar|listar
- compras verificar|listar|status
- estoque / entrada-lote / dispensar
- caixa kpis|mensal|lotes|pendentes|vender
- rel vencimentos|consumo|checklist
- logs / tui
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import asdict, fields
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clinica.adapters.parsers import parse_enum
from clinica.adapters.snapshot_loader import run_importar_snapshot
from clinica.config import DB_PATH, DEFAULTS, DefaultConfig
from clinica.domain.datas import formatar_data, parse_data
from clinica.domain.models import (
    CategoriaProtocolo,
    ClassificacaoFeedback,
    FeedbackPaciente,
    FormaPagamento,
    StatusDose,
    StatusPagamento,
    StatusPedido,
    StatusPesquisa,
    StatusTratamento,
    Urgencia,
)
from clinica.domain.status import (
    ESTILOS,
    categoria_nps,
    categoria_status,
    cor_diagnostico,
    rotulo,
)
from clinica.domain.vendas import ROTULOS_FORMA_PAGAMENTO, ROTULOS_PERIODO
from clinica.infra.logger import LOG_FILES, get_log_summary
from clinica.infra.migrations import apply_migrations
from clinica.infra.repositories import ParamsRepo
from clinica.infra.views import create_views
from clinica.usecases.caixa import (
    run_kpis,
    run_precificacao,
    run_registrar_venda,
    run_relatorio_mensal,
    run_vendas_pendentes,
)
from clinica.usecases.compras import run_atualizar_pedido, run_listar_pedidos, run_verificar_compras
from clinica.usecases.contatos import (
    run_dispensar_contato,
    run_historico_contatos,
    run_linha_do_tempo,
    run_proximos_contatos,
)
from clinica.usecases.doses import run_atualizar_dose, run_atualizar_tratamento, run_registrar_dose
from clinica.usecases.estoque import dispensar, registrar_entrada_lote, run_estoque, run_importar_lotes_xlsx
from clinica.usecases.pacientes import run_anexar_termo, run_pacientes_sem_termo
from clinica.usecases.painel import run_nps, run_painel
from clinica.usecases.protocolos import (
    run_cadastrar_medicamento,
    run_listar_medicamentos,
    run_listar_protocolos,
    run_registrar_protocolo,
)
from clinica.usecases.relatorios import relatorio_checklist, relatorio_consumo, relatorio_vencimentos


app = typer.Typer(help="Painel Clínico — CLI")
console = Console()


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _num(val: Any, casas: int = 2) -> str:
    """Número no formato pt-BR (1.234,56)."""
    return f"{val:,.{casas}f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _brl(val: Any) -> str:
    return f"R$ {_num(float(val or 0))}"


def _pct(val: Optional[float]) -> str:
    return "-" if val is None else f"{_num(val, 1)}%"


def _estilo(texto: str, categoria: str) -> str:
    return f"[{ESTILOS[categoria]}]{texto}[/]"


def _data_ref(hoje: Optional[str]) -> Optional[date]:
    """Data de referência opcional (--hoje); None = data atual."""
    if not hoje:
        return None
    d = parse_data(hoje)
    if d is None:
        raise typer.BadParameter(f"Data inválida: {hoje}")
    return d


@contextmanager
def _tratando_erros():
    """Erros de negócio viram um painel vermelho e código de saída 1."""
    try:
        yield
    except (ValueError, FileNotFoundError) as e:
        console.print(Panel(str(e), title="Erro", border_style="red"))
        raise typer.Exit(code=1)


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe uma lista de dicts como tabela Rich (colunas = chaves do primeiro item)."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column.lower() in ["quantidade", "estoque", "demanda", "sugerido", "dias", "ciclo", "total"]:
            table.add_column(column, justify="right")
        elif column.lower() in ["data", "validade", "aplicação", "próxima"]:
            table.add_column(column, justify="center")
        else:
            table.add_column(column)

    for row in data:
        values = []
        for col in columns:
            val = row.get(col, "")
            if isinstance(val, float):
                values.append(_num(val))
            elif isinstance(val, date):
                values.append(formatar_data(val))
            elif val is None:
                values.append("-")
            else:
                values.append(str(val))
        table.add_row(*values)

    console.print(table)


def _display_tabela(res, title: str) -> None:
    """Exibe o retorno (colunas, linhas, mensagem) dos relatórios."""
    columns, rows, msg = res
    if not rows:
        console.print(Panel(msg or "Nenhum dado encontrado", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    for c in columns:
        table.add_column(str(c))
    for r in rows:
        table.add_row(*["-" if v is None else str(v) for v in r])
    console.print(table)


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Aplica migrações e recria as views auxiliares."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


@app.command("importar")
def cmd_importar(
    path: str = typer.Argument(..., help="Arquivo JSON com o snapshot da API"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Importa (upsert) pacientes, protocolos, tratamentos, doses, estoque, vendas..."""
    with _tratando_erros():
        contagem = run_importar_snapshot(path, db_path=db_path)
    _display_table([{"recurso": k, "registros": v} for k, v in contagem.items()], title="Importação")


@app.command("importar-lotes")
def cmd_importar_lotes(
    path: str = typer.Argument(..., help="Caminho do XLSX de lotes"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra entradas de lote a partir de um XLSX."""
    with _tratando_erros():
        info = run_importar_lotes_xlsx(path, db_path=db_path)
    console.print(Panel(
        f"Lotes inseridos: {info['linhas_inseridas']}\nPedidos recebidos: {info['pedidos_recebidos']}",
        title="Entradas em Lote",
    ))


params_app = typer.Typer(help="Gerenciar parâmetros globais (janelas e fatores).")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    horizonte_compra_dias: Optional[int] = typer.Option(None, help="Janela de previsão de consumo (dias)"),
    fator_compra: Optional[int] = typer.Option(None, help="Quantidade sugerida = demanda x fator"),
    janela_nps_dias: Optional[int] = typer.Option(None, help="Janela do NPS da enfermagem (dias)"),
    janela_consultas_dias: Optional[int] = typer.Option(None, help="Retornos exibidos no painel (dias)"),
    janela_atividade_dias: Optional[int] = typer.Option(None, help="Doses em hoje ± N dias"),
    limite_atraso_dias: Optional[int] = typer.Option(None, help="Atrasos mais antigos deixam de aparecer"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Define parâmetros globais (apenas os informados são alterados)."""
    valores = {
        "horizonte_compra_dias": horizonte_compra_dias,
        "fator_compra": fator_compra,
        "janela_nps_dias": janela_nps_dias,
        "janela_consultas_dias": janela_consultas_dias,
        "janela_atividade_dias": janela_atividade_dias,
        "limite_atraso_dias": limite_atraso_dias,
    }
    items = [(k, str(v)) for k, v in valores.items() if v is not None]
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    apply_migrations(db_path)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: fator_compra | janela_nps_dias"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra um parâmetro específico."""
    apply_migrations(db_path)
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    apply_migrations(db_path)
    efetivos = ParamsRepo(db_path).as_config()
    if as_json:
        _print_json({"params": asdict(efetivos), "_defaults": asdict(DEFAULTS), "_db": db_path})
        return
    table = Table(title="Parâmetros do Sistema", box=box.ROUNDED)
    table.add_column("Parâmetro")
    table.add_column("Valor Atual", justify="right")
    table.add_column("Valor Padrão", justify="right")
    for f in fields(DefaultConfig):
        table.add_row(f.name, str(getattr(efetivos, f.name)), str(getattr(DEFAULTS, f.name)))
    console.print(table)
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# painel e pendências
# -----------------------

@app.command("painel")
def cmd_painel(
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Indicadores do dia: pacientes, atrasos, contatos, NPS e diagnósticos."""
    with _tratando_erros():
        p = run_painel(db_path, _data_ref(hoje))

    nps = "-" if p.nps.sem_dados else _estilo(str(p.nps.score), categoria_nps(p.nps.score))
    resumo = "\n".join([
        f"Pacientes ativos: {p.estatisticas.ativos} | inativos: {p.estatisticas.inativos} | total: {p.estatisticas.total}",
        f"Doses atrasadas: {len(p.atrasadas)}",
        f"Contatos pendentes: {len(p.contatos)}",
        f"Pesquisas pendentes: {len(p.pesquisas_pendentes)}",
        f"Consultas próximas: {len(p.consultas_proximas)}",
        f"Doses não realizadas: {len(p.nao_aceitas)}",
        f"Pacientes sem termo: {len(p.sem_termo)}",
        f"NPS: {nps}",
    ])
    console.print(Panel(resumo, title=f"Painel — {formatar_data(p.hoje)}", border_style="blue"))

    if p.por_diagnostico:
        table = Table(title="Pacientes por diagnóstico", box=box.ROUNDED)
        table.add_column("Diagnóstico")
        table.add_column("Pacientes", justify="right")
        for nome, n in p.por_diagnostico:
            table.add_row(f"[{cor_diagnostico(nome)}]{nome}[/]", str(n))
        console.print(table)

    _display_table([
        {
            "dose": d.id,
            "ciclo": d.ciclo,
            "aplicação": formatar_data(d.data_aplicacao),
            "status": _estilo(rotulo(d.status), categoria_status(d.status)),
            "pagamento": _estilo(rotulo(d.status_pagamento), categoria_status(d.status_pagamento)),
        }
        for d in p.janela_atividade
    ], title="Atividade da semana")


@app.command("atrasadas")
def cmd_atrasadas(
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Tratamentos cuja próxima dose já deveria ter sido aplicada."""
    with _tratando_erros():
        p = run_painel(db_path, _data_ref(hoje))
    _display_table([
        {
            "dose": a.dose.id,
            "tratamento": a.dose.tratamento_id,
            "ciclo": a.dose.ciclo,
            "aplicação": formatar_data(a.dose.data_aplicacao),
            "próxima": formatar_data(a.proxima_data),
            "dias": a.dias_atraso,
        }
        for a in p.atrasadas
    ], title="Doses atrasadas")


@app.command("contatos")
def cmd_contatos(
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Próximos contatos da régua (e atrasados)."""
    with _tratando_erros():
        contatos = run_proximos_contatos(db_path, _data_ref(hoje))
    _display_table([
        {
            "id": c.id,
            "paciente": c.paciente_nome,
            "responsável": c.responsavel_nome,
            "telefone": c.telefone,
            "protocolo": c.protocolo_nome,
            "data": c.data,
            "dias": _estilo(str(c.diff_dias), "perigo" if c.diff_dias < 0 else "info"),
            "mensagem": c.mensagem,
        }
        for c in contatos
    ], title="Régua de contato")


@app.command("contato-ok")
def cmd_contato_ok(
    contato_id: str = typer.Argument(..., help="ID do contato (ex.: t1_m_30)"),
    feedback: Optional[str] = typer.Option(None, help="Relato do responsável"),
    classificacao: str = typer.Option("NEUTRO", help="POSITIVO | NEUTRO | NEGATIVO"),
    urgencia: str = typer.Option("BAIXA", help="BAIXA | MEDIA | ALTA"),
    resposta_medica: bool = typer.Option(False, "--resposta-medica", help="Precisa de retorno médico"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Marca um contato como realizado (idempotente)."""
    with _tratando_erros():
        fb = None
        if feedback:
            fb = FeedbackPaciente(
                texto=feedback,
                classificacao=parse_enum(ClassificacaoFeedback, classificacao),
                urgencia=parse_enum(Urgencia, urgencia),
                precisa_resposta_medica=resposta_medica,
            )
        criado = run_dispensar_contato(contato_id, fb, db_path=db_path)
    if criado:
        typer.echo(f">> Contato {contato_id} dispensado.")
    else:
        typer.echo(f">> Contato {contato_id} já estava dispensado.")


@app.command("historico")
def cmd_historico(
    dias: int = typer.Option(30, help="Período em dias"),
    todos: bool = typer.Option(False, "--todos", help="Histórico completo"),
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Contatos já realizados, do mais recente para o mais antigo."""
    with _tratando_erros():
        itens = run_historico_contatos(None if todos else dias, db_path, _data_ref(hoje))
    _display_table([
        {
            "id": h.id,
            "data": formatar_data(h.dispensado_em),
            "paciente": h.paciente_nome,
            "protocolo": h.protocolo_nome,
            "tipo": "Acompanhamento" if h.is_monitoramento else "Medicamentoso",
            "feedback": h.feedback.texto if h.feedback else "",
        }
        for h in itens
    ], title="Histórico de contatos")


@app.command("linha-do-tempo")
def cmd_linha_do_tempo(
    paciente_id: str = typer.Argument(..., help="ID do paciente"),
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Próximas doses e contatos de um paciente."""
    with _tratando_erros():
        eventos = run_linha_do_tempo(paciente_id, db_path, _data_ref(hoje))
    _display_table([
        {
            "data": e.data,
            "tipo": e.tipo,
            "descrição": e.descricao,
            "dias": _estilo(str(e.diff_dias), "perigo" if e.atrasado else "info"),
        }
        for e in eventos
    ], title=f"Linha do tempo — {paciente_id}")


@app.command("nps")
def cmd_nps(
    janela: Optional[int] = typer.Option(None, help="Janela da enfermagem em dias (30 ou 60; padrão: parâmetro)"),
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """NPS da enfermagem (janela configurável) e NPS geral."""
    with _tratando_erros():
        enfermagem, geral = run_nps(db_path, _data_ref(hoje), janela)
    table = Table(title="NPS", box=box.ROUNDED)
    for col in ("Visão", "NPS", "Respostas", "Promotores", "Neutros", "Detratores"):
        table.add_column(col, justify="left" if col == "Visão" else "right")
    titulo = f"Enfermagem ({janela} dias)" if janela else "Enfermagem"
    for nome, r in ((titulo, enfermagem), ("Geral", geral)):
        score = "Sem dados" if r.sem_dados else _estilo(str(r.score), categoria_nps(r.score))
        table.add_row(nome, score, str(r.total), str(r.promotores), str(r.neutros), str(r.detratores))
    console.print(table)


# -----------------------
# termos de consentimento
# -----------------------

@app.command("termo")
def cmd_termo(
    paciente_id: str = typer.Argument(..., help="ID do paciente"),
    arquivo: str = typer.Argument(..., help="Termo assinado (PDF, DOC ou DOCX)"),
    por: Optional[str] = typer.Option(None, help="Quem enviou"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Anexa o termo de consentimento de um paciente."""
    with _tratando_erros():
        doc = run_anexar_termo(paciente_id, arquivo, enviado_por=por, db_path=db_path)
    typer.echo(f">> Termo {doc.nome_arquivo} registrado para {paciente_id}.")


@app.command("sem-termo")
def cmd_sem_termo(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Pacientes ativos que ainda precisam enviar o termo."""
    with _tratando_erros():
        pacientes = run_pacientes_sem_termo(db_path)
    _display_table([
        {"id": p.id, "paciente": p.nome_completo, "diagnóstico": p.diagnostico_principal or "-"}
        for p in pacientes
    ], title="Pacientes sem termo")


# -----------------------
# doses e tratamentos
# -----------------------

dose_app = typer.Typer(help="Registro e atualização de doses.")
app.add_typer(dose_app, name="dose")
tratamento_app = typer.Typer(help="Status e dados dos tratamentos.")
app.add_typer(tratamento_app, name="tratamento")


def _enum_opcional(cls, valor: Optional[str]):
    return parse_enum(cls, valor) if valor else None


@dose_app.command("nova")
def cmd_dose_nova(
    tratamento_id: str = typer.Argument(..., help="ID do tratamento"),
    data: str = typer.Argument(..., help="Data da aplicação (YYYY-MM-DD ou DD/MM/AAAA)"),
    status: str = typer.Option("APPLIED", help="PENDING | APPLIED | NOT_ACCEPTED"),
    pagamento: Optional[str] = typer.Option(None, help="WAITING_PIX | WAITING_CARD | WAITING_BOLETO | PAID | WAITING_DELIVERY"),
    lote: str = typer.Option("", help="Número do lote aplicado"),
    enfermagem: bool = typer.Option(False, "--enfermagem", help="Aplicação acompanhada pela enfermagem"),
    pesquisa: Optional[str] = typer.Option(None, help="NOT_SENT | WAITING | SENT | ANSWERED"),
    nota: Optional[int] = typer.Option(None, help="Nota da pesquisa (0-10)"),
    comentario: Optional[str] = typer.Option(None, help="Comentário da pesquisa"),
    consulta: Optional[str] = typer.Option(None, help="Data da consulta (se for a última antes dela)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra a próxima dose de um tratamento (ciclo automático)."""
    with _tratando_erros():
        dose = run_registrar_dose(
            tratamento_id, data,
            status=parse_enum(StatusDose, status),
            status_pagamento=_enum_opcional(StatusPagamento, pagamento),
            lote=lote,
            enfermagem=enfermagem,
            status_pesquisa=_enum_opcional(StatusPesquisa, pesquisa),
            nota_pesquisa=nota,
            comentario_pesquisa=comentario,
            data_consulta=consulta,
            db_path=db_path,
        )
    extra = " (última antes da consulta)" if dose.ultima_antes_consulta else ""
    typer.echo(f">> Dose {dose.id} registrada: ciclo {dose.ciclo}{extra}")


@dose_app.command("atualizar")
def cmd_dose_atualizar(
    dose_id: str = typer.Argument(..., help="ID da dose"),
    status: Optional[str] = typer.Option(None, help="PENDING | APPLIED | NOT_ACCEPTED"),
    pagamento: Optional[str] = typer.Option(None, help="Situação do pagamento"),
    data: Optional[str] = typer.Option(None, help="Nova data de aplicação"),
    lote: Optional[str] = typer.Option(None, help="Número do lote"),
    enfermagem: Optional[bool] = typer.Option(None, "--enfermagem/--sem-enfermagem", help="Acompanhamento da enfermagem"),
    pesquisa: Optional[str] = typer.Option(None, help="NOT_SENT | WAITING | SENT | ANSWERED"),
    nota: Optional[int] = typer.Option(None, help="Nota da pesquisa (0-10)"),
    comentario: Optional[str] = typer.Option(None, help="Comentário da pesquisa"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Atualiza status, pagamento ou pesquisa de uma dose."""
    with _tratando_erros():
        dose = run_atualizar_dose(
            dose_id,
            status=_enum_opcional(StatusDose, status),
            status_pagamento=_enum_opcional(StatusPagamento, pagamento),
            data_aplicacao=data,
            lote=lote,
            enfermagem=enfermagem,
            status_pesquisa=_enum_opcional(StatusPesquisa, pesquisa),
            nota_pesquisa=nota,
            comentario_pesquisa=comentario,
            db_path=db_path,
        )
    typer.echo(
        f">> Dose {dose.id}: {rotulo(dose.status)} | pagamento: {rotulo(dose.status_pagamento)}"
        f" | pesquisa: {rotulo(dose.status_pesquisa)}"
    )


@tratamento_app.command("atualizar")
def cmd_tratamento_atualizar(
    tratamento_id: str = typer.Argument(..., help="ID do tratamento"),
    status: Optional[str] = typer.Option(None, help="ONGOING | FINISHED | REFUSED | SUSPENDED | EXTERNAL"),
    consulta: Optional[str] = typer.Option(None, help="Próxima consulta"),
    planejadas: Optional[int] = typer.Option(None, help="Doses planejadas antes da consulta"),
    observacoes: Optional[str] = typer.Option(None, help="Observações"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Muda o status (e dados) de um tratamento; recalcula se o paciente está ativo."""
    with _tratando_erros():
        t = run_atualizar_tratamento(
            tratamento_id,
            status=_enum_opcional(StatusTratamento, status),
            proxima_consulta=consulta,
            doses_planejadas=planejadas,
            observacoes=observacoes,
            db_path=db_path,
        )
    typer.echo(f">> Tratamento {t.id}: {rotulo(t.status)}")


# -----------------------
# cadastros: medicamentos e protocolos
# -----------------------

med_app = typer.Typer(help="Cadastro base de medicamentos.")
app.add_typer(med_app, name="medicamentos")
protocolo_app = typer.Typer(help="Protocolos e régua de contato.")
app.add_typer(protocolo_app, name="protocolos")


@med_app.command("novo")
def cmd_medicamento_novo(
    principio_ativo: str = typer.Argument(..., help="Princípio ativo (ex.: Acetato de Leuprorrelina)"),
    dosagem: str = typer.Argument("", help="Apresentação (ex.: 3.75mg)"),
    nome_comercial: Optional[str] = typer.Option(None, "--nome-comercial", help="Nome comercial"),
    fabricante: Optional[str] = typer.Option(None, help="Fabricante"),
    forma: Optional[str] = typer.Option(None, help="Forma farmacêutica"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Cadastra um medicamento."""
    with _tratando_erros():
        med = run_cadastrar_medicamento(principio_ativo, dosagem, nome_comercial, fabricante, forma, db_path=db_path)
    typer.echo(f">> Medicamento {med.rotulo} cadastrado: {med.id}")


@med_app.command("listar")
def cmd_medicamento_listar(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Lista o cadastro base de medicamentos."""
    with _tratando_erros():
        meds = run_listar_medicamentos(db_path)
    _display_table([
        {
            "id": m.id,
            "princípio ativo": m.principio_ativo,
            "dosagem": m.dosagem,
            "nome comercial": m.nome_comercial,
            "fabricante": m.fabricante,
            "forma": m.forma,
        }
        for m in meds
    ], title="Medicamentos")


def _marco(txt: str) -> Tuple[int, str]:
    """'7:Mensagem' -> (7, 'Mensagem')."""
    dia, sep, mensagem = txt.partition(":")
    if not sep or not dia.strip().lstrip("-").isdigit():
        raise ValueError(f"Marco inválido: {txt!r} (use DIA:MENSAGEM)")
    return int(dia), mensagem


@protocolo_app.command("salvar")
def cmd_protocolo_salvar(
    nome: str = typer.Argument(..., help="Nome do protocolo"),
    categoria: str = typer.Option("MEDICATION", help="MEDICATION | MONITORING"),
    frequencia: int = typer.Option(0, help="Frequência das doses (dias)"),
    medicamento: str = typer.Option("", help="Rótulo do medicamento"),
    medicamento_id: Optional[str] = typer.Option(None, "--medicamento-id", help="Medicamento do cadastro base"),
    meta: Optional[str] = typer.Option(None, help="Meta terapêutica"),
    mensagem: Optional[str] = typer.Option(None, help="Mensagem padrão"),
    marco: Optional[List[str]] = typer.Option(None, help="Marco da régua DIA:MENSAGEM (repetível)"),
    protocolo_id: Optional[str] = typer.Option(None, "--id", help="Edita o protocolo com este ID"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Cria ou edita um protocolo (marcos ordenados por dia)."""
    with _tratando_erros():
        proto = run_registrar_protocolo(
            nome,
            parse_enum(CategoriaProtocolo, categoria),
            frequencia_dias=frequencia,
            medicamento=medicamento,
            medicamento_id=medicamento_id,
            meta=meta,
            mensagem=mensagem,
            marcos=[_marco(m) for m in marco or []],
            protocolo_id=protocolo_id,
            db_path=db_path,
        )
    dias = ", ".join(str(m.dia) for m in proto.marcos) or "-"
    typer.echo(f">> Protocolo {proto.nome} salvo: {proto.id} (marcos: {dias})")


@protocolo_app.command("listar")
def cmd_protocolo_listar(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Lista os protocolos com a régua de contato."""
    with _tratando_erros():
        protos = run_listar_protocolos(db_path)
    _display_table([
        {
            "id": p.id,
            "protocolo": p.nome,
            "tipo": "Medicamentoso" if p.is_medicamentoso else "Acompanhamento",
            "medicamento": p.medicamento or "-",
            "dias": p.frequencia_dias,
            "marcos": ", ".join(str(m.dia) for m in p.marcos),
        }
        for p in protos
    ], title="Protocolos")


# -----------------------
# compras
# -----------------------

compras_app = typer.Typer(help="Pedidos de compra de medicamentos.")
app.add_typer(compras_app, name="compras")


def _linhas_pedidos(pedidos) -> List[Dict[str, Any]]:
    return [
        {
            "id": p.id,
            "medicamento": p.medicamento,
            "data": formatar_data(p.criado_em),
            "demanda": p.consumo_previsto_10d,
            "estoque": p.estoque_atual,
            "sugerido": p.quantidade_sugerida,
            "status": rotulo(p.status),
        }
        for p in pedidos
    ]


@compras_app.command("verificar")
def cmd_compras_verificar(
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Prevê o consumo dos próximos dias e cria os pedidos que faltarem."""
    with _tratando_erros():
        res = run_verificar_compras(db_path, _data_ref(hoje))
    console.print(Panel(res.mensagem, title="Verificação de Compras",
                        border_style="green" if res.criados else "blue"))
    if res.criados:
        _display_table(_linhas_pedidos(res.criados), title="Pedidos criados")


@compras_app.command("listar")
def cmd_compras_listar(
    status: Optional[str] = typer.Option(None, help="PENDING | ORDERED | RECEIVED"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista os pedidos de compra (mais novos primeiro)."""
    with _tratando_erros():
        filtro = parse_enum(StatusPedido, status) if status else None
        pedidos = run_listar_pedidos(filtro, db_path)
    _display_table(_linhas_pedidos(pedidos), title="Pedidos de compra")


@compras_app.command("status")
def cmd_compras_status(
    pedido_id: str = typer.Argument(..., help="ID do pedido"),
    novo_status: str = typer.Argument(..., help="ORDERED | RECEIVED"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Avança o status do pedido (PENDING -> ORDERED -> RECEIVED)."""
    with _tratando_erros():
        pedido = run_atualizar_pedido(pedido_id, parse_enum(StatusPedido, novo_status), db_path)
    typer.echo(f">> Pedido {pedido.id}: {rotulo(pedido.status)}")


# -----------------------
# estoque
# -----------------------

@app.command("estoque")
def cmd_estoque(
    busca: str = typer.Option("", help="Filtra pelo nome do medicamento"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lotes agrupados por medicamento."""
    with _tratando_erros():
        grupos = run_estoque(busca, db_path)
    if not grupos:
        console.print(Panel("Nenhum lote encontrado", title="Estoque", border_style="yellow"))
        return
    for g in grupos:
        _display_table([
            {
                "id": l.id,
                "lote": l.lote,
                "validade": formatar_data(l.validade),
                "quantidade": l.quantidade,
                "unidade": l.unidade,
                "ativo": "Sim" if l.ativo else "Não",
            }
            for l in g.lotes
        ], title=f"{g.medicamento} — total {g.total}")


@app.command("entrada-lote")
def cmd_entrada_lote(
    medicamento: str = typer.Argument(..., help="Nome do medicamento"),
    lote: str = typer.Argument(..., help="Número do lote"),
    quantidade: int = typer.Argument(..., help="Quantidade recebida"),
    validade: Optional[str] = typer.Option(None, help="Validade (YYYY-MM-DD ou DD/MM/AAAA)"),
    unidade: str = typer.Option("Ampola", help="Unidade"),
    custo: Optional[float] = typer.Option(None, help="Custo unitário"),
    preco: Optional[float] = typer.Option(None, help="Preço de venda"),
    pedido: Optional[str] = typer.Option(None, help="Pedido de compra atendido por este lote"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra a entrada de um lote."""
    with _tratando_erros():
        novo = registrar_entrada_lote(
            medicamento, lote, validade, quantidade, unidade=unidade,
            custo_unitario=custo, preco_venda=preco, pedido_id=pedido, db_path=db_path,
        )
    typer.echo(f">> Lote {novo.lote} ({novo.medicamento}) registrado: {novo.id}")


@app.command("dispensar")
def cmd_dispensar(
    lote_id: str = typer.Argument(..., help="ID do lote"),
    paciente_id: str = typer.Argument(..., help="ID do paciente"),
    dose: Optional[str] = typer.Option(None, help="ID da dose aplicada"),
    quantidade: int = typer.Option(1, help="Unidades dispensadas"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Baixa unidades de um lote para um paciente."""
    with _tratando_erros():
        lote = dispensar(lote_id, paciente_id, dose, quantidade, db_path=db_path)
    typer.echo(f">> Dispensado. Saldo do lote {lote.lote}: {lote.quantidade}")


# -----------------------
# caixa
# -----------------------

caixa_app = typer.Typer(help="Caixa: vendas, KPIs e precificação.")
app.add_typer(caixa_app, name="caixa")


@caixa_app.command("kpis")
def cmd_caixa_kpis(
    periodo: str = typer.Option("month", help="month | 3months | year | all"),
    hoje: Optional[str] = typer.Option(None, "--hoje", help="Data de referência (YYYY-MM-DD)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Receita, CMV, OPEX, lucro líquido e margem, com variação ao período anterior."""
    with _tratando_erros():
        comp = run_kpis(periodo, db_path, _data_ref(hoje))
    a = comp.atual
    table = Table(title=f"KPIs — {ROTULOS_PERIODO.get(periodo, periodo)}", box=box.ROUNDED)
    table.add_column("Indicador")
    table.add_column("Valor", justify="right")
    table.add_column("Variação", justify="right")
    table.add_row("Receita bruta", _brl(a.receita_bruta), _pct(comp.variacao.get("receita_bruta")))
    table.add_row("Vendas", str(a.total_vendas), _pct(comp.variacao.get("total_vendas")))
    table.add_row("CMV", _brl(a.cmv), "")
    table.add_row("OPEX", _brl(a.opex), "")
    table.add_row("Lucro líquido", _brl(a.lucro_liquido), _pct(comp.variacao.get("lucro_liquido")))
    table.add_row("Margem líquida", _pct(a.margem_liquida), "")
    console.print(table)


@caixa_app.command("mensal")
def cmd_caixa_mensal(
    ano: int = typer.Argument(..., help="Ano (YYYY)"),
    mes: int = typer.Argument(..., help="Mês (1-12)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Relatório mensal: resumo, formas de pagamento e vendas."""
    with _tratando_erros():
        rel = run_relatorio_mensal(ano, mes, db_path)
    r = rel.resumo
    console.print(Panel(
        f"Receita: {_brl(r.receita_bruta)} | Vendas: {r.total_vendas} | "
        f"Lucro líquido: {_brl(r.lucro_liquido)} | Margem: {_pct(r.margem_liquida)}",
        title=f"Relatório {mes:02d}/{ano}",
    ))
    _display_table([
        {"forma": ROTULOS_FORMA_PAGAMENTO.get(f, str(f)), "vendas": int(v["count"]), "total": _brl(v["total"])}
        for f, v in rel.por_forma_pagamento.items()
    ], title="Por forma de pagamento")
    _display_table([
        {
            "data": formatar_data(v.data_venda),
            "dose": v.dose_id,
            "medicamento": v.medicamento,
            "preço": _brl(v.preco_venda),
            "forma": ROTULOS_FORMA_PAGAMENTO.get(v.forma_pagamento, str(v.forma_pagamento)),
        }
        for v in rel.vendas
    ], title="Vendas do mês")


@caixa_app.command("lotes")
def cmd_caixa_lotes(
    ordenar: str = typer.Option("margin", help="margin | profit | medication"),
    ordem: str = typer.Option("desc", help="asc | desc"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lucro e margem estimados por lote."""
    with _tratando_erros():
        itens = run_precificacao(ordenar, ordem, db_path)
    faixas = {"good": "sucesso", "fair": "alerta", "poor": "perigo"}
    _display_table([
        {
            "medicamento": p.medicamento,
            "lote": p.lote,
            "preço": _brl(p.preco_venda),
            "custo": _brl(p.custo_unitario),
            "lucro": _brl(p.lucro_estimado),
            "margem": _estilo(p.margem_fmt, faixas[p.faixa]),
        }
        for p in itens
    ], title="Precificação por lote")


@caixa_app.command("pendentes")
def cmd_caixa_pendentes(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Doses aplicadas ainda sem venda registrada."""
    with _tratando_erros():
        itens = run_vendas_pendentes(db_path)
    _display_table([
        {
            "dose": p.dose_id,
            "paciente": p.paciente_nome,
            "medicamento": p.medicamento,
            "aplicação": formatar_data(p.data_aplicacao),
            "preço": _brl(p.preco_venda),
        }
        for p in itens
    ], title="Vendas pendentes")


@caixa_app.command("vender")
def cmd_caixa_vender(
    dose_id: str = typer.Argument(..., help="ID da dose aplicada"),
    preco: Optional[float] = typer.Option(None, help="Preço de venda (padrão: o do lote)"),
    custo: Optional[float] = typer.Option(None, help="Custo unitário (padrão: o do lote)"),
    comissao: Optional[float] = typer.Option(None),
    imposto: Optional[float] = typer.Option(None),
    entrega: Optional[float] = typer.Option(None),
    outros: Optional[float] = typer.Option(None),
    forma: str = typer.Option("PIX", help="PIX | CARD | BOLETO"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra a venda de uma dose."""
    with _tratando_erros():
        venda = run_registrar_venda(
            dose_id, preco, custo, comissao, imposto, entrega, outros,
            forma_pagamento=parse_enum(FormaPagamento, forma), db_path=db_path,
        )
    typer.echo(f">> Venda {venda.id} registrada: {_brl(venda.preco_venda)}")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios")
app.add_typer(rel_app, name="rel")


@rel_app.command("vencimentos")
def rel_vencimentos(
    janela_dias: int = typer.Option(30, help="Dias até o vencimento"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lotes próximos ao vencimento (ou vencidos)."""
    with _tratando_erros():
        res = relatorio_vencimentos(janela_dias=janela_dias, db_path=db_path)
    _display_tabela(res, title=f"Lotes a Vencer (Próximos {janela_dias} dias)")


@rel_app.command("consumo")
def rel_consumo(
    inicio: Optional[str] = typer.Option(None, help="YYYY-MM-DD (início)"),
    fim: Optional[str] = typer.Option(None, help="YYYY-MM-DD (fim)"),
    modo: str = typer.Option("monthly", help="monthly | quarterly"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Matriz de consumo por medicamento e período."""
    with _tratando_erros():
        res = relatorio_consumo(inicio, fim, modo, db_path)
    _display_tabela(res, title="Consumo por período")


@rel_app.command("checklist")
def rel_checklist(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Etapas pendentes dos tratamentos medicamentosos."""
    with _tratando_erros():
        res = relatorio_checklist(db_path)
    _display_tabela(res, title="Checklist operacional")


# -----------------------
# logs e TUI
# -----------------------

@app.command("logs")
def cmd_logs(
    tipo: str = typer.Option("transactions", help=" | ".join(LOG_FILES)),
    linhas: int = typer.Option(50, help="Últimas N linhas"),
):
    """Mostra as últimas linhas de um arquivo de log."""
    typer.echo(get_log_summary(tipo, linhas))


@app.command("tui")
def cmd_tui(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Inicia a interface terminal interativa (Textual)."""
    try:
        from clinica.adapters.mainframe_tui import main as tui_main
        typer.echo("Iniciando Painel Clínico...")
        tui_main(db_path)
    except KeyboardInterrupt:
        typer.echo("\nSaindo do TUI...")
        raise typer.Exit(0)


def main():
    app()


if __name__ == "__main__":
    main()
