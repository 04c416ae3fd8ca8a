"""
Painel clínico em modo terminal (Textual).

Menu em árvore à esquerda, situação do banco à direita. Relatórios abrem em
tela cheia (DataTable); importações e relatórios com parâmetros passam por
um formulário modal antes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static, Tree

from clinica.adapters.snapshot_loader import run_importar_snapshot
from clinica.config import DB_PATH
from clinica.infra.logger import ENABLE_LOGGING, ENABLE_OUTPUT, LOG_FILES, get_log_summary, log_system_event
from clinica.infra.migrations import apply_migrations, schema_version
from clinica.infra.repositories import ParamsRepo
from clinica.infra.views import create_views
from clinica.usecases.compras import run_verificar_compras
from clinica.usecases.estoque import run_importar_lotes_xlsx
from clinica.usecases.relatorios import (
    relatorio_atrasadas,
    relatorio_checklist,
    relatorio_consumo,
    relatorio_contatos,
    relatorio_estoque,
    relatorio_kpis,
    relatorio_nps,
    relatorio_painel,
    relatorio_pedidos,
    relatorio_precificacao,
    relatorio_vencimentos,
    relatorio_vendas_pendentes,
)

# (categoria, [(rótulo, ação)])
MENU: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("📊 Painel", [
        ("📈 Resumo do Dia", "painel-resumo"),
        ("⏰ Doses Atrasadas", "atrasadas"),
        ("📞 Régua de Contato", "contatos"),
        ("✅ Checklist Operacional", "checklist"),
        ("⭐ NPS", "nps"),
    ]),
    ("💊 Estoque", [
        ("📦 Lotes por Medicamento", "ver-estoque"),
        ("📅 Lotes a Vencer", "rel-vencimentos"),
        ("📉 Matriz de Consumo", "rel-consumo"),
        ("⬇️ Importar Lotes (XLSX)", "importar-lotes"),
    ]),
    ("🛒 Compras", [
        ("🔍 Verificar Necessidade de Compra", "verificar-compras"),
        ("📋 Pedidos de Compra", "pedidos"),
    ]),
    ("💰 Caixa", [
        ("📊 KPIs do Mês", "kpis"),
        ("🏷️ Precificação por Lote", "precificacao"),
        ("🧾 Vendas Pendentes", "vendas-pendentes"),
    ]),
    ("⚙️ Sistema", [
        ("🔄 Aplicar Migrações", "migrate"),
        ("📥 Importar Snapshot (JSON)", "importar-snapshot"),
        ("👁️ Exibir Parâmetros", "params-show"),
        ("📜 Ver Logs", "logs"),
    ]),
]

ARQUIVOS = {
    "importar-snapshot": ("Importar Snapshot (JSON)", "snapshot.json"),
    "importar-lotes": ("Importar Lotes (XLSX)", "lotes.xlsx"),
}


class TelaResultado(Screen):
    """Base das telas de resultado: título em faixa, corpo rolável, esc/q voltam."""

    BINDINGS = [
        ("escape", "app.pop_screen", "Voltar"),
        ("q", "app.pop_screen", "Voltar"),
    ]

    def __init__(self, title: str) -> None:
        super().__init__()
        self.title = title

    def corpo(self) -> ComposeResult:
        yield from ()

    def compose(self) -> ComposeResult:
        yield Header()
        with ScrollableContainer():
            yield Static(self.title, classes="faixa-titulo")
            yield from self.corpo()
        yield Footer()


class OutputDataTableScreen(TelaResultado):
    """Relatório em tabela."""

    def __init__(self, title: str, columns: list, rows: list) -> None:
        super().__init__(title)
        self.columns = columns
        self.rows = rows

    def corpo(self) -> ComposeResult:
        tabela = DataTable(zebra_stripes=True, cursor_type="row")
        tabela.add_columns(*self.columns)
        tabela.add_rows([["" if v is None else str(v) for v in linha] for linha in self.rows])
        yield tabela


class OutputScreen(TelaResultado):
    """Texto puro: logs, mensagens vazias e erros."""

    def __init__(self, title: str, content: str) -> None:
        super().__init__(title)
        self.content = content

    def corpo(self) -> ComposeResult:
        yield Static(self.content, markup=False)


def texto_status(db_path: str = DB_PATH) -> str:
    """Resumo do ambiente: banco, versão do schema e logging."""
    db = Path(db_path)
    if db.exists():
        tamanho = db.stat().st_size / (1024 * 1024)
        banco = f"🟢 Banco: {db_path} ({tamanho:.1f}MB, schema v{schema_version(db_path)})"
    else:
        banco = f"🔴 Banco: {db_path} (não encontrado, use Sistema > Aplicar Migrações)"
    return "\n".join([
        banco,
        f"📝 Logs em arquivo: {'ligados' if ENABLE_LOGGING else 'desligados'}",
        f"🖨️ Saída no console: {'ligada' if ENABLE_OUTPUT else 'desligada'}",
    ])


class StatusDisplay(Static):
    def __init__(self, db_path: str = DB_PATH) -> None:
        self.db_path = db_path
        super().__init__(texto_status(db_path))

    def refresh_status(self) -> None:
        self.update(texto_status(self.db_path))


class MenuTreeWidget(Tree):
    """Árvore de navegação montada a partir de ``MENU``."""

    def __init__(self) -> None:
        super().__init__("🏥 Painel Clínico - Menu Principal")
        for categoria, itens in MENU:
            no = self.root.add(categoria, expand=True)
            for rotulo, acao in itens:
                no.add_leaf(rotulo, data=acao)


class FileInputForm(ModalScreen):
    """Pede o caminho do arquivo; devolve {"operation", "file"} ao fechar."""

    BINDINGS = [("escape", "app.pop_screen", "Cancelar")]

    def __init__(self, operation: str, title: str) -> None:
        super().__init__()
        self.operation = operation
        self.title = title
        self.file_input: Optional[Input] = None

    def compose(self) -> ComposeResult:
        exemplo = ARQUIVOS.get(self.operation, ("", "arquivo"))[1]
        with Container(classes="modal", id="modal-arquivo"):
            yield Static(f"📁 {self.title}", classes="faixa-modal")
            yield Label("Caminho do arquivo (ENTER confirma):")
            self.file_input = Input(placeholder=exemplo, id="arquivo")
            yield self.file_input
            with Horizontal(classes="botoes"):
                yield Button("Importar", variant="success", id="ok")
                yield Button("Voltar", id="voltar")

    def _confirmar(self) -> None:
        caminho = self.file_input.value.strip() if self.file_input else ""
        if not caminho:
            self.notify("Informe o caminho do arquivo.", severity="warning")
            return
        self.dismiss({"operation": self.operation, "file": caminho})

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._confirmar()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self._confirmar()
        else:
            self.app.pop_screen()


# report_type -> (título, [(chave, rótulo, exemplo)])
CAMPOS_RELATORIO: Dict[str, Tuple[str, List[Tuple[str, str, str]]]] = {
    "rel-vencimentos": ("📅 Lotes a Vencer", [("D", "Janela (dias):", "30")]),
    "rel-consumo": ("📉 Matriz de Consumo", [
        ("INI", "Início (YYYY-MM-DD, opcional):", "2025-01-01"),
        ("FIM", "Fim (YYYY-MM-DD, opcional):", "2025-06-30"),
        ("MODO", "Modo (monthly | quarterly):", "monthly"),
    ]),
}


class ReportParametersForm(ModalScreen):
    """Campos do relatório; devolve só os preenchidos."""

    BINDINGS = [("escape", "app.pop_screen", "Cancelar")]

    def __init__(self, report_type: str) -> None:
        super().__init__()
        self.report_type = report_type
        self.inputs: Dict[str, Input] = {}

    def compose(self) -> ComposeResult:
        titulo, campos = CAMPOS_RELATORIO.get(self.report_type, ("📊 Relatório", []))
        with Container(classes="modal", id="modal-relatorio"):
            yield Static(titulo, classes="faixa-modal")
            with Vertical():
                for chave, rotulo, exemplo in campos:
                    yield Label(rotulo)
                    self.inputs[chave] = Input(placeholder=exemplo, id=f"campo-{chave.lower()}")
                    yield self.inputs[chave]
            with Horizontal(classes="botoes"):
                yield Button("Gerar", variant="success", id="ok")
                yield Button("Voltar", id="voltar")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self.dismiss({k: i.value.strip() for k, i in self.inputs.items() if i.value.strip()})
        else:
            self.app.pop_screen()


def parametros_relatorio(report_type: str, params: Dict[str, str]) -> Dict[str, object]:
    """Converte os campos do formulário em argumentos do relatório."""
    if report_type == "rel-vencimentos":
        return {"janela_dias": int(params.get("D") or 30)}
    if report_type == "rel-consumo":
        return {
            "inicio": params.get("INI") or None,
            "fim": params.get("FIM") or None,
            "modo": params.get("MODO") or "monthly",
        }
    return {}


AJUDA = """\
Navegue pelo menu com ↑ ↓ e abra um item com ENTER.
Nas telas de resultado, ESC ou q voltam ao menu.

r  atualiza a situação do banco
q  encerra o painel
"""


class ClinicaMainframeApp(App):
    """Aplicação TUI principal do painel clínico."""

    CSS = """
    Screen { background: #0b1f1a; }
    Tree { background: #0f2b24; color: #d7f5ea; width: 45; }
    StatusDisplay { background: #14532d; color: #f0fdf4; padding: 1 2; }
    .faixa-titulo, .faixa-modal {
        background: #166534;
        color: #f0fdf4;
        text-align: center;
        text-style: bold;
        padding: 1;
        margin-bottom: 1;
    }
    .modal { background: #10261f; border: round #22c55e; width: 64; height: auto; padding: 1 2; }
    .botoes { height: auto; margin-top: 1; }
    .ajuda { padding: 1 2; color: #a7f3d0; }
    Button { margin-right: 2; }
    """

    TITLE = "🏥 Painel Clínico - Mainframe Terminal UI"
    BINDINGS = [
        ("q", "quit", "Sair"),
        ("d", "toggle_dark", "Modo Escuro"),
        ("r", "refresh", "Atualizar Status"),
    ]

    def __init__(self, db_path: str = DB_PATH) -> None:
        super().__init__()
        self.db_path = db_path
        self.status_display: Optional[StatusDisplay] = None

    # ação -> (título, função que devolve (colunas, linhas, mensagem))
    def tabelas(self) -> Dict[str, Tuple[str, Callable[[], tuple]]]:
        db = self.db_path
        return {
            "painel-resumo": ("Resumo do Dia", lambda: relatorio_painel(db)),
            "atrasadas": ("Doses Atrasadas", lambda: relatorio_atrasadas(db)),
            "contatos": ("Régua de Contato", lambda: relatorio_contatos(db)),
            "checklist": ("Checklist Operacional", lambda: relatorio_checklist(db)),
            "nps": ("NPS", lambda: relatorio_nps(db)),
            "ver-estoque": ("Lotes por Medicamento", lambda: relatorio_estoque("", db)),
            "pedidos": ("Pedidos de Compra", lambda: relatorio_pedidos(db)),
            "kpis": ("KPIs do Mês", lambda: relatorio_kpis("month", db)),
            "precificacao": ("Precificação por Lote", lambda: relatorio_precificacao("margin", "desc", db)),
            "vendas-pendentes": ("Vendas Pendentes", lambda: relatorio_vendas_pendentes(db)),
        }

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            yield MenuTreeWidget()
            with Vertical():
                self.status_display = StatusDisplay(self.db_path)
                yield self.status_display
                yield Static(AJUDA, classes="ajuda", markup=False)
        yield Footer()

    def action_refresh(self) -> None:
        if self.status_display:
            self.status_display.refresh_status()

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        if event.node.data:
            self.execute_action(event.node.data)

    def execute_action(self, action: str) -> None:
        log_system_event("tui_action_start", {"action": action})
        try:
            tabelas = self.tabelas()
            if action in tabelas:
                titulo, gerar = tabelas[action]
                self.show_table(titulo, gerar())
            elif action in CAMPOS_RELATORIO:
                self.push_screen(
                    ReportParametersForm(action),
                    lambda params, a=action: self.on_report_params_result(a, params),
                )
            elif action in ARQUIVOS:
                self.push_screen(FileInputForm(action, ARQUIVOS[action][0]), self.on_file_input_result)
            elif action == "verificar-compras":
                res = run_verificar_compras(self.db_path)
                self.notify(res.mensagem)
                self.show_table("Pedidos de Compra", relatorio_pedidos(self.db_path))
            elif action == "migrate":
                apply_migrations(self.db_path)
                create_views(self.db_path)
                self.notify(f"Migrações aplicadas (schema v{schema_version(self.db_path)})")
                self.action_refresh()
            elif action == "params-show":
                params = ParamsRepo(self.db_path).as_config()
                rows = [[k, v] for k, v in vars(params).items()]
                self.push_screen(OutputDataTableScreen("Parâmetros", ["Parâmetro", "Valor"], rows))
            elif action == "logs":
                texto = "\n\n".join(f"== {tipo} ==\n{get_log_summary(tipo, 20)}" for tipo in LOG_FILES)
                self.push_screen(OutputScreen("Logs", texto))
        except Exception as e:
            log_system_event("tui_action_error", {"action": action, "error": str(e)}, level="error")
            self.notify(f"Erro: {e}", severity="error")

    def show_table(self, titulo: str, resultado: tuple) -> None:
        colunas, rows, msg = resultado
        if rows:
            self.push_screen(OutputDataTableScreen(titulo, colunas, rows))
        else:
            self.push_screen(OutputScreen(titulo, msg or "Nenhum dado encontrado."))

    def on_report_params_result(self, report_type: str, params: Optional[Dict[str, str]]) -> None:
        if params is None:
            return
        try:
            kwargs = parametros_relatorio(report_type, params)
            if report_type == "rel-vencimentos":
                self.show_table("Lotes a Vencer", relatorio_vencimentos(db_path=self.db_path, **kwargs))
            else:
                self.show_table("Matriz de Consumo", relatorio_consumo(db_path=self.db_path, **kwargs))
        except Exception as e:
            self.notify(f"Erro ao gerar relatório: {e}", severity="error")

    def on_file_input_result(self, result: Optional[Dict[str, str]]) -> None:
        if not result or "file" not in result:
            return
        caminho = result["file"]
        if not Path(caminho).exists():
            self.push_screen(OutputScreen("Arquivo não encontrado", f"Arquivo '{caminho}' não existe."))
            return
        try:
            if result.get("operation") == "importar-snapshot":
                contagem = run_importar_snapshot(caminho, self.db_path)
                rows = [[k, v] for k, v in contagem.items()]
                self.push_screen(OutputDataTableScreen("Snapshot Importado", ["Recurso", "Registros"], rows))
            else:
                info = run_importar_lotes_xlsx(caminho, self.db_path)
                rows = [[k, str(v)] for k, v in info.items()]
                self.push_screen(OutputDataTableScreen("Lotes Importados", ["Campo", "Valor"], rows))
            self.action_refresh()
        except Exception as e:
            self.push_screen(OutputScreen("Erro ao importar arquivo", str(e)))


def main(db_path: str = DB_PATH) -> None:
    ClinicaMainframeApp(db_path).run()


if __name__ == "__main__":
    main()
