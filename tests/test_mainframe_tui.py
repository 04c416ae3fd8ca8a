"""
Tests for the mainframe TUI system.
"""

from unittest.mock import Mock, patch

from clinica.adapters.mainframe_tui import (
    StatusDisplay, MenuTreeWidget, FileInputForm, ReportParametersForm,
    ClinicaMainframeApp, OutputDataTableScreen, OutputScreen, parametros_relatorio, texto_status
)
from clinica.infra.migrations import apply_migrations


class TestStatusDisplay:
    """Test the status display widget."""

    def test_status_display_creation(self, db_path):
        status = StatusDisplay(db_path)
        assert status is not None
        assert status.db_path == db_path

    def test_refresh_status(self, db_path):
        status = StatusDisplay(db_path)
        # Should not raise exception
        status.refresh_status()

    def test_texto_status(self, db_path):
        assert "não encontrado" in texto_status(db_path)
        apply_migrations(db_path)
        assert "schema v3" in texto_status(db_path)


class TestMenuTreeWidget:
    """Test the menu tree widget."""

    def test_menu_structure(self):
        tree = MenuTreeWidget()
        assert tree.root.children

        category_labels = [str(child.label) for child in tree.root.children]
        expected_categories = [
            "📊 Painel",
            "💊 Estoque",
            "🛒 Compras",
            "💰 Caixa",
            "⚙️ Sistema",
        ]
        for expected in expected_categories:
            assert any(expected in label for label in category_labels)

    def test_every_leaf_has_an_action(self):
        tree = MenuTreeWidget()
        acoes = [leaf.data for cat in tree.root.children for leaf in cat.children]
        assert "painel-resumo" in acoes
        assert "importar-snapshot" in acoes
        assert all(acoes)


class TestFileInputForm:
    """Test the file input form modal."""

    def test_file_input_form_creation(self):
        form = FileInputForm("importar-lotes", "Importar Lotes (XLSX)")
        assert form.operation == "importar-lotes"
        assert form.title == "Importar Lotes (XLSX)"


class TestReportParametersForm:
    """Test the report parameters form modal."""

    def test_report_form_creation(self):
        for report_type in ("rel-vencimentos", "rel-consumo"):
            form = ReportParametersForm(report_type)
            assert form.report_type == report_type
            assert form.inputs == {}

    def test_parametros_relatorio(self):
        assert parametros_relatorio("rel-vencimentos", {}) == {"janela_dias": 30}
        assert parametros_relatorio("rel-vencimentos", {"D": "7"}) == {"janela_dias": 7}
        assert parametros_relatorio("rel-consumo", {"INI": "2024-01-01"}) == {
            "inicio": "2024-01-01", "fim": None, "modo": "monthly",
        }
        assert parametros_relatorio("outro", {"D": "1"}) == {}


class TestClinicaMainframeApp:
    """Test the main TUI application."""

    def _app(self, db_path):
        app = ClinicaMainframeApp(db_path)
        app.notify = Mock()
        app.push_screen = Mock()
        return app

    def test_app_creation(self, db_path):
        app = ClinicaMainframeApp(db_path)
        assert "Painel Clínico" in app.title
        assert app.db_path == db_path

    def test_tabelas(self, db_path):
        app = ClinicaMainframeApp(db_path)
        assert {"painel-resumo", "atrasadas", "kpis", "vendas-pendentes"} <= set(app.tabelas())

    def test_execute_table_action(self, db_populado):
        app = self._app(db_populado)
        app.execute_action("ver-estoque")
        assert app.push_screen.call_count == 1
        tela = app.push_screen.call_args[0][0]
        assert isinstance(tela, OutputDataTableScreen)

    def test_execute_migrate(self, db_path):
        app = self._app(db_path)
        app.execute_action("migrate")
        app.notify.assert_called_once()
        assert "Migrações" in app.notify.call_args[0][0]

    @patch("clinica.adapters.mainframe_tui.run_verificar_compras")
    def test_execute_action_error(self, mock_verificar, db_path):
        mock_verificar.side_effect = ValueError("falhou")
        app = self._app(db_path)
        app.execute_action("verificar-compras")
        app.notify.assert_called_once()
        assert app.notify.call_args[1]["severity"] == "error"
        assert app.push_screen.call_count == 0

    def test_show_table_empty(self, db_path):
        app = self._app(db_path)
        app.show_table("Vazio", (["A"], [], "Nada por aqui."))
        assert isinstance(app.push_screen.call_args[0][0], OutputScreen)

    def test_file_input_missing_file(self, db_path, tmp_path):
        app = self._app(db_path)
        app.on_file_input_result({"operation": "importar-snapshot", "file": str(tmp_path / "x.json")})
        tela = app.push_screen.call_args[0][0]
        assert isinstance(tela, OutputScreen)

    def test_file_input_snapshot(self, db_path, snapshot_file):
        app = self._app(db_path)
        app.on_file_input_result({"operation": "importar-snapshot", "file": snapshot_file})
        tela = app.push_screen.call_args[0][0]
        assert isinstance(tela, OutputDataTableScreen)
        assert tela.rows[1] == ["patients", 3]

    def test_report_params_cancelled(self, db_path):
        app = self._app(db_path)
        app.on_report_params_result("rel-consumo", None)
        assert app.push_screen.call_count == 0
