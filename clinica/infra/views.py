# clinica/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_estoque_medicamento: estoque ativo consolidado por medicamento.
- vw_consumo_mensal:      unidades dispensadas por ano_mes e medicamento.

Obs.:
- As views assumem que as migrações já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            ---------------------------
            -- Estoque por medicamento (somente lotes ativos)
            ---------------------------
            DROP VIEW IF EXISTS vw_estoque_medicamento;
            CREATE VIEW vw_estoque_medicamento AS
            SELECT
                medicamento,
                COUNT(*)                      AS lotes,
                COALESCE(SUM(quantidade), 0)  AS estoque_total,
                MIN(date(validade))           AS validade_mais_proxima
            FROM lote_estoque
            WHERE ativo = 1
            GROUP BY medicamento;

            ---------------------------
            -- Consumo mensal (dispensações)
            ---------------------------
            DROP VIEW IF EXISTS vw_consumo_mensal;
            CREATE VIEW vw_consumo_mensal AS
            SELECT
                strftime('%Y-%m', date(substr(data, 1, 10))) AS ano_mes,
                medicamento,
                SUM(quantidade)                              AS unidades
            FROM dispensacao
            GROUP BY ano_mes, medicamento;
            """
        )

        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_tratamento_paciente ON tratamento(paciente_id);
            CREATE INDEX IF NOT EXISTS idx_dose_tratamento     ON dose(tratamento_id);
            CREATE INDEX IF NOT EXISTS idx_dose_data           ON dose(data_aplicacao);
            CREATE INDEX IF NOT EXISTS idx_lote_medicamento    ON lote_estoque(medicamento);
            CREATE INDEX IF NOT EXISTS idx_dispensacao_data    ON dispensacao(data);
            CREATE INDEX IF NOT EXISTS idx_pedido_status       ON pedido_compra(status, medicamento);
            CREATE INDEX IF NOT EXISTS idx_venda_data          ON venda(data_venda);
            """
        )
