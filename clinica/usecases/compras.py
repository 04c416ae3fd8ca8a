# clinica/usecases/compras.py
"""
UC: Pedidos de compra.
- run_verificar_compras(): prevê demanda, cria pedidos PENDING que faltarem.
- run_listar_pedidos(): lista pedidos (mais novos primeiro).
- run_atualizar_pedido(): avança o status (PENDING -> ORDERED -> RECEIVED).
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from clinica.config import DB_PATH
from clinica.domain.compras import ResultadoGatilho, avancar_status, demanda_prevista, verificar_gatilhos
from clinica.domain.datas import hoje as _hoje
from clinica.domain.models import PedidoCompra, StatusPedido
from clinica.infra.logger import log_database_operation, log_estoque, log_system_event, log_transaction
from clinica.infra.repositories import PedidoCompraRepo
from clinica.usecases.painel import carregar_snapshot, preparar_banco


def run_verificar_compras(db_path: str = DB_PATH, hoje: Optional[date] = None) -> ResultadoGatilho:
    hoje = hoje or _hoje()
    log_system_event("verificar_compras_start", {"hoje": hoje.isoformat()})
    try:
        snap = carregar_snapshot(db_path)
        cfg = snap.config
        demanda = demanda_prevista(
            snap.tratamentos, snap.protocolos, snap.doses, hoje, cfg.horizonte_compra_dias
        )
        resultado = verificar_gatilhos(demanda, snap.lotes, snap.pedidos, hoje, cfg.fator_compra)

        if resultado.criados:
            PedidoCompraRepo(db_path).upsert_many(resultado.criados)
            log_database_operation("pedido_compra", "INSERT", len(resultado.criados))
            for p in resultado.criados:
                log_estoque("pedido", p.medicamento, p.quantidade_sugerida or 0,
                            demanda=p.consumo_previsto_10d, estoque=p.estoque_atual)

        log_transaction("verificar_compras", {"demanda": demanda}, result=resultado.mensagem)
        return resultado
    except Exception as e:
        log_transaction("verificar_compras", {"hoje": hoje.isoformat()}, error=str(e))
        log_system_event("verificar_compras_error", {"error": str(e)}, level="error")
        raise


def run_listar_pedidos(status: Optional[StatusPedido] = None, db_path: str = DB_PATH) -> List[PedidoCompra]:
    preparar_banco(db_path)
    return PedidoCompraRepo(db_path).list(status)


def run_atualizar_pedido(pedido_id: str, novo_status: StatusPedido, db_path: str = DB_PATH) -> PedidoCompra:
    log_system_event("atualizar_pedido_start", {"pedido_id": pedido_id, "status": str(novo_status)})
    try:
        preparar_banco(db_path)
        repo = PedidoCompraRepo(db_path)
        pedido = avancar_status(repo.get(pedido_id), novo_status)
        salvo = repo.salvar_status(pedido)
        log_database_operation("pedido_compra", "UPDATE", 1, id=pedido_id, status=salvo.status.value)
        log_transaction("atualizar_pedido", {"pedido_id": pedido_id}, result=salvo.status.value)
        return salvo
    except Exception as e:
        log_transaction("atualizar_pedido", {"pedido_id": pedido_id, "status": str(novo_status)}, error=str(e))
        log_system_event("atualizar_pedido_error", {"error": str(e)}, level="error")
        raise
