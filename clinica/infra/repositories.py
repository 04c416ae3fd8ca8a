# clinica/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Cada repositório é dono de uma tabela. Leituras devolvem dataclasses novas
(nunca objetos compartilhados); comandos devolvem a entidade resultante.

Classes:
- ParamsRepo
- PacienteRepo
- DiagnosticoRepo
- DocumentoRepo
- MedicamentoRepo
- ProtocoloRepo
- TratamentoRepo
- DoseRepo
- LoteRepo
- DispensacaoRepo
- PedidoCompraRepo
- VendaRepo
- ContatoRepo
"""

from __future__ import annotations

import json
from dataclasses import asdict, fields
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .db import connect, fetch_dicts
from clinica.adapters.parsers import (
    parse_contato_dispensado,
    parse_diagnostico,
    parse_dispensacao,
    parse_documento,
    parse_dose,
    parse_lote,
    parse_medicamento,
    parse_paciente,
    parse_pedido,
    parse_protocolo,
    parse_tratamento,
    parse_venda,
)
from clinica.config import DefaultConfig
from clinica.domain.errors import EstoqueInsuficiente, RegistroNaoEncontrado
from clinica.domain.models import (
    ContatoDispensado,
    Diagnostico,
    DocumentoConsentimento,
    Dose,
    FeedbackPaciente,
    LoteEstoque,
    Medicamento,
    Paciente,
    PedidoCompra,
    Protocolo,
    RegistroDispensacao,
    StatusPedido,
    StatusTratamento,
    Tratamento,
    Venda,
)
from clinica.domain.pacientes import paciente_ativo


# -------------------------
# Helpers
# -------------------------

def _coluna(v: Any) -> Any:
    """Valor pronto para o SQLite: enums viram código, bools viram 0/1."""
    if isinstance(v, Enum):
        return v.value
    if isinstance(v, bool):
        return int(v)
    return v


def _upsert(conn, table: str, rows: Iterable[Dict[str, Any]], key: str = "id") -> int:
    rows = [{k: _coluna(v) for k, v in r.items()} for r in rows]
    if not rows:
        return 0
    keys = list(rows[0].keys())
    updates = ",".join(f"{k}=excluded.{k}" for k in keys if k != key)
    sql = (
        f"INSERT INTO {table} ({','.join(keys)}) VALUES ({','.join(':' + k for k in keys)}) "
        f"ON CONFLICT({key}) DO UPDATE SET {updates}"
    )
    conn.executemany(sql, rows)
    return len(rows)


def _gravar(db_path: str, conn, table: str, rows: List[Dict[str, Any]], key: str = "id") -> int:
    """Upsert na transação do chamador (``conn``) ou numa conexão própria."""
    if conn is not None:
        return _upsert(conn, table, rows, key)
    with connect(db_path) as c:
        return _upsert(c, table, rows, key)


def _atualizar_campos(db_path: str, table: str, registro_id: str, campos: Dict[str, Any], validos: set) -> int:
    """UPDATE parcial por id. Devolve o rowcount (-1 quando não há campos)."""
    desconhecidos = set(campos) - validos
    if desconhecidos:
        raise ValueError(f"Campos inválidos para {table}: {sorted(desconhecidos)}")
    if not campos:
        return -1
    sets = ",".join(f"{k} = :{k}" for k in campos)
    params = {k: _coluna(v) for k, v in campos.items()}
    params["id"] = registro_id
    with connect(db_path) as c:
        return c.execute(f"UPDATE {table} SET {sets} WHERE id = :id", params).rowcount


def _json(v: Any) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, ensure_ascii=False)


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_int(self, key: str, default: int) -> int:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return int(float(v))
        except ValueError:
            return default

    def get_all(self) -> Dict[str, str]:
        with connect(self.db_path) as c:
            return {r["chave"]: r["valor"] for r in c.execute("SELECT chave, valor FROM params ORDER BY chave")}

    def as_config(self) -> DefaultConfig:
        """DefaultConfig com os valores sobrescritos pela tabela params."""
        base = DefaultConfig()
        valores = {f.name: self.get_int(f.name, getattr(base, f.name)) for f in fields(DefaultConfig)}
        return DefaultConfig(**valores)


# -------------------------
# Cadastro
# -------------------------

def _row_paciente(p: Paciente) -> Dict[str, Any]:
    return {
        "id": p.id,
        "nome_completo": p.nome_completo,
        "diagnostico_principal": p.diagnostico_principal,
        "data_nascimento": p.data_nascimento,
        "sexo": p.sexo,
        "ativo": p.ativo,
        "responsavel_nome": p.responsavel.nome_completo,
        "responsavel_telefone": p.responsavel.telefone,
        "responsavel_telefone2": p.responsavel.telefone_secundario,
        "responsavel_email": p.responsavel.email,
        "responsavel_parentesco": p.responsavel.parentesco,
        "endereco": _json(asdict(p.endereco)) if p.endereco else None,
        "observacoes_clinicas": p.observacoes_clinicas,
    }


def _paciente_from_row(r: Dict[str, Any]) -> Paciente:
    r = dict(r)
    r["responsavel"] = {
        "nome_completo": r.pop("responsavel_nome"),
        "telefone": r.pop("responsavel_telefone"),
        "telefone_secundario": r.pop("responsavel_telefone2"),
        "email": r.pop("responsavel_email"),
        "parentesco": r.pop("responsavel_parentesco"),
    }
    r["endereco"] = json.loads(r["endereco"]) if r.get("endereco") else None
    return parse_paciente(r)


class PacienteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, pacientes: Iterable[Paciente], conn=None) -> int:
        return _gravar(self.db_path, conn, "paciente", [_row_paciente(p) for p in pacientes])

    def list(self) -> List[Paciente]:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM paciente ORDER BY nome_completo")
        return [_paciente_from_row(r) for r in rows]

    def get(self, paciente_id: str) -> Paciente:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM paciente WHERE id = ?", (paciente_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Paciente não encontrado: {paciente_id}")
        return _paciente_from_row(rows[0])


class DiagnosticoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, diagnosticos: Iterable[Diagnostico], conn=None) -> int:
        return _gravar(self.db_path, conn, "diagnostico", [asdict(d) for d in diagnosticos])

    def list(self) -> List[Diagnostico]:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM diagnostico ORDER BY nome")
        return [parse_diagnostico(r) for r in rows]


class DocumentoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, documentos: Iterable[DocumentoConsentimento], conn=None) -> int:
        return _gravar(self.db_path, conn, "documento", [asdict(d) for d in documentos])

    def list(self, paciente_id: Optional[str] = None) -> List[DocumentoConsentimento]:
        with connect(self.db_path) as c:
            if paciente_id:
                rows = fetch_dicts(c, "SELECT * FROM documento WHERE paciente_id = ?", (paciente_id,))
            else:
                rows = fetch_dicts(c, "SELECT * FROM documento")
        return [parse_documento(r) for r in rows]


# -------------------------
# Protocolos e tratamentos
# -------------------------

class MedicamentoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, medicamentos: Iterable[Medicamento], conn=None) -> int:
        return _gravar(self.db_path, conn, "medicamento", [asdict(m) for m in medicamentos])

    def list(self) -> List[Medicamento]:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM medicamento ORDER BY principio_ativo, dosagem")
        return [parse_medicamento(r) for r in rows]

    def get(self, medicamento_id: str) -> Medicamento:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM medicamento WHERE id = ?", (medicamento_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Medicamento não encontrado: {medicamento_id}")
        return parse_medicamento(rows[0])


class ProtocoloRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, protocolos: Iterable[Protocolo], conn=None) -> int:
        rows = []
        for p in protocolos:
            r = asdict(p)
            r["marcos"] = _json(r["marcos"])
            rows.append(r)
        return _gravar(self.db_path, conn, "protocolo", rows)

    def list(self) -> List[Protocolo]:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM protocolo ORDER BY nome")
        return [parse_protocolo(r) for r in rows]

    def get(self, protocolo_id: str) -> Protocolo:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM protocolo WHERE id = ?", (protocolo_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Protocolo não encontrado: {protocolo_id}")
        return parse_protocolo(rows[0])


class TratamentoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, tratamentos: Iterable[Tratamento], conn=None) -> int:
        return _gravar(self.db_path, conn, "tratamento", [asdict(t) for t in tratamentos])

    def list(self, paciente_id: Optional[str] = None) -> List[Tratamento]:
        with connect(self.db_path) as c:
            if paciente_id:
                rows = fetch_dicts(c, "SELECT * FROM tratamento WHERE paciente_id = ?", (paciente_id,))
            else:
                rows = fetch_dicts(c, "SELECT * FROM tratamento")
        return [parse_tratamento(r) for r in rows]

    def get(self, tratamento_id: str) -> Tratamento:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM tratamento WHERE id = ?", (tratamento_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Tratamento não encontrado: {tratamento_id}")
        return parse_tratamento(rows[0])

    def atualizar(self, tratamento_id: str, **campos: Any) -> Tratamento:
        """Atualiza dados do tratamento; o status passa por ``atualizar_status``."""
        validos = {f.name for f in fields(Tratamento)} - {"id", "paciente_id", "status"}
        if _atualizar_campos(self.db_path, "tratamento", tratamento_id, campos, validos) == 0:
            raise RegistroNaoEncontrado(f"Tratamento não encontrado: {tratamento_id}")
        return self.get(tratamento_id)

    def atualizar_status(self, tratamento_id: str, status: StatusTratamento) -> Tratamento:
        """Atualiza o status e recalcula a situação (ativo/inativo) do paciente."""
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM tratamento WHERE id = ?", (tratamento_id,))
            if not rows:
                raise RegistroNaoEncontrado(f"Tratamento não encontrado: {tratamento_id}")
            paciente_id = rows[0]["paciente_id"]
            c.execute("UPDATE tratamento SET status = ? WHERE id = ?", (_coluna(status), tratamento_id))
            todos = [parse_tratamento(r) for r in fetch_dicts(
                c, "SELECT * FROM tratamento WHERE paciente_id = ?", (paciente_id,)
            )]
            c.execute(
                "UPDATE paciente SET ativo = ? WHERE id = ?",
                (int(paciente_ativo(todos)), paciente_id),
            )
        return next(t for t in todos if t.id == tratamento_id)


class DoseRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, doses: Iterable[Dose], conn=None) -> int:
        return _gravar(self.db_path, conn, "dose", [asdict(d) for d in doses])

    def list(self, tratamento_id: Optional[str] = None) -> List[Dose]:
        with connect(self.db_path) as c:
            if tratamento_id:
                rows = fetch_dicts(
                    c, "SELECT * FROM dose WHERE tratamento_id = ? ORDER BY data_aplicacao", (tratamento_id,)
                )
            else:
                rows = fetch_dicts(c, "SELECT * FROM dose ORDER BY data_aplicacao")
        return [parse_dose(r) for r in rows]

    def get(self, dose_id: str) -> Dose:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM dose WHERE id = ?", (dose_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Dose não encontrada: {dose_id}")
        return parse_dose(rows[0])

    def atualizar(self, dose_id: str, **campos: Any) -> Dose:
        """Atualiza campos da dose (status, pagamento, pesquisa...) e devolve a dose nova."""
        validos = {f.name for f in fields(Dose)} - {"id"}
        if _atualizar_campos(self.db_path, "dose", dose_id, campos, validos) == 0:
            raise RegistroNaoEncontrado(f"Dose não encontrada: {dose_id}")
        return self.get(dose_id)


# -------------------------
# Estoque
# -------------------------

class LoteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, lotes: Iterable[LoteEstoque], conn=None) -> int:
        return _gravar(self.db_path, conn, "lote_estoque", [asdict(l) for l in lotes])

    def list(self, somente_ativos: bool = False) -> List[LoteEstoque]:
        sql = "SELECT * FROM lote_estoque"
        if somente_ativos:
            sql += " WHERE ativo = 1"
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, sql + " ORDER BY medicamento, validade")
        return [parse_lote(r) for r in rows]

    def get(self, lote_id: str) -> LoteEstoque:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM lote_estoque WHERE id = ?", (lote_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Lote não encontrado: {lote_id}")
        return parse_lote(rows[0])

    def estoque_por_medicamento(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return fetch_dicts(c, "SELECT * FROM vw_estoque_medicamento ORDER BY medicamento")

    def debitar(
        self, lote_id: str, registros: Sequence[RegistroDispensacao], dose_id: Optional[str] = None
    ) -> LoteEstoque:
        """Baixa ``len(registros)`` unidades do lote e grava as dispensações.

        Saldo, inserções e o vínculo da dose (quando ``dose_id`` é informado)
        acontecem na mesma transação; lote, dose e saldo são conferidos antes
        de qualquer escrita.

        Raises:
            RegistroNaoEncontrado: lote ou dose inexistente.
            EstoqueInsuficiente: lote inativo ou sem saldo suficiente.
        """
        qtd = sum(int(r.quantidade) for r in registros)
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT lote, validade, quantidade, ativo, medicamento FROM lote_estoque WHERE id = ?", (lote_id,)
            ).fetchone()
            if row is None:
                raise RegistroNaoEncontrado(f"Lote não encontrado: {lote_id}")
            if dose_id and c.execute("SELECT 1 FROM dose WHERE id = ?", (dose_id,)).fetchone() is None:
                raise RegistroNaoEncontrado(f"Dose não encontrada: {dose_id}")
            if not row["ativo"]:
                raise EstoqueInsuficiente(f"Lote inativo: {lote_id}", {"lote_id": lote_id})
            if row["quantidade"] < qtd:
                raise EstoqueInsuficiente(
                    f"Estoque insuficiente para {row['medicamento']}: saldo {row['quantidade']}, pedido {qtd}",
                    {"lote_id": lote_id, "saldo": row["quantidade"], "pedido": qtd},
                )
            c.execute("UPDATE lote_estoque SET quantidade = quantidade - ? WHERE id = ?", (qtd, lote_id))
            _upsert(c, "dispensacao", [asdict(r) for r in registros])
            if dose_id:
                c.execute(
                    "UPDATE dose SET lote_estoque_id = ?, lote = ?, validade = ? WHERE id = ?",
                    (lote_id, row["lote"], row["validade"], dose_id),
                )
        return self.get(lote_id)


class DispensacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, registros: Iterable[RegistroDispensacao], conn=None) -> int:
        return _gravar(self.db_path, conn, "dispensacao", [asdict(r) for r in registros])

    def list(self, inicio: Optional[str] = None, fim: Optional[str] = None) -> List[RegistroDispensacao]:
        sql = "SELECT * FROM dispensacao WHERE 1=1"
        params: List[Any] = []
        if inicio:
            sql += " AND substr(data, 1, 10) >= ?"
            params.append(inicio)
        if fim:
            sql += " AND substr(data, 1, 10) <= ?"
            params.append(fim)
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, sql + " ORDER BY data", params)
        return [parse_dispensacao(r) for r in rows]

    def consumo_mensal(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return fetch_dicts(c, "SELECT * FROM vw_consumo_mensal ORDER BY ano_mes, medicamento")


# -------------------------
# Compras
# -------------------------

class PedidoCompraRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, pedidos: Iterable[PedidoCompra], conn=None) -> int:
        return _gravar(self.db_path, conn, "pedido_compra", [asdict(p) for p in pedidos])

    def list(self, status: Optional[StatusPedido] = None) -> List[PedidoCompra]:
        with connect(self.db_path) as c:
            if status is not None:
                rows = fetch_dicts(
                    c, "SELECT * FROM pedido_compra WHERE status = ? ORDER BY criado_em DESC, rowid DESC",
                    (_coluna(status),),
                )
            else:
                rows = fetch_dicts(c, "SELECT * FROM pedido_compra ORDER BY criado_em DESC, rowid DESC")
        return [parse_pedido(r) for r in rows]

    def get(self, pedido_id: str) -> PedidoCompra:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM pedido_compra WHERE id = ?", (pedido_id,))
        if not rows:
            raise RegistroNaoEncontrado(f"Pedido de compra não encontrado: {pedido_id}")
        return parse_pedido(rows[0])

    def salvar_status(self, pedido: PedidoCompra) -> PedidoCompra:
        with connect(self.db_path) as c:
            c.execute("UPDATE pedido_compra SET status = ? WHERE id = ?", (_coluna(pedido.status), pedido.id))
        return self.get(pedido.id)


# -------------------------
# Caixa
# -------------------------

class VendaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert_many(self, vendas: Iterable[Venda], conn=None) -> int:
        return _gravar(self.db_path, conn, "venda", [asdict(v) for v in vendas])

    def insert(self, venda: Venda) -> Venda:
        """Registra a venda; uma dose só pode ser vendida uma vez."""
        with connect(self.db_path) as c:
            existe = c.execute("SELECT id FROM venda WHERE dose_id = ?", (venda.dose_id,)).fetchone()
            if existe:
                raise ValueError(f"Dose {venda.dose_id} já possui venda registrada")
            _upsert(c, "venda", [asdict(venda)])
        return venda

    def list(self) -> List[Venda]:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM venda ORDER BY data_venda")
        return [parse_venda(r) for r in rows]


# -------------------------
# Régua de contato
# -------------------------

class ContatoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def dispensar(
        self, contato_id: str, dispensado_em: str, feedback: Optional[FeedbackPaciente] = None
    ) -> bool:
        """Marca o contato como dispensado. Retorna False se já estava (no-op)."""
        with connect(self.db_path) as c:
            existe = c.execute(
                "SELECT 1 FROM contato_dispensado WHERE contato_id = ?", (contato_id,)
            ).fetchone()
            if existe:
                return False
            fb = None
            if feedback is not None:
                fb = _json({k: _coluna(v) for k, v in asdict(feedback).items()})
            c.execute(
                "INSERT INTO contato_dispensado (contato_id, dispensado_em, feedback) VALUES (?, ?, ?)",
                (contato_id, dispensado_em, fb),
            )
        return True

    def upsert_many(self, dispensados: Iterable[ContatoDispensado], conn=None) -> int:
        rows = []
        for d in dispensados:
            fb = None
            if d.feedback is not None:
                fb = _json({k: _coluna(v) for k, v in asdict(d.feedback).items()})
            rows.append({"contato_id": d.contato_id, "dispensado_em": d.dispensado_em, "feedback": fb})
        return _gravar(self.db_path, conn, "contato_dispensado", rows, key="contato_id")

    def list(self) -> List[ContatoDispensado]:
        with connect(self.db_path) as c:
            rows = fetch_dicts(c, "SELECT * FROM contato_dispensado ORDER BY dispensado_em")
        return [parse_contato_dispensado(r) for r in rows]
