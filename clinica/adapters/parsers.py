"""
Conversão de payloads brutos (JSON da API, linhas de planilha) para os
modelos do domínio.

É o único ponto onde valores em texto são interpretados: enums aceitam
tanto o código do backend ("APPLIED", "MEDICATION") quanto o rótulo em
português ("Aplicada", "Medicamentoso"); chaves aceitam o nome da API em
camelCase ou o nome do modelo em snake_case. Depois daqui, nenhuma regra
compara strings cruas.
"""

from __future__ import annotations

import json
import re
import unicodedata
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from clinica.domain.datas import to_iso
from clinica.domain.models import (
    CategoriaProtocolo,
    ClassificacaoFeedback,
    ContatoDispensado,
    Diagnostico,
    DocumentoConsentimento,
    Dose,
    Endereco,
    FeedbackPaciente,
    FormaPagamento,
    LoteEstoque,
    Marco,
    Medicamento,
    Paciente,
    PedidoCompra,
    Protocolo,
    RegistroDispensacao,
    Responsavel,
    StatusDose,
    StatusPagamento,
    StatusPedido,
    StatusPesquisa,
    StatusResolucao,
    StatusTratamento,
    Tratamento,
    Urgencia,
    Venda,
)
from clinica.domain.status import (
    ROTULOS_DOSE,
    ROTULOS_PAGAMENTO,
    ROTULOS_PEDIDO,
    ROTULOS_PESQUISA,
    ROTULOS_TRATAMENTO,
)

E = TypeVar("E", bound=Enum)

_NUM_RE = re.compile(r"[-+]?\d[\d.,]*")


def _slug(s: str) -> str:
    s = unicodedata.normalize("NFKD", str(s)).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "_", s.strip().lower()).strip("_")


# Rótulos extras aceitos na entrada (além dos códigos e rótulos de exibição)
_ROTULOS_EXTRA: Dict[Type[Enum], Dict[str, Enum]] = {
    CategoriaProtocolo: {
        "medicamentoso": CategoriaProtocolo.MEDICATION,
        "regua_de_contato_acompanhamento": CategoriaProtocolo.MONITORING,
        "acompanhamento": CategoriaProtocolo.MONITORING,
    },
    FormaPagamento: {
        "cartao": FormaPagamento.CARD,
    },
}

_ROTULOS_EXIBICAO = (ROTULOS_DOSE, ROTULOS_PAGAMENTO, ROTULOS_PESQUISA, ROTULOS_TRATAMENTO, ROTULOS_PEDIDO)


def parse_enum(cls: Type[E], valor: Any, default: Optional[E] = None) -> Optional[E]:
    """Interpreta ``valor`` como membro de ``cls`` (código ou rótulo, sem caixa/acento)."""
    if valor is None or valor == "":
        return default
    if isinstance(valor, cls):
        return valor
    s = str(valor).strip()
    try:
        return cls(s.upper())
    except ValueError:
        pass
    chave = _slug(s)
    for membro in cls:
        if _slug(membro.value) == chave:
            return membro
    for tabela in _ROTULOS_EXIBICAO:
        for membro, rotulo in tabela.items():
            if isinstance(membro, cls) and _slug(rotulo) == chave:
                return membro
    extra = _ROTULOS_EXTRA.get(cls, {})
    if chave in extra:
        return extra[chave]
    raise ValueError(f"Valor inválido para {cls.__name__}: {valor!r}")


def parse_bool(valor: Any, default: bool = False) -> bool:
    if valor is None or valor == "":
        return default
    if isinstance(valor, bool):
        return valor
    s = str(valor).strip().lower()
    if s in {"1", "true", "t", "sim", "s", "y", "yes"}:
        return True
    if s in {"0", "false", "f", "nao", "não", "n", "no"}:
        return False
    return default


def parse_int(valor: Any, default: Optional[int] = None) -> Optional[int]:
    if valor is None or valor == "":
        return default
    try:
        return int(float(valor))
    except (TypeError, ValueError):
        return default


def parse_valor(txt: Any) -> Optional[float]:
    """Interpreta valores numéricos/monetários.

    Exemplos:
        "R$ 1.234,56" → 1234.56
        "12,5"        → 12.5
        "1234.5"      → 1234.5
        850           → 850.0

    Returns:
        float ou None quando nenhum número é encontrado.
    """
    if txt is None:
        return None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return float(txt)
    s = str(txt).strip()
    m = _NUM_RE.search(s)
    if not m:
        return None
    num = m.group(0)
    if "," in num:
        # formato brasileiro: ponto de milhar, vírgula decimal
        num = num.replace(".", "").replace(",", ".")
    try:
        return float(num)
    except ValueError:
        return None


def _get(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def _str(raw: Dict[str, Any], *keys: str, default: str = "") -> str:
    v = _get(raw, *keys)
    return default if v is None else str(v)


def _opt_str(raw: Dict[str, Any], *keys: str) -> Optional[str]:
    v = _get(raw, *keys)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _data(raw: Dict[str, Any], *keys: str) -> Optional[str]:
    """Data como veio (ISO com horário é preservado); DD/MM/AAAA vira ISO."""
    v = _opt_str(raw, *keys)
    if v is None:
        return None
    if "/" in v:
        return to_iso(v) or v
    return v


# -------------------------
# Entidades
# -------------------------

def parse_responsavel(raw: Optional[Dict[str, Any]]) -> Responsavel:
    raw = raw or {}
    return Responsavel(
        nome_completo=_str(raw, "fullName", "nome_completo"),
        telefone=_str(raw, "phonePrimary", "telefone"),
        telefone_secundario=_opt_str(raw, "phoneSecondary", "telefone_secundario"),
        email=_opt_str(raw, "email"),
        parentesco=_str(raw, "relationship", "parentesco"),
    )


def parse_endereco(raw: Optional[Dict[str, Any]]) -> Optional[Endereco]:
    if not raw:
        return None
    return Endereco(
        rua=_str(raw, "street", "rua"),
        numero=_str(raw, "number", "numero"),
        bairro=_str(raw, "neighborhood", "bairro"),
        cidade=_str(raw, "city", "cidade"),
        estado=_str(raw, "state", "estado"),
        cep=_str(raw, "zipCode", "cep"),
        complemento=_opt_str(raw, "complement", "complemento"),
    )


def parse_paciente(raw: Dict[str, Any]) -> Paciente:
    return Paciente(
        id=_str(raw, "id"),
        nome_completo=_str(raw, "fullName", "nome_completo"),
        diagnostico_principal=_str(raw, "mainDiagnosis", "diagnostico_principal"),
        data_nascimento=_data(raw, "birthDate", "data_nascimento"),
        sexo=_opt_str(raw, "gender", "sexo"),
        ativo=parse_bool(_get(raw, "active", "ativo"), default=True),
        responsavel=parse_responsavel(_get(raw, "guardian", "responsavel")),
        endereco=parse_endereco(_get(raw, "address", "endereco")),
        observacoes_clinicas=_opt_str(raw, "clinicalNotes", "observacoes_clinicas"),
    )


def parse_diagnostico(raw: Dict[str, Any]) -> Diagnostico:
    return Diagnostico(
        id=_str(raw, "id"),
        nome=_str(raw, "name", "nome"),
        cor=_opt_str(raw, "color", "cor"),
        exige_termo=parse_bool(_get(raw, "requiresConsent", "exige_termo")),
    )


def parse_documento(raw: Dict[str, Any]) -> DocumentoConsentimento:
    return DocumentoConsentimento(
        id=_str(raw, "id"),
        paciente_id=_str(raw, "patientId", "paciente_id"),
        nome_arquivo=_str(raw, "fileName", "nome_arquivo"),
        tipo_arquivo=_str(raw, "fileType", "tipo_arquivo").lower(),
        enviado_em=_data(raw, "uploadDate", "enviado_em"),
        enviado_por=_opt_str(raw, "uploadedBy", "enviado_por"),
        url=_opt_str(raw, "url"),
    )


def parse_medicamento(raw: Dict[str, Any]) -> Medicamento:
    return Medicamento(
        id=_str(raw, "id"),
        principio_ativo=_str(raw, "activeIngredient", "principio_ativo").strip(),
        dosagem=_str(raw, "dosage", "dosagem").strip(),
        nome_comercial=_opt_str(raw, "tradeName", "nome_comercial"),
        fabricante=_opt_str(raw, "manufacturer", "fabricante"),
        forma=_opt_str(raw, "pharmaceuticalForm", "forma"),
    )


def parse_marcos(valor: Any) -> List[Marco]:
    """Aceita lista de dicts ou o JSON serializado (como fica no SQLite)."""
    if not valor:
        return []
    if isinstance(valor, str):
        valor = json.loads(valor)
    marcos = [
        Marco(dia=parse_int(_get(m, "day", "dia"), 0), mensagem=_str(m, "message", "mensagem"))
        for m in valor
    ]
    return sorted(marcos, key=lambda m: m.dia)


def parse_protocolo(raw: Dict[str, Any]) -> Protocolo:
    return Protocolo(
        id=_str(raw, "id"),
        nome=_str(raw, "name", "nome"),
        categoria=parse_enum(CategoriaProtocolo, _get(raw, "category", "categoria"), CategoriaProtocolo.MEDICATION),
        frequencia_dias=parse_int(_get(raw, "frequencyDays", "frequencia_dias"), 0),
        medicamento=_str(raw, "medicationType", "medicamento"),
        meta=_opt_str(raw, "goal", "meta"),
        mensagem=_opt_str(raw, "message", "mensagem"),
        marcos=parse_marcos(_get(raw, "milestones", "marcos")),
    )


def parse_tratamento(raw: Dict[str, Any]) -> Tratamento:
    return Tratamento(
        id=_str(raw, "id"),
        paciente_id=_str(raw, "patientId", "paciente_id"),
        protocolo_id=_str(raw, "protocolId", "protocolo_id"),
        status=parse_enum(StatusTratamento, _get(raw, "status"), StatusTratamento.ONGOING),
        data_inicio=_data(raw, "startDate", "data_inicio") or "",
        doses_planejadas_antes_consulta=parse_int(
            _get(raw, "plannedDosesBeforeConsult", "doses_planejadas_antes_consulta"), 0
        ),
        proxima_consulta=_data(raw, "nextConsultationDate", "proxima_consulta"),
        observacoes=_opt_str(raw, "observations", "observacoes"),
    )


def parse_dose(raw: Dict[str, Any]) -> Dose:
    nota = parse_int(_get(raw, "surveyScore", "nota_pesquisa"))
    return Dose(
        id=_str(raw, "id"),
        tratamento_id=_str(raw, "treatmentId", "tratamento_id"),
        ciclo=parse_int(_get(raw, "cycleNumber", "ciclo"), 0),
        data_aplicacao=_data(raw, "applicationDate", "data_aplicacao") or "",
        status=parse_enum(StatusDose, _get(raw, "status"), StatusDose.PENDING),
        lote=_str(raw, "lotNumber", "lote"),
        validade=_data(raw, "expiryDate", "validade"),
        status_pagamento=parse_enum(StatusPagamento, _get(raw, "paymentStatus", "status_pagamento")),
        pagamento_atualizado_em=_data(raw, "paymentUpdatedAt", "pagamento_atualizado_em"),
        ultima_antes_consulta=parse_bool(_get(raw, "isLastBeforeConsult", "ultima_antes_consulta")),
        data_consulta=_data(raw, "consultationDate", "data_consulta"),
        enfermagem=parse_bool(_get(raw, "nurse", "enfermagem")),
        status_pesquisa=parse_enum(
            StatusPesquisa, _get(raw, "surveyStatus", "status_pesquisa"), StatusPesquisa.NOT_SENT
        ),
        nota_pesquisa=max(0, min(10, nota)) if nota is not None else None,
        comentario_pesquisa=_opt_str(raw, "surveyComment", "comentario_pesquisa"),
        lote_estoque_id=_opt_str(raw, "inventoryLotId", "lote_estoque_id"),
    )


def parse_lote(raw: Dict[str, Any]) -> LoteEstoque:
    def _taxa(*keys):
        return parse_valor(_get(raw, *keys)) or 0.0

    return LoteEstoque(
        id=_str(raw, "id"),
        medicamento=_str(raw, "medicationName", "medicamento").strip(),
        lote=_str(raw, "lotNumber", "lote"),
        validade=_data(raw, "expiryDate", "validade"),
        quantidade=parse_int(_get(raw, "quantity", "quantidade"), 0),
        unidade=_str(raw, "unit", "unidade", default="Ampola"),
        data_entrada=_data(raw, "entryDate", "data_entrada"),
        ativo=parse_bool(_get(raw, "active", "ativo"), default=True),
        custo_unitario=parse_valor(_get(raw, "unitCost", "custo_unitario")),
        preco_venda=parse_valor(_get(raw, "baseSalePrice", "salePrice", "preco_venda")),
        comissao=_taxa("defaultCommission", "commission", "comissao"),
        imposto=_taxa("defaultTax", "tax", "imposto"),
        entrega=_taxa("defaultDelivery", "delivery", "entrega"),
        outros=_taxa("defaultOther", "other", "outros"),
    )


def parse_dispensacao(raw: Dict[str, Any]) -> RegistroDispensacao:
    return RegistroDispensacao(
        id=_str(raw, "id"),
        data=_data(raw, "date", "data") or "",
        paciente_id=_str(raw, "patientId", "paciente_id"),
        lote_estoque_id=_str(raw, "inventoryItemId", "lote_estoque_id"),
        medicamento=_str(raw, "medicationName", "medicamento"),
        quantidade=parse_int(_get(raw, "quantity", "quantidade"), 1),
        dose_id=_opt_str(raw, "doseId", "dose_id"),
    )


def parse_pedido(raw: Dict[str, Any]) -> PedidoCompra:
    return PedidoCompra(
        id=_str(raw, "id"),
        medicamento=_str(raw, "medicationName", "medicamento"),
        criado_em=_data(raw, "createdAt", "criado_em") or "",
        consumo_previsto_10d=parse_int(_get(raw, "predictedConsumption10Days", "consumo_previsto_10d"), 0),
        estoque_atual=parse_int(_get(raw, "currentStock", "estoque_atual"), 0),
        status=parse_enum(StatusPedido, _get(raw, "status"), StatusPedido.PENDING),
        quantidade_sugerida=parse_int(_get(raw, "suggestedQuantity", "quantidade_sugerida")),
    )


def parse_venda(raw: Dict[str, Any]) -> Venda:
    return Venda(
        id=_str(raw, "id"),
        dose_id=_str(raw, "doseId", "dose_id"),
        data_venda=_data(raw, "saleDate", "data_venda") or "",
        preco_venda=parse_valor(_get(raw, "salePrice", "preco_venda")) or 0.0,
        custo_unitario=parse_valor(_get(raw, "unitCost", "custo_unitario")) or 0.0,
        comissao=parse_valor(_get(raw, "commission", "comissao")) or 0.0,
        imposto=parse_valor(_get(raw, "tax", "imposto")) or 0.0,
        entrega=parse_valor(_get(raw, "delivery", "entrega")) or 0.0,
        outros=parse_valor(_get(raw, "other", "outros")) or 0.0,
        forma_pagamento=parse_enum(FormaPagamento, _get(raw, "paymentMethod", "forma_pagamento"), FormaPagamento.PIX),
        medicamento=_opt_str(raw, "medicationName", "medicamento"),
        paciente_id=_opt_str(raw, "patientId", "paciente_id"),
    )


def parse_feedback(raw: Any) -> Optional[FeedbackPaciente]:
    if not raw:
        return None
    if isinstance(raw, str):
        raw = json.loads(raw)
    return FeedbackPaciente(
        texto=_str(raw, "text", "texto"),
        classificacao=parse_enum(
            ClassificacaoFeedback, _get(raw, "classification", "classificacao"), ClassificacaoFeedback.NEUTRO
        ),
        urgencia=parse_enum(Urgencia, _get(raw, "urgency", "urgencia"), Urgencia.BAIXA),
        precisa_resposta_medica=parse_bool(_get(raw, "needsMedicalResponse", "precisa_resposta_medica")),
        status_resolucao=parse_enum(
            StatusResolucao, _get(raw, "resolutionStatus", "status_resolucao"), StatusResolucao.PENDENTE
        ),
    )


def parse_contato_dispensado(raw: Dict[str, Any]) -> ContatoDispensado:
    return ContatoDispensado(
        contato_id=_str(raw, "contactId", "contato_id"),
        dispensado_em=_str(raw, "dismissedAt", "dispensado_em"),
        feedback=parse_feedback(_get(raw, "feedback")),
    )


def parse_many(parser, rows: Iterable[Dict[str, Any]]) -> List[Any]:
    return [parser(r) for r in rows]
