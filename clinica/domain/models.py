# clinica/domain/models.py
"""
Modelos (dataclasses) do domínio clínico.

Observação importante:
- Datas ficam como strings ISO (YYYY-MM-DD ou com horário), exatamente como
  chegam da API; a conversão acontece em `clinica.domain.datas`, que tolera
  valores inválidos.
- Enums guardam o código canônico do backend. A conversão de rótulos em
  português ("Aplicada", "PAGO", ...) é feita uma única vez em
  `clinica.adapters.parsers`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from clinica.domain.datas import somar_dias


# -------------------------
# Enums
# -------------------------

class CategoriaProtocolo(str, Enum):
    MEDICATION = "MEDICATION"
    MONITORING = "MONITORING"


class StatusTratamento(str, Enum):
    ONGOING = "ONGOING"
    FINISHED = "FINISHED"
    REFUSED = "REFUSED"
    SUSPENDED = "SUSPENDED"
    EXTERNAL = "EXTERNAL"


class StatusDose(str, Enum):
    PENDING = "PENDING"
    APPLIED = "APPLIED"
    NOT_ACCEPTED = "NOT_ACCEPTED"


class StatusPagamento(str, Enum):
    WAITING_PIX = "WAITING_PIX"
    WAITING_CARD = "WAITING_CARD"
    WAITING_BOLETO = "WAITING_BOLETO"
    PAID = "PAID"
    WAITING_DELIVERY = "WAITING_DELIVERY"


class StatusPesquisa(str, Enum):
    NOT_SENT = "NOT_SENT"
    WAITING = "WAITING"
    SENT = "SENT"
    ANSWERED = "ANSWERED"


class StatusPedido(str, Enum):
    PENDING = "PENDING"
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"


class FormaPagamento(str, Enum):
    PIX = "PIX"
    CARD = "CARD"
    BOLETO = "BOLETO"


class ClassificacaoFeedback(str, Enum):
    POSITIVO = "POSITIVO"
    NEUTRO = "NEUTRO"
    NEGATIVO = "NEGATIVO"


class Urgencia(str, Enum):
    BAIXA = "BAIXA"
    MEDIA = "MEDIA"
    ALTA = "ALTA"


class StatusResolucao(str, Enum):
    PENDENTE = "PENDENTE"
    RESOLVIDO = "RESOLVIDO"


# -------------------------
# Cadastro
# -------------------------

@dataclass
class Responsavel:
    """Contato principal do paciente (mãe, pai, tutor)."""
    nome_completo: str = ""
    telefone: str = ""
    telefone_secundario: Optional[str] = None
    email: Optional[str] = None
    parentesco: str = ""


@dataclass
class Endereco:
    rua: str
    numero: str
    bairro: str
    cidade: str
    estado: str
    cep: str
    complemento: Optional[str] = None


@dataclass
class Paciente:
    id: str
    nome_completo: str
    diagnostico_principal: str = ""
    data_nascimento: Optional[str] = None
    sexo: Optional[str] = None                # 'M' | 'F' | 'Other'
    ativo: bool = True
    responsavel: Responsavel = field(default_factory=Responsavel)
    endereco: Optional[Endereco] = None
    observacoes_clinicas: Optional[str] = None


@dataclass
class Diagnostico:
    id: str
    nome: str
    cor: Optional[str] = None
    exige_termo: bool = False


@dataclass
class DocumentoConsentimento:
    id: str
    paciente_id: str
    nome_arquivo: str
    tipo_arquivo: str                         # 'pdf' | 'doc' | 'docx'
    enviado_em: Optional[str] = None
    enviado_por: Optional[str] = None
    url: Optional[str] = None


# -------------------------
# Protocolos e tratamentos
# -------------------------

@dataclass
class Medicamento:
    """Item do cadastro base de medicamentos (princípio ativo + apresentação)."""
    id: str
    principio_ativo: str                      # ex.: Acetato de Leuprorrelina
    dosagem: str = ""                         # ex.: 3.75mg
    nome_comercial: Optional[str] = None
    fabricante: Optional[str] = None
    forma: Optional[str] = None               # ex.: Pó Liofilizado

    @property
    def rotulo(self) -> str:
        """Nome usado nos protocolos e no estoque: "princípio ativo dosagem"."""
        return f"{self.principio_ativo} {self.dosagem}".strip()


@dataclass
class Marco:
    """Ponto da régua de contato: `dia` contado a partir do início do tratamento."""
    dia: int
    mensagem: str


@dataclass
class Protocolo:
    id: str
    nome: str
    categoria: CategoriaProtocolo
    frequencia_dias: int
    medicamento: str = ""                     # vazio em protocolos de acompanhamento
    meta: Optional[str] = None
    mensagem: Optional[str] = None
    marcos: List[Marco] = field(default_factory=list)

    @property
    def is_medicamentoso(self) -> bool:
        return self.categoria == CategoriaProtocolo.MEDICATION


@dataclass
class Tratamento:
    id: str
    paciente_id: str
    protocolo_id: str
    status: StatusTratamento
    data_inicio: str
    doses_planejadas_antes_consulta: int = 0
    proxima_consulta: Optional[str] = None
    observacoes: Optional[str] = None


@dataclass
class Dose:
    id: str
    tratamento_id: str
    ciclo: int
    data_aplicacao: str
    status: StatusDose
    lote: str = ""
    validade: Optional[str] = None
    status_pagamento: Optional[StatusPagamento] = None   # None = não se aplica
    pagamento_atualizado_em: Optional[str] = None
    ultima_antes_consulta: bool = False
    data_consulta: Optional[str] = None
    enfermagem: bool = False
    status_pesquisa: StatusPesquisa = StatusPesquisa.NOT_SENT
    nota_pesquisa: Optional[int] = None                  # 0-10
    comentario_pesquisa: Optional[str] = None
    lote_estoque_id: Optional[str] = None

    def proxima_data_calculada(self, frequencia_dias: int):
        """Data da aplicação + frequência do protocolo (ou None se a data for inválida)."""
        return somar_dias(self.data_aplicacao, frequencia_dias)


# -------------------------
# Estoque e compras
# -------------------------

@dataclass
class LoteEstoque:
    id: str
    medicamento: str
    lote: str
    validade: Optional[str]
    quantidade: int
    unidade: str = "Ampola"
    data_entrada: Optional[str] = None
    ativo: bool = True
    custo_unitario: Optional[float] = None
    preco_venda: Optional[float] = None
    comissao: float = 0.0
    imposto: float = 0.0
    entrega: float = 0.0
    outros: float = 0.0


@dataclass
class RegistroDispensacao:
    """Uma linha por unidade consumida de um lote."""
    id: str
    data: str
    paciente_id: str
    lote_estoque_id: str
    medicamento: str
    quantidade: int = 1
    dose_id: Optional[str] = None


@dataclass
class PedidoCompra:
    id: str
    medicamento: str
    criado_em: str
    consumo_previsto_10d: int
    estoque_atual: int
    status: StatusPedido = StatusPedido.PENDING
    quantidade_sugerida: Optional[int] = None


# -------------------------
# Caixa
# -------------------------

@dataclass
class Venda:
    id: str
    dose_id: str
    data_venda: str
    preco_venda: float
    custo_unitario: float = 0.0
    comissao: float = 0.0
    imposto: float = 0.0
    entrega: float = 0.0
    outros: float = 0.0
    forma_pagamento: FormaPagamento = FormaPagamento.PIX
    medicamento: Optional[str] = None
    paciente_id: Optional[str] = None


@dataclass
class VendaPendente:
    """Dose aplicada ainda sem venda registrada, com valores padrão do lote."""
    dose_id: str
    paciente_id: Optional[str]
    paciente_nome: str
    medicamento: str
    data_aplicacao: str
    preco_venda: float = 0.0
    custo_unitario: float = 0.0
    comissao: float = 0.0
    imposto: float = 0.0
    entrega: float = 0.0
    outros: float = 0.0


# -------------------------
# Régua de contato
# -------------------------

@dataclass
class FeedbackPaciente:
    texto: str
    classificacao: ClassificacaoFeedback = ClassificacaoFeedback.NEUTRO
    urgencia: Urgencia = Urgencia.BAIXA
    precisa_resposta_medica: bool = False
    status_resolucao: StatusResolucao = StatusResolucao.PENDENTE


@dataclass
class ContatoDispensado:
    contato_id: str
    dispensado_em: str
    feedback: Optional[FeedbackPaciente] = None
