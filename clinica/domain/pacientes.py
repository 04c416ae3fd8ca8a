# clinica/domain/pacientes.py
"""
Regras de cadastro de pacientes: situação ativa, estatísticas do painel,
pendência de termo de consentimento e pré-validação de upload.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from clinica.config import DEFAULTS, TIPOS_DOCUMENTO
from clinica.domain.errors import DocumentoInvalido
from clinica.domain.models import (
    Diagnostico,
    DocumentoConsentimento,
    Paciente,
    StatusTratamento,
    Tratamento,
)

SEM_DIAGNOSTICO = "Não Informado"


@dataclass(frozen=True)
class EstatisticasPacientes:
    ativos: int
    inativos: int
    total: int


def paciente_ativo(tratamentos: Iterable[Tratamento]) -> bool:
    """Paciente é ativo se tiver algum tratamento em andamento ou com medicamento externo."""
    return any(t.status in (StatusTratamento.ONGOING, StatusTratamento.EXTERNAL) for t in tratamentos)


def estatisticas_pacientes(pacientes: Iterable[Paciente]) -> EstatisticasPacientes:
    pacientes = list(pacientes)
    ativos = sum(1 for p in pacientes if p.ativo)
    return EstatisticasPacientes(ativos=ativos, inativos=len(pacientes) - ativos, total=len(pacientes))


def pacientes_por_diagnostico(pacientes: Iterable[Paciente]) -> List[Tuple[str, int]]:
    """Contagem de pacientes ativos por diagnóstico principal, do maior para o menor."""
    contagem: Dict[str, int] = {}
    for p in pacientes:
        if not p.ativo:
            continue
        diag = (p.diagnostico_principal or "").strip() or SEM_DIAGNOSTICO
        contagem[diag] = contagem.get(diag, 0) + 1
    return sorted(contagem.items(), key=lambda kv: kv[1], reverse=True)


def _chave(nome: Optional[str]) -> str:
    return (nome or "").strip().casefold()


def diagnostico_do_paciente(paciente: Paciente, diagnosticos: Iterable[Diagnostico]) -> Optional[Diagnostico]:
    alvo = _chave(paciente.diagnostico_principal)
    if not alvo:
        return None
    for d in diagnosticos:
        if _chave(d.nome) == alvo:
            return d
    return None


def exige_termo(paciente: Paciente, diagnosticos: Iterable[Diagnostico]) -> bool:
    diag = diagnostico_do_paciente(paciente, diagnosticos)
    return bool(diag and diag.exige_termo)


def pacientes_sem_termo(
    pacientes: Iterable[Paciente],
    diagnosticos: Iterable[Diagnostico],
    documentos: Iterable[DocumentoConsentimento],
) -> List[Paciente]:
    """Pacientes ativos cujo diagnóstico exige termo e que não têm nenhum documento."""
    diagnosticos = list(diagnosticos)
    com_documento = {d.paciente_id for d in documentos}
    return [
        p for p in pacientes
        if p.ativo and exige_termo(p, diagnosticos) and p.id not in com_documento
    ]


def validar_documento(nome_arquivo: str, tamanho_bytes: int, limite: int = DEFAULTS.tamanho_max_documento) -> str:
    """Valida o arquivo antes do envio e devolve o tipo (pdf/doc/docx).

    Raises:
        DocumentoInvalido: extensão fora da lista permitida ou arquivo maior que ``limite``.
    """
    ext = os.path.splitext(nome_arquivo or "")[1].lower().lstrip(".")
    if ext not in TIPOS_DOCUMENTO:
        raise DocumentoInvalido(
            "Tipo de arquivo não permitido. Use PDF, DOC ou DOCX.",
            {"arquivo": nome_arquivo, "extensao": ext},
        )
    if tamanho_bytes > limite:
        raise DocumentoInvalido(
            f"Arquivo muito grande. Máximo {limite // (1024 * 1024)}MB.",
            {"arquivo": nome_arquivo, "tamanho": tamanho_bytes},
        )
    return ext
