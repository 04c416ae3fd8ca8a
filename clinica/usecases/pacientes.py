# clinica/usecases/pacientes.py
"""
UC: Termos de consentimento.
- run_anexar_termo(): valida o arquivo e registra o termo do paciente.
- run_pacientes_sem_termo(): ativos cujo diagnóstico exige termo e ainda não têm.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from clinica.config import DB_PATH
from clinica.domain.models import DocumentoConsentimento, Paciente
from clinica.domain.pacientes import pacientes_sem_termo, validar_documento
from clinica.infra.logger import log_database_operation, log_file_operation, log_system_event, log_transaction
from clinica.infra.repositories import DocumentoRepo, PacienteRepo, ParamsRepo
from clinica.usecases.painel import carregar_snapshot, preparar_banco


def run_anexar_termo(
    paciente_id: str,
    arquivo: str,
    enviado_por: Optional[str] = None,
    db_path: str = DB_PATH,
    agora: Optional[datetime] = None,
) -> DocumentoConsentimento:
    """Registra o termo assinado de um paciente.

    Raises:
        FileNotFoundError: arquivo inexistente.
        DocumentoInvalido: tipo fora de PDF/DOC/DOCX ou acima do limite.
        RegistroNaoEncontrado: paciente inexistente.
    """
    agora = agora or datetime.now()
    dados = {"paciente_id": paciente_id, "arquivo": arquivo}
    log_system_event("anexar_termo_start", dados)
    try:
        preparar_banco(db_path)
        caminho = Path(arquivo)
        if not caminho.is_file():
            raise FileNotFoundError(f"Arquivo não encontrado: {arquivo}")
        limite = ParamsRepo(db_path).as_config().tamanho_max_documento
        tipo = validar_documento(caminho.name, caminho.stat().st_size, limite)
        PacienteRepo(db_path).get(paciente_id)

        doc = DocumentoConsentimento(
            id=uuid.uuid4().hex,
            paciente_id=paciente_id,
            nome_arquivo=caminho.name,
            tipo_arquivo=tipo,
            enviado_em=agora.isoformat(timespec="seconds"),
            enviado_por=enviado_por,
            url=str(caminho.resolve()),
        )
        DocumentoRepo(db_path).upsert_many([doc])
        log_file_operation("upload", arquivo, paciente_id=paciente_id)
        log_database_operation("documento", "INSERT", 1, id=doc.id)
        log_transaction("anexar_termo", dados, result={"documento_id": doc.id})
        return doc
    except Exception as e:
        log_transaction("anexar_termo", dados, error=str(e))
        log_system_event("anexar_termo_error", {"error": str(e)}, level="error")
        raise


def run_pacientes_sem_termo(db_path: str = DB_PATH) -> List[Paciente]:
    snap = carregar_snapshot(db_path)
    return pacientes_sem_termo(snap.pacientes, snap.diagnosticos, snap.documentos)
