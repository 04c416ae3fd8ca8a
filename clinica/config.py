# clinica/config.py
"""
Configurações globais e valores padrão do painel clínico.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite (CLINICA_DB sobrescreve)
DB_PATH = os.getenv("CLINICA_DB") or os.path.join(os.getcwd(), "clinica.db")


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    horizonte_compra_dias: int = 10      # janela de previsão de consumo
    fator_compra: int = 3                # sugestão = demanda * fator
    janela_nps_dias: int = 30            # 30 ou 60 na tela de enfermagem
    janela_consultas_dias: int = 30      # retornos exibidos no painel
    janela_atividade_dias: int = 7       # doses em hoje ± N dias
    limite_atraso_dias: int = 60         # projeções/contatos mais antigos somem
    tamanho_max_documento: int = 5 * 1024 * 1024


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()

# Tipos aceitos para termos de consentimento
TIPOS_DOCUMENTO = ("pdf", "doc", "docx")
