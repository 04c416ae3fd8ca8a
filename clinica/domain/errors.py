# clinica/domain/errors.py
"""
Erros de negócio. Todos herdam de ValueError e carregam uma mensagem
pronta para exibição; ``detalhe`` guarda o contexto para o log.
"""


class ErroClinica(ValueError):
    mensagem = "Ocorreu um erro"

    def __init__(self, mensagem=None, detalhe=None):
        super().__init__(mensagem or self.mensagem)
        self.mensagem = mensagem or self.mensagem
        self.detalhe = detalhe if detalhe is not None else {}


class EstoqueInsuficiente(ErroClinica):
    mensagem = "Estoque insuficiente"


class TransicaoInvalida(ErroClinica):
    mensagem = "Transição de status inválida"


class DocumentoInvalido(ErroClinica):
    mensagem = "Documento inválido"


class RegistroNaoEncontrado(ErroClinica):
    mensagem = "Registro não encontrado"


class SnapshotInvalido(ErroClinica):
    mensagem = "Snapshot inconsistente"
