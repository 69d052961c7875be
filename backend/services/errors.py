"""
Erros do pipeline de leads.

Cada erro fica limitado à operação do utilizador que o originou.
O handler registado em server.py converte-os em respostas HTTP.
"""


class PipelineError(Exception):
    status_code = 400
    kind = "pipeline_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PipelineError):
    """Pré-condição violada (documento em falta, justificativa vazia, ...)."""
    status_code = 422
    kind = "validation_error"


class NotFoundError(PipelineError):
    status_code = 404
    kind = "not_found"


class PermissionDeniedError(PipelineError):
    status_code = 403
    kind = "permission_denied"


class ConflictError(PipelineError):
    """A versão lida já não é a actual: recarregar e tentar de novo."""
    status_code = 409
    kind = "conflict"
    retryable = True


class TransportError(PipelineError):
    """Falha da base de dados ou do armazenamento. Nada foi gravado."""
    status_code = 503
    kind = "transport_error"
    retryable = True
