"""
Modelo de dados para Solicitações de alteração (edição/exclusão)
enviadas ao supervisor
"""
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class ChangeRequestKind(str, Enum):
    EDIT = "edit"
    DELETE = "delete"

    @property
    def tipo(self) -> str:
        """Valor guardado na colecção correction_requests."""
        return f"lead_{self.value}"


class ChangeRequestStatus(str, Enum):
    PENDENTE = "pendente"
    RESOLVIDO = "resolvido"
    REJEITADO = "rejeitado"


class ChangeRequestCreate(BaseModel):
    kind: ChangeRequestKind
    motivo: str = Field("", max_length=2000)


class ChangeRequestResolve(BaseModel):
    status: ChangeRequestStatus
    admin_resposta: Optional[str] = Field(None, max_length=2000)
    # Para lead_delete resolvido: excluir o lead de imediato
    aplicar: bool = False


class ChangeRequest(BaseModel):
    id: str
    user_id: str
    tipo: str
    registro_id: str
    motivo: str
    status: ChangeRequestStatus = ChangeRequestStatus.PENDENTE
    admin_resposta: Optional[str] = None
    created_at: str
    updated_at: str
