"""
Rotas das solicitações de alteração (aprovação pelo supervisor)
"""
from typing import List, Optional
from fastapi import APIRouter, Depends

from models.change_request import ChangeRequest, ChangeRequestResolve, ChangeRequestStatus
from services.auth import get_current_user, require_admin
from services.change_requests import list_change_requests, resolve_change_request

router = APIRouter(prefix="/change-requests", tags=["Change Requests"])


@router.get("", response_model=List[ChangeRequest])
async def list_requests(
    status: Optional[ChangeRequestStatus] = None,
    user: dict = Depends(get_current_user)
):
    return await list_change_requests(user, status)


@router.patch("/{request_id}", response_model=ChangeRequest)
async def resolve_request(
    request_id: str,
    payload: ChangeRequestResolve,
    user: dict = Depends(require_admin())
):
    return await resolve_change_request(
        request_id, payload.status, user,
        admin_resposta=payload.admin_resposta, aplicar=payload.aplicar
    )
