"""
Rotas do CRM de leads (kanban)
"""
import io
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from middleware.rate_limit import limit_read, limit_write, limit_upload
from models.change_request import ChangeRequest, ChangeRequestCreate
from models.lead import (
    Lead, LeadCreate, LeadUpdate, LeadMoveRequest, LeadMoveResponse, DocumentSlot
)
from services import lead_documents, leads as lead_service
from services.auth import get_current_user
from services.change_requests import request_change
from services.history import get_lead_history
from services.lead_claim import claim_lead
from services.lead_kanban import get_board, get_visible_leads, get_visible_lead, request_move

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.get("", response_model=List[Lead])
@limit_read()
async def list_leads(
    request: Request,
    stage_id: Optional[str] = None,
    livre: Optional[bool] = None,
    user: dict = Depends(get_current_user)
):
    """Listar os leads visíveis para o utilizador."""
    leads = await get_visible_leads(user)
    if stage_id:
        leads = [l for l in leads if l.get("stage_id") == stage_id]
    if livre is not None:
        leads = [l for l in leads if bool(l.get("livre")) == livre]
    return leads


@router.get("/board")
@limit_read()
async def get_leads_board(request: Request, user: dict = Depends(get_current_user)):
    """
    Quadro kanban: colunas ordenadas com contagem e valor total,
    leads por coluna (apenas os visíveis) e a coluna sem etapa.
    """
    return await get_board(user)


@router.post("", response_model=Lead)
@limit_write()
async def create_lead(request: Request, lead_data: LeadCreate, user: dict = Depends(get_current_user)):
    return await lead_service.create_lead(lead_data, user)


@router.get("/{lead_id}", response_model=Lead)
async def get_lead(lead_id: str, user: dict = Depends(get_current_user)):
    return await get_visible_lead(lead_id, user)


@router.get("/{lead_id}/history")
async def get_history(lead_id: str, user: dict = Depends(get_current_user)):
    await get_visible_lead(lead_id, user)
    return await get_lead_history(lead_id)


@router.patch("/{lead_id}", response_model=Lead)
@limit_write()
async def update_lead(
    request: Request,
    lead_id: str,
    update_data: LeadUpdate,
    user: dict = Depends(get_current_user)
):
    """Editar lead (dono ou administrador)."""
    return await lead_service.update_lead(lead_id, update_data, user)


@router.delete("/{lead_id}")
@limit_write()
async def delete_lead(
    request: Request,
    lead_id: str,
    version: Optional[int] = None,
    user: dict = Depends(get_current_user)
):
    """Excluir lead (dono ou administrador)."""
    await lead_service.delete_lead(lead_id, user, expected_version=version)
    return {"success": True, "invalidate": ["leads"]}


@router.post("/{lead_id}/move", response_model=LeadMoveResponse)
@limit_write()
async def move_lead(
    request: Request,
    lead_id: str,
    payload: LeadMoveRequest,
    user: dict = Depends(get_current_user)
):
    """Mover lead de coluna (drag & drop)."""
    return await request_move(lead_id, payload.stage_id, user, expected_version=payload.version)


@router.post("/{lead_id}/claim", response_model=Lead)
@limit_write()
async def claim(
    request: Request,
    lead_id: str,
    version: Optional[int] = None,
    user: dict = Depends(get_current_user)
):
    """Assumir um lead livre."""
    return await claim_lead(lead_id, user, expected_version=version)


@router.post("/{lead_id}/change-requests", response_model=ChangeRequest)
@limit_write()
async def create_change_request(
    request: Request,
    lead_id: str,
    payload: ChangeRequestCreate,
    user: dict = Depends(get_current_user)
):
    """Enviar solicitação de edição/exclusão ao supervisor."""
    return await request_change(lead_id, payload.kind, payload.motivo, user)


@router.post("/{lead_id}/documents/{slot}", response_model=Lead)
@limit_upload()
async def upload_document(
    request: Request,
    lead_id: str,
    slot: DocumentSlot,
    file: UploadFile = File(...),
    version: Optional[int] = Form(None),
    user: dict = Depends(get_current_user)
):
    content = await lead_documents.read_upload(file)
    return await lead_documents.attach_document(
        lead_id, slot, io.BytesIO(content), file.filename, len(content), user,
        content_type=file.content_type, expected_version=version
    )


@router.delete("/{lead_id}/documents/{slot}", response_model=Lead)
@limit_write()
async def delete_document(
    request: Request,
    lead_id: str,
    slot: DocumentSlot,
    version: Optional[int] = None,
    user: dict = Depends(get_current_user)
):
    return await lead_documents.remove_document(lead_id, slot, user, expected_version=version)


@router.get("/{lead_id}/documents/{slot}")
@limit_read()
async def download_document(
    request: Request,
    lead_id: str,
    slot: DocumentSlot,
    user: dict = Depends(get_current_user)
):
    """Link temporário para ver o documento."""
    return await lead_documents.document_download_url(lead_id, slot, user)
