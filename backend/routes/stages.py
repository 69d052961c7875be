"""
Rotas do registo de etapas (colunas do kanban)
"""
from typing import List
from fastapi import APIRouter, Depends

from models.stage import Stage, StageCreate, StageUpdate, StageOrder
from services import stage_registry
from services.auth import get_current_user, require_admin

router = APIRouter(prefix="/stages", tags=["Lead Stages"])


@router.get("", response_model=List[Stage])
async def list_stages(user: dict = Depends(get_current_user)):
    return await stage_registry.list_stages()


@router.post("", response_model=Stage)
async def create_stage(data: StageCreate, user: dict = Depends(require_admin())):
    return await stage_registry.create_stage(data, user)


@router.put("/order", response_model=List[Stage])
async def reorder_stages(data: StageOrder, user: dict = Depends(require_admin())):
    return await stage_registry.reorder_stages(data.stages)


@router.patch("/{stage_id}", response_model=Stage)
async def update_stage(stage_id: str, data: StageUpdate, user: dict = Depends(require_admin())):
    return await stage_registry.update_stage(stage_id, data)


@router.delete("/{stage_id}")
async def delete_stage(stage_id: str, user: dict = Depends(require_admin())):
    """Remove a coluna; os leads nela ficam sem etapa."""
    moved = await stage_registry.delete_stage(stage_id)
    return {"success": True, "leads_sem_etapa": moved, "invalidate": ["lead-stages", "leads"]}
