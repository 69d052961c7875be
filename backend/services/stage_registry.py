"""
====================================================================
REGISTO DE ETAPAS DO KANBAN DE LEADS
====================================================================
Colunas ordenadas do pipeline, com nome, cor e categoria de regra.
====================================================================
"""
import uuid
import logging
from typing import Optional, List

from database import db
from models.stage import StageCategory, StageCreate, StageUpdate, StageOrderItem
from services.errors import NotFoundError, ValidationError
from services.lead_repository import store_errors, now_iso, clear_stage
from services.transition_rules import infer_stage_category

logger = logging.getLogger(__name__)


# Colunas criadas quando o registo está vazio
DEFAULT_STAGES = [
    {"nome": "Novo Lead", "cor": "#6B7280", "categoria": StageCategory.NENHUMA},
    {"nome": "Primeiro Contato", "cor": "#3B82F6", "categoria": StageCategory.NENHUMA},
    {"nome": "Envio de Cotação", "cor": "#F59E0B", "categoria": StageCategory.COTACAO},
    {"nome": "Negociação", "cor": "#8B5CF6", "categoria": StageCategory.CONTATO},
    {"nome": "Fechamento", "cor": "#0EA5E9", "categoria": StageCategory.FECHAMENTO},
    {"nome": "Venda Realizada", "cor": "#22C55E", "categoria": StageCategory.VENDA_REALIZADA},
    {"nome": "Pós-venda", "cor": "#14B8A6", "categoria": StageCategory.FECHAMENTO},
]


async def list_stages() -> List[dict]:
    """Retorna as etapas ordenadas por `ordem`."""
    with store_errors("list_stages"):
        cursor = db.lead_stages.find({}, {"_id": 0}).sort("ordem", 1)
        return await cursor.to_list(length=200)


async def get_stage(stage_id: str) -> dict:
    with store_errors("get_stage"):
        stage = await db.lead_stages.find_one({"id": stage_id}, {"_id": 0})
    if not stage:
        raise NotFoundError("Etapa não encontrada")
    return stage


async def create_stage(data: StageCreate, user: Optional[dict] = None) -> dict:
    nome = data.nome.strip()
    if not nome:
        raise ValidationError("Informe o nome da coluna.")

    if data.ordem is None:
        with store_errors("create_stage"):
            ordem = await db.lead_stages.count_documents({})
    else:
        ordem = data.ordem

    now = now_iso()
    stage = {
        "id": str(uuid.uuid4()),
        "nome": nome,
        "cor": data.cor,
        "ordem": ordem,
        "categoria": (data.categoria or infer_stage_category(nome)).value,
        "created_by": user.get("id") if user else None,
        "created_at": now,
        "updated_at": now,
    }
    with store_errors("create_stage"):
        await db.lead_stages.insert_one(stage)
    stage.pop("_id", None)

    logger.info(f"Etapa criada: {nome} ({stage['categoria']})")
    return stage


async def update_stage(stage_id: str, data: StageUpdate) -> dict:
    """
    Actualiza nome/cor/categoria.
    Renomear não altera a categoria já gravada, salvo se vier explícita.
    """
    stage = await get_stage(stage_id)

    update = data.model_dump(exclude_none=True)
    if "nome" in update:
        update["nome"] = update["nome"].strip()
        if not update["nome"]:
            raise ValidationError("Informe o nome da coluna.")
    if "categoria" in update:
        update["categoria"] = StageCategory(update["categoria"]).value
    elif stage.get("categoria") is None and "nome" in update:
        # Etapas antigas sem categoria: inferir uma única vez
        update["categoria"] = infer_stage_category(update["nome"]).value

    if not update:
        return stage

    update["updated_at"] = now_iso()
    with store_errors("update_stage"):
        await db.lead_stages.update_one({"id": stage_id}, {"$set": update})
    return await get_stage(stage_id)


async def reorder_stages(items: List[StageOrderItem]) -> List[dict]:
    with store_errors("reorder_stages"):
        for item in items:
            await db.lead_stages.update_one(
                {"id": item.id},
                {"$set": {"ordem": item.ordem, "updated_at": now_iso()}}
            )
    return await list_stages()


async def delete_stage(stage_id: str) -> int:
    """
    Remove a etapa. Os leads nela ficam sem etapa.

    Returns:
        Número de leads retirados da coluna
    """
    await get_stage(stage_id)
    with store_errors("delete_stage"):
        await db.lead_stages.delete_one({"id": stage_id})
    moved = await clear_stage(stage_id)
    logger.info(f"Etapa {stage_id} removida; {moved} leads ficaram sem etapa")
    return moved


async def seed_default_stages() -> int:
    """Cria as colunas padrão se o registo estiver vazio."""
    with store_errors("seed_default_stages"):
        existing = await db.lead_stages.count_documents({})
    if existing:
        return 0

    for ordem, stage in enumerate(DEFAULT_STAGES):
        await create_stage(StageCreate(
            nome=stage["nome"], cor=stage["cor"], ordem=ordem, categoria=stage["categoria"]
        ))
    logger.info(f"{len(DEFAULT_STAGES)} etapas padrão criadas")
    return len(DEFAULT_STAGES)


def default_entry_stage(stages: List[dict]) -> Optional[dict]:
    """Primeira coluna sem regras, usada na captação pública."""
    return next(
        (s for s in stages if s.get("categoria", StageCategory.NENHUMA.value) == StageCategory.NENHUMA.value),
        None
    )
