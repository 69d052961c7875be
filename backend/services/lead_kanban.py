"""
====================================================================
SERVIÇO KANBAN DE LEADS
====================================================================
Movimentação de leads entre etapas e dados do quadro.

Fluxo de uma movimentação:
1. Localiza o lead entre os visíveis para o utilizador
2. Valida a transição (regras da etapa de destino)
3. Grava a nova etapa condicionada à versão lida
4. Na etapa de venda realizada devolve os dados para o registo da venda

Qualquer resposta de sucesso invalida o working set do cliente.
====================================================================
"""
import logging
from typing import Optional, Dict, List, Any

from models.stage import StageCategory
from services import lead_repository
from services.errors import NotFoundError, ValidationError
from services.history import log_history
from services.stage_registry import list_stages
from services.transition_rules import can_transition, find_stage, stage_category
from services.visibility import is_visible, visible_leads, get_team_member_ids

logger = logging.getLogger(__name__)

UNASSIGNED_COLUMN = "sem_etapa"


def parse_valor(value: Any) -> float:
    """
    Converte o valor estimado guardado em dados_extras.
    Aceita números ou strings no formato brasileiro ("1.234,56").
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.replace("R$", "").strip()
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        try:
            return float(text)
        except ValueError:
            return 0.0
    return 0.0


def lead_valor(lead: dict) -> float:
    return parse_valor((lead.get("dados_extras") or {}).get("valor"))


def build_sales_handoff(lead: dict) -> dict:
    """Dados de pré-preenchimento do registo de venda."""
    valor = lead_valor(lead)
    return {
        "lead_id": lead["id"],
        "tipo": lead.get("tipo"),
        "nome": lead.get("nome"),
        "idade": lead.get("idade"),
        "contato": lead.get("contato"),
        "email": lead.get("email"),
        "valor": valor or None,
    }


async def get_visible_lead(lead_id: str, user: dict) -> dict:
    """Obtém um lead garantindo que o utilizador o pode ver."""
    lead = await lead_repository.get_lead(lead_id)
    team_ids = await get_team_member_ids(user)
    if not is_visible(lead, user, team_ids):
        # Não revelar a existência de leads fora do alcance
        raise NotFoundError("Lead não encontrado")
    return lead


# ==== MOVIMENTAÇÃO NO KANBAN ====

async def request_move(
    lead_id: str,
    target_stage_id: Optional[str],
    user: dict,
    expected_version: Optional[int] = None
) -> dict:
    """
    Move um lead para outra coluna do kanban.

    Args:
        lead_id: ID do lead
        target_stage_id: Etapa de destino (None = sem etapa)
        user: Utilizador que está a mover
        expected_version: Versão do lead no quadro do utilizador

    Returns:
        Dict no formato LeadMoveResponse

    Raises:
        ValidationError: regra da etapa violada (nada é gravado)
        ConflictError: o lead mudou desde a última leitura
        TransportError: falha da base de dados
    """
    lead = await get_visible_lead(lead_id, user)
    stages = await list_stages()

    reason = can_transition(lead, target_stage_id, stages)
    if reason:
        logger.info(f"Movimentação recusada: lead {lead_id} -> {target_stage_id}: {reason}")
        raise ValidationError(reason)

    version = expected_version if expected_version is not None else lead.get("version", 1)
    old_stage_id = lead.get("stage_id")
    old_stage = find_stage(old_stage_id, stages)
    new_stage = find_stage(target_stage_id, stages)
    old_name = old_stage["nome"] if old_stage else None
    new_name = new_stage["nome"] if new_stage else None

    if old_stage_id == target_stage_id:
        return {
            "success": True,
            "message": "Lead já está nesta coluna",
            "lead_id": lead_id,
            "old_stage_id": old_stage_id,
            "new_stage_id": target_stage_id,
            "old_column_name": old_name,
            "new_column_name": new_name,
            "version": lead.get("version", 1),
            "celebrar": False,
            "handoff": None,
            "invalidate": [],
        }

    updated = await lead_repository.update_lead(
        lead_id, {"stage_id": target_stage_id}, expected_version=version
    )
    await log_history(
        lead_id, user, "Moveu lead", "stage_id",
        old_name or "Sem etapa", new_name or "Sem etapa"
    )

    closed = stage_category(new_stage) == StageCategory.VENDA_REALIZADA
    if closed:
        logger.info(f"Venda realizada: lead {lead_id} por {user.get('id')}")

    return {
        "success": True,
        "message": f"Lead movido de '{old_name or 'Sem etapa'}' para '{new_name or 'Sem etapa'}'",
        "lead_id": lead_id,
        "old_stage_id": old_stage_id,
        "new_stage_id": target_stage_id,
        "old_column_name": old_name,
        "new_column_name": new_name,
        "version": updated["version"],
        "celebrar": closed,
        "handoff": build_sales_handoff(updated) if closed else None,
        "invalidate": ["leads"],
    }


# ==== DADOS PARA O QUADRO KANBAN ====

async def get_visible_leads(user: dict) -> List[dict]:
    leads = await lead_repository.list_leads()
    team_ids = await get_team_member_ids(user)
    return visible_leads(leads, user, team_ids)


def group_by_stage(leads: List[dict], stages: List[dict]) -> Dict[str, List[dict]]:
    """Agrupa leads por coluna; etapas nulas ou inexistentes vão para sem_etapa."""
    grouped = {stage["id"]: [] for stage in stages}
    grouped[UNASSIGNED_COLUMN] = []
    for lead in leads:
        stage_id = lead.get("stage_id")
        if stage_id in grouped and stage_id != UNASSIGNED_COLUMN:
            grouped[stage_id].append(lead)
        else:
            grouped[UNASSIGNED_COLUMN].append(lead)
    return grouped


async def get_board(user: dict) -> dict:
    """
    Prepara resposta completa para o kanban.

    Returns:
        Dict com columns (config + totais), leads por coluna e total_count
    """
    stages = await list_stages()
    leads = await get_visible_leads(user)
    grouped = group_by_stage(leads, stages)

    columns = []
    for stage in stages:
        column_leads = grouped[stage["id"]]
        columns.append({
            **stage,
            "count": len(column_leads),
            "total_valor": round(sum(lead_valor(l) for l in column_leads), 2),
        })

    unassigned = grouped[UNASSIGNED_COLUMN]
    return {
        "columns": columns,
        "leads": grouped,
        "sem_etapa": {
            "count": len(unassigned),
            "total_valor": round(sum(lead_valor(l) for l in unassigned), 2),
        },
        "total_count": len(leads),
    }
