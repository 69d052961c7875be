"""
Visibilidade de leads por papel e equipa.
"""
from typing import Iterable, List, Set

from database import db
from models.auth import UserRole
from services.lead_repository import store_errors


def is_visible(lead: dict, user: dict, team_ids: Iterable[str] = ()) -> bool:
    """
    Regras:
    - Administrador: vê todos
    - Restantes: leads livres, criados por si ou por alguém da sua equipa
    """
    if UserRole.is_admin(user.get("role", "")):
        return True
    if lead.get("livre") is True:
        return True
    owner = lead.get("created_by")
    if owner is None:
        return False
    return owner == user.get("id") or owner in set(team_ids)


def visible_leads(leads: List[dict], user: dict, team_ids: Iterable[str] = ()) -> List[dict]:
    team = set(team_ids)
    return [lead for lead in leads if is_visible(lead, user, team)]


def can_modify_directly(lead: dict, user: dict) -> bool:
    """Dono ou administrador editam/excluem sem aprovação."""
    if UserRole.is_admin(user.get("role", "")):
        return True
    return lead.get("created_by") is not None and lead.get("created_by") == user.get("id")


async def get_team_member_ids(user: dict) -> Set[str]:
    """
    Ids dos membros da equipa do utilizador
    (quem o tem como supervisor ou gerente).
    """
    if not UserRole.is_team_lead(user.get("role", "")):
        return set()

    with store_errors("get_team_member_ids"):
        members = await db.users.find(
            {"$or": [{"supervisor_id": user["id"]}, {"gerente_id": user["id"]}]},
            {"_id": 0, "id": 1}
        ).to_list(length=1000)
    return {m["id"] for m in members if m.get("id") and m["id"] != user["id"]}
