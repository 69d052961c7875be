"""
Assumir leads livres.

Um lead livre pode ser assumido por qualquer membro da equipa que não
seja já o seu dono. Dono e flag `livre` mudam juntos numa única escrita.
"""
import logging
from typing import Optional

from services import lead_repository
from services.errors import ValidationError
from services.history import log_history

logger = logging.getLogger(__name__)


def claim_rejection(lead: dict, user: dict) -> Optional[str]:
    """Motivo pelo qual o utilizador não pode assumir o lead, ou None."""
    if lead.get("livre") is not True:
        return "Este lead não está livre."
    if lead.get("created_by") == user.get("id"):
        return "Este lead já é seu."
    return None


async def claim_lead(lead_id: str, user: dict, expected_version: Optional[int] = None) -> dict:
    """
    Transfere a posse de um lead livre para o utilizador.

    Raises:
        ValidationError: lead não livre ou já do utilizador
        ConflictError: outro utilizador assumiu/alterou o lead entretanto
    """
    lead = await lead_repository.get_lead(lead_id)

    reason = claim_rejection(lead, user)
    if reason:
        raise ValidationError(reason)

    version = expected_version if expected_version is not None else lead.get("version", 1)
    updated = await lead_repository.update_lead(
        lead_id,
        {"created_by": user["id"], "livre": False},
        expected_version=version,
        extra_filter={"livre": True},
    )

    await log_history(lead_id, user, "Assumiu lead", "created_by", lead.get("created_by"), user["id"])
    logger.info(f"Lead {lead_id} assumido por {user['id']} (antes: {lead.get('created_by')})")
    return updated
