"""
====================================================================
ROTAS PÚBLICAS
====================================================================
Captação de leads pela landing page (sem autenticação).

O lead entra livre e sem dono; qualquer membro da equipa o pode
assumir a partir do quadro.

SEGURANÇA: Rate limiting aplicado para prevenir abusos.
====================================================================
"""
from fastapi import APIRouter, Request

from middleware.rate_limit import limit_public
from models.lead import PublicLeadCreate
from services.leads import create_public_lead


router = APIRouter(prefix="/public", tags=["Public"])


@router.post("/leads")
@limit_public()
async def public_lead_capture(request: Request, data: PublicLeadCreate):
    lead = await create_public_lead(data)
    return {
        "success": True,
        "lead_id": lead["id"],
        "message": "Recebemos seu contato. Um consultor vai falar com você em breve."
    }
