"""
====================================================================
SOLICITAÇÕES DE ALTERAÇÃO DE LEADS
====================================================================
Quem não é dono do lead (nem administrador) não o altera directamente:
envia uma solicitação de edição/exclusão com justificativa, que fica
pendente até um administrador a resolver.

Estados: pendente -> resolvido | rejeitado
====================================================================
"""
import uuid
import logging
from typing import Optional, List

from database import db
from models.auth import UserRole
from models.change_request import ChangeRequestKind, ChangeRequestStatus
from services import lead_repository
from services.errors import NotFoundError, PermissionDeniedError, ValidationError
from services.history import log_history
from services.lead_kanban import get_visible_lead
from services.lead_repository import store_errors, now_iso
from utils.input_sanitization import sanitize_text

logger = logging.getLogger(__name__)


async def request_change(
    lead_id: str,
    kind: ChangeRequestKind,
    motivo: str,
    user: dict
) -> dict:
    """
    Cria uma solicitação pendente para o supervisor.

    O lead não é alterado.

    Raises:
        ValidationError: justificativa vazia
        NotFoundError: lead inexistente ou fora do alcance do utilizador
    """
    motivo = sanitize_text(motivo)
    if not motivo:
        raise ValidationError("Informe a justificativa.")

    lead = await get_visible_lead(lead_id, user)

    now = now_iso()
    request_doc = {
        "id": str(uuid.uuid4()),
        "user_id": user["id"],
        "tipo": ChangeRequestKind(kind).tipo,
        "registro_id": lead["id"],
        "motivo": motivo,
        "status": ChangeRequestStatus.PENDENTE.value,
        "admin_resposta": None,
        "created_at": now,
        "updated_at": now,
    }
    with store_errors("request_change"):
        await db.correction_requests.insert_one(request_doc)
    request_doc.pop("_id", None)

    logger.info(f"Solicitação {request_doc['tipo']} do lead {lead_id} por {user['id']}")
    return request_doc


async def list_change_requests(user: dict, status: Optional[ChangeRequestStatus] = None) -> List[dict]:
    """Administrador vê todas; restantes apenas as suas."""
    query = {}
    if status:
        query["status"] = ChangeRequestStatus(status).value
    if not UserRole.is_admin(user.get("role", "")):
        query["user_id"] = user["id"]

    with store_errors("list_change_requests"):
        cursor = db.correction_requests.find(query, {"_id": 0}).sort("created_at", -1)
        return await cursor.to_list(length=500)


async def resolve_change_request(
    request_id: str,
    status: ChangeRequestStatus,
    admin: dict,
    admin_resposta: Optional[str] = None,
    aplicar: bool = False
) -> dict:
    """
    Resolve ou rejeita uma solicitação pendente.

    Com `aplicar` numa exclusão resolvida, o lead é excluído.
    """
    if not UserRole.is_admin(admin.get("role", "")):
        raise PermissionDeniedError("Apenas administradores resolvem solicitações.")

    status = ChangeRequestStatus(status)
    if status == ChangeRequestStatus.PENDENTE:
        raise ValidationError("Escolha resolvido ou rejeitado.")

    with store_errors("resolve_change_request"):
        request_doc = await db.correction_requests.find_one({"id": request_id}, {"_id": 0})
    if not request_doc:
        raise NotFoundError("Solicitação não encontrada")
    if request_doc.get("status") != ChangeRequestStatus.PENDENTE.value:
        raise ValidationError("Esta solicitação já foi tratada.")

    resposta = sanitize_text(admin_resposta) or None
    lead_id = request_doc["registro_id"]

    apply_delete = aplicar and status == ChangeRequestStatus.RESOLVIDO
    if apply_delete:
        if request_doc["tipo"] != ChangeRequestKind.DELETE.tipo:
            raise ValidationError("Só solicitações de exclusão podem ser aplicadas automaticamente.")
        resposta = resposta or "Registro excluído pelo administrador."

    # Só quem fecha a solicitação pendente aplica a exclusão
    with store_errors("resolve_change_request"):
        result = await db.correction_requests.update_one(
            {"id": request_id, "status": ChangeRequestStatus.PENDENTE.value},
            {"$set": {"status": status.value, "admin_resposta": resposta, "updated_at": now_iso()}}
        )
    if result.matched_count == 0:
        raise ValidationError("Esta solicitação já foi tratada.")

    if apply_delete:
        try:
            await lead_repository.delete_lead(lead_id)
        except NotFoundError:
            logger.warning(f"Solicitação {request_id}: lead {lead_id} já tinha sido excluído")
        else:
            await log_history(lead_id, admin, "Excluiu lead (solicitação aprovada)")

    request_doc.update({"status": status.value, "admin_resposta": resposta})
    logger.info(f"Solicitação {request_id} -> {status.value} por {admin['id']}")
    return request_doc
