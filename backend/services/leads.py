"""
====================================================================
SERVIÇO DE LEADS
====================================================================
Criação, edição e exclusão de leads.

Regras:
- Qualquer membro da equipa cria leads (fica dono do lead)
- Editar/excluir: apenas dono ou administrador; os restantes usam
  uma solicitação de alteração (services.change_requests)
- Uma edição não pode deixar o lead numa etapa cujas regras já não cumpre
====================================================================
"""
import uuid
import logging
from typing import Optional

from models.lead import LeadCreate, LeadUpdate, PublicLeadCreate, LeadOrigin
from services import lead_repository
from services.errors import PermissionDeniedError, ValidationError
from services.history import log_history, log_data_changes
from services.lead_kanban import get_visible_lead
from services.lead_repository import now_iso
from services.stage_registry import list_stages, default_entry_stage
from services.transition_rules import can_transition, check_current_stage, is_pessoa_fisica, find_stage
from services.visibility import can_modify_directly
from utils.input_sanitization import (
    sanitize_string, sanitize_text, sanitize_email, sanitize_phone, sanitize_document_number
)

logger = logging.getLogger(__name__)

# Campos que uma edição pode limpar (enviar null)
NULLABLE_FIELDS = {"contato", "email", "endereco", "idade", "cpf", "cnpj"}


def _clean_fields(data: dict) -> dict:
    """Sanitiza os campos de texto presentes em `data`."""
    cleaned = dict(data)
    if "nome" in cleaned:
        cleaned["nome"] = sanitize_string(cleaned["nome"])
        if not cleaned["nome"]:
            raise ValidationError("Informe o nome.")
    if "tipo" in cleaned:
        cleaned["tipo"] = sanitize_string(cleaned["tipo"], max_length=40) or "PF"
    if "endereco" in cleaned:
        cleaned["endereco"] = sanitize_string(cleaned["endereco"], max_length=300) or None
    if "contato" in cleaned:
        raw = cleaned["contato"]
        cleaned["contato"] = sanitize_phone(raw)
        if cleaned["contato"] is None and raw and str(raw).strip():
            raise ValidationError("Telefone inválido.")
    if "email" in cleaned:
        raw = cleaned["email"]
        cleaned["email"] = sanitize_email(raw)
        if cleaned["email"] is None and raw and str(raw).strip():
            raise ValidationError("E-mail inválido.")
    for field in ("cpf", "cnpj"):
        if field in cleaned:
            cleaned[field] = sanitize_document_number(cleaned[field])
    return cleaned


def _apply_identity_document(lead: dict) -> dict:
    """Pessoa física guarda CPF, empresa guarda CNPJ."""
    if is_pessoa_fisica(lead.get("tipo")):
        lead["cnpj"] = None
    else:
        lead["cpf"] = None
    return lead


def _new_lead(data: dict, created_by: Optional[str], origem: LeadOrigin) -> dict:
    now = now_iso()
    return {
        "id": str(uuid.uuid4()),
        "tipo": data.get("tipo") or "PF",
        "nome": data["nome"],
        "contato": data.get("contato"),
        "email": data.get("email"),
        "endereco": data.get("endereco"),
        "idade": data.get("idade"),
        "cpf": data.get("cpf"),
        "cnpj": data.get("cnpj"),
        "created_by": created_by,
        "livre": bool(data.get("livre", False)),
        "stage_id": data.get("stage_id"),
        "doc_foto_path": None,
        "cartao_cnpj_path": None,
        "comprovante_endereco_path": None,
        "cotacao_path": None,
        "dados_extras": data.get("dados_extras") or {},
        "origem": origem.value,
        "version": 1,
        "created_at": now,
        "updated_at": now,
    }


async def create_lead(data: LeadCreate, user: dict) -> dict:
    """
    Cria um lead cujo dono é o utilizador.
    A etapa escolhida passa pelas mesmas regras de uma movimentação.
    """
    lead = _apply_identity_document(_new_lead(
        _clean_fields(data.model_dump()), user["id"], LeadOrigin.INTERNO
    ))

    if lead["stage_id"] is not None:
        stages = await list_stages()
        reason = can_transition(lead, lead["stage_id"], stages)
        if reason:
            raise ValidationError(reason)

    await lead_repository.insert_lead(lead)
    await log_history(lead["id"], user, "Criou lead")
    logger.info(f"Lead {lead['id']} criado por {user['id']}")
    return lead


async def create_public_lead(data: PublicLeadCreate) -> dict:
    """
    Captação pública: lead sem dono, livre para a equipa assumir,
    na primeira coluna sem regras (ou sem etapa).
    """
    fields = _clean_fields(data.model_dump(exclude={"mensagem"}))
    if data.mensagem:
        fields["dados_extras"] = {"mensagem": sanitize_text(data.mensagem, max_length=1000)}
    fields["livre"] = True

    stages = await list_stages()
    entry = default_entry_stage(stages)
    fields["stage_id"] = entry["id"] if entry else None

    lead = _apply_identity_document(_new_lead(fields, None, LeadOrigin.PUBLICO))
    await lead_repository.insert_lead(lead)
    await log_history(lead["id"], None, "Lead captado pela página pública")
    logger.info(f"Lead público {lead['id']} captado")
    return lead


async def get_modifiable_lead(lead_id: str, user: dict) -> dict:
    lead = await get_visible_lead(lead_id, user)
    if not can_modify_directly(lead, user):
        raise PermissionDeniedError(
            "Apenas o dono do lead ou um administrador pode alterá-lo. "
            "Envie uma solicitação ao supervisor."
        )
    return lead


async def update_lead(lead_id: str, data: LeadUpdate, user: dict) -> dict:
    lead = await get_modifiable_lead(lead_id, user)

    changes = {
        key: value
        for key, value in data.model_dump(exclude_unset=True, exclude={"version"}).items()
        if value is not None or key in NULLABLE_FIELDS
    }
    changes = _clean_fields(changes)
    if not changes:
        return lead

    merged = _apply_identity_document({**lead, **changes})
    for field in ("cpf", "cnpj"):
        if merged.get(field) != lead.get(field):
            changes[field] = merged[field]

    stages = await list_stages()
    reason = check_current_stage(merged, stages)
    if reason:
        stage = find_stage(lead.get("stage_id"), stages)
        raise ValidationError(
            f"A alteração viola as regras da etapa '{stage['nome']}'. {reason}"
        )

    version = data.version if data.version is not None else lead.get("version", 1)
    updated = await lead_repository.update_lead(lead_id, changes, expected_version=version)
    await log_data_changes(lead_id, user, lead, changes)
    return updated


async def delete_lead(lead_id: str, user: dict, expected_version: Optional[int] = None) -> None:
    lead = await get_modifiable_lead(lead_id, user)
    version = expected_version if expected_version is not None else lead.get("version", 1)
    await lead_repository.delete_lead(lead_id, expected_version=version)
    await log_history(lead_id, user, "Excluiu lead")
    logger.info(f"Lead {lead_id} excluído por {user['id']}")
