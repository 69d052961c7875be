import uuid
import logging
from datetime import datetime, timezone
from typing import Any

from pymongo.errors import PyMongoError

from database import db

logger = logging.getLogger(__name__)


async def log_history(lead_id: str, user: dict, action: str, field: str = None, old_value: Any = None, new_value: Any = None):
    """Regista uma alteração no histórico do lead"""
    history_doc = {
        "id": str(uuid.uuid4()),
        "lead_id": lead_id,
        "user_id": user.get("id") if user else None,
        "user_name": (user.get("name") or user.get("email")) if user else "Sistema",
        "action": action,
        "field": field,
        "old_value": str(old_value) if old_value is not None else None,
        "new_value": str(new_value) if new_value is not None else None,
        "created_at": datetime.now(timezone.utc).isoformat()
    }
    # O histórico não deve desfazer uma alteração já gravada
    try:
        await db.lead_history.insert_one(history_doc)
    except PyMongoError as e:
        logger.error(f"Falha ao registar histórico do lead {lead_id}: {e}")


async def log_data_changes(lead_id: str, user: dict, old_data: dict, new_data: dict):
    """Compara e regista as diferenças entre os dados antigos e novos"""
    if old_data is None:
        old_data = {}
    if new_data is None:
        return

    for key, new_val in new_data.items():
        old_val = old_data.get(key)
        if old_val != new_val:
            await log_history(lead_id, user, "Alterou lead", key, old_val, new_val)


async def get_lead_history(lead_id: str, limit: int = 200) -> list:
    cursor = db.lead_history.find({"lead_id": lead_id}, {"_id": 0}).sort("created_at", -1)
    return await cursor.to_list(length=limit)
