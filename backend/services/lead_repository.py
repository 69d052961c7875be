"""
====================================================================
ACESSO À COLECÇÃO DE LEADS
====================================================================
Leituras e escritas na colecção `leads`.

Todas as escritas são condicionadas à versão lida (controlo de
concorrência optimista) e incrementam-na. Falhas do MongoDB são
convertidas em TransportError.
====================================================================
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from pymongo.errors import PyMongoError

from config import LEADS_MAX_RESULTS
from database import db
from services.errors import ConflictError, NotFoundError, TransportError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str):
    """Converte erros do MongoDB em TransportError."""
    try:
        yield
    except PyMongoError as e:
        logger.error(f"Falha na base de dados ({operation}): {e}")
        raise TransportError(
            "Não foi possível comunicar com a base de dados. Tente novamente."
        ) from e


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def list_leads(query: Optional[dict] = None) -> List[dict]:
    with store_errors("list_leads"):
        cursor = db.leads.find(query or {}, {"_id": 0}).sort("updated_at", -1)
        return await cursor.to_list(length=LEADS_MAX_RESULTS)


async def get_lead(lead_id: str) -> dict:
    with store_errors("get_lead"):
        lead = await db.leads.find_one({"id": lead_id}, {"_id": 0})
    if not lead:
        raise NotFoundError("Lead não encontrado")
    return lead


async def insert_lead(lead: dict) -> dict:
    with store_errors("insert_lead"):
        await db.leads.insert_one(lead)
    lead.pop("_id", None)
    return lead


async def update_lead(
    lead_id: str,
    fields: Dict[str, Any],
    expected_version: int,
    extra_filter: Optional[dict] = None
) -> dict:
    """
    Actualiza o lead apenas se a versão corresponder à lida.

    Args:
        lead_id: ID do lead
        fields: Campos a gravar ($set)
        expected_version: Versão em que o chamador baseou a alteração
        extra_filter: Condições adicionais (ex: {"livre": True} ao assumir)

    Returns:
        Lead actualizado

    Raises:
        ConflictError: outro utilizador alterou o lead entretanto
    """
    query = {"id": lead_id, "version": expected_version}
    if extra_filter:
        query.update(extra_filter)

    update = {"$set": {**fields, "updated_at": now_iso()}, "$inc": {"version": 1}}

    with store_errors("update_lead"):
        result = await db.leads.update_one(query, update)

    if result.matched_count == 0:
        logger.warning(f"Conflito de versão no lead {lead_id} (esperada v{expected_version})")
        raise ConflictError(
            "O lead foi alterado por outro utilizador. Recarregue o quadro e tente novamente."
        )

    return await get_lead(lead_id)


async def delete_lead(lead_id: str, expected_version: Optional[int] = None) -> None:
    query = {"id": lead_id}
    if expected_version is not None:
        query["version"] = expected_version

    with store_errors("delete_lead"):
        result = await db.leads.delete_one(query)

    if result.deleted_count == 0:
        if expected_version is not None:
            raise ConflictError(
                "O lead foi alterado por outro utilizador. Recarregue e tente novamente."
            )
        raise NotFoundError("Lead não encontrado")


async def clear_stage(stage_id: str) -> int:
    """Retira do pipeline todos os leads de uma etapa removida."""
    with store_errors("clear_stage"):
        result = await db.leads.update_many(
            {"stage_id": stage_id},
            {"$set": {"stage_id": None, "updated_at": now_iso()}, "$inc": {"version": 1}}
        )
    return result.modified_count
