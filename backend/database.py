import logging

from motor.motor_asyncio import AsyncIOMotorClient

from config import MONGO_URL, DB_NAME

logger = logging.getLogger(__name__)

# Singleton para o cliente Motor
_client = None
_db = None


def reset_db_connection():
    """Reset da conexão (útil para testes)."""
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def use_database(database):
    """
    Substitui a base de dados activa.
    Usado pelos testes para instalar uma base em memória.
    """
    global _db
    _db = database


def get_motor_client():
    """Retorna o cliente Motor (criado on-demand)."""
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(MONGO_URL)
    return _client


def get_database():
    """Retorna a base de dados (criada on-demand)."""
    global _db
    if _db is None:
        _db = get_motor_client()[DB_NAME]
    return _db


class DatabaseProxy:
    """
    Proxy para acesso à DB que cria a conexão on-demand.
    Permite usar `db.leads.find()` em qualquer módulo.
    """
    def __getattr__(self, name):
        return getattr(get_database(), name)


class ClientProxy:
    """
    Proxy para o cliente Motor que permite acesso lazy.
    """
    def close(self):
        reset_db_connection()

    def __getattr__(self, name):
        return getattr(get_motor_client(), name)


db = DatabaseProxy()
client = ClientProxy()


async def ensure_indexes():
    """Cria os índices usados pelo pipeline de leads."""
    await db.leads.create_index("id", unique=True)
    await db.leads.create_index("stage_id")
    await db.leads.create_index("created_by")
    await db.lead_stages.create_index("id", unique=True)
    await db.lead_stages.create_index("ordem")
    await db.correction_requests.create_index("id", unique=True)
    await db.correction_requests.create_index([("status", 1), ("created_at", -1)])
    await db.lead_history.create_index("lead_id")
    await db.users.create_index("id", unique=True)
    logger.info("Índices do pipeline de leads verificados")
