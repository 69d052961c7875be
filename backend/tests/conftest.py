"""
Configuração central dos testes do pipeline de leads.

A app fala com uma base de dados em memória (FakeDatabase) instalada
via database.use_database(), por isso não é preciso MongoDB a correr.
"""
import os
import sys
import copy
import uuid
import itertools
from datetime import datetime, timezone, timedelta
from pathlib import Path
from types import SimpleNamespace

import jwt
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Definir modo de teste ANTES de importar a app
os.environ["TESTING"] = "true"
os.environ.setdefault("JWT_SECRET", "segredo-de-testes-do-pipeline")
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "crm_leads_test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
os.environ.setdefault("SEED_DEFAULT_STAGES", "false")

# Adicionar backend ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

import database
from server import app
from middleware.rate_limit import limiter
from config import JWT_SECRET, JWT_ALGORITHM
from services.lead_repository import now_iso
from services.stage_registry import seed_default_stages

API_URL = "http://testserver/api"


def create_token(user_id: str, email: str, role: str, hours: int = 1) -> str:
    """Token no formato emitido pelo serviço de autenticação externo."""
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


# ====================================================================
# BASE DE DADOS EM MEMÓRIA
# ====================================================================
def _matches(doc: dict, query: dict) -> bool:
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        value = doc.get(key)
        if isinstance(cond, dict) and "$in" in cond:
            if value not in cond["$in"]:
                return False
        elif value != cond:
            return False
    return True


def _project(doc: dict, projection) -> dict:
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    if projection.get("_id") == 0:
        doc.pop("_id", None)
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        return {k: doc[k] for k in included if k in doc}
    for key, flag in projection.items():
        if not flag:
            doc.pop(key, None)
    return doc


def _apply_update(doc: dict, update: dict) -> None:
    for key, value in update.get("$set", {}).items():
        doc[key] = copy.deepcopy(value)
    for key, value in update.get("$inc", {}).items():
        doc[key] = doc.get(key, 0) + value
    for key in update.get("$unset", {}):
        doc.pop(key, None)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs.sort(
            key=lambda d: (d.get(key) is not None, d.get(key) if d.get(key) is not None else 0),
            reverse=direction < 0
        )
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    _ids = itertools.count(1)

    def __init__(self, name):
        self.name = name
        self.docs = []

    async def create_index(self, *args, **kwargs):
        return "ok"

    async def insert_one(self, doc):
        doc["_id"] = f"oid-{next(self._ids)}"
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query or {})])

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                _apply_update(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query, update):
        matched = [d for d in self.docs if _matches(d, query)]
        for doc in matched:
            _apply_update(doc, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getattr__(self, name):
        if name.startswith("__"):
            raise AttributeError(name)
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    async def command(self, name):
        return {"ok": 1}


# ====================================================================
# FIXTURES
# ====================================================================
@pytest.fixture(autouse=True)
def fake_db():
    """Base em memória nova para cada teste."""
    fake = FakeDatabase()
    database.use_database(fake)
    yield fake
    database.use_database(None)


@pytest_asyncio.fixture(scope="function")
async def client():
    """
    Cria um cliente HTTP assíncrono que fala DIRETAMENTE com a app.
    """
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=API_URL,
        timeout=30.0
    ) as ac:
        yield ac


def _user(name: str, role: str, **extra) -> dict:
    return {
        "id": f"{name}-{uuid.uuid4().hex[:8]}",
        "email": f"{name}@corretora.com.br",
        "name": name.capitalize(),
        "role": role,
        "is_active": True,
        **extra,
    }


@pytest_asyncio.fixture
async def users(fake_db):
    """
    Equipa de testes:
    - admin: administrador
    - supervisor: chefia a consultora `ana`
    - ana / bruno: consultores (bruno sem equipa)
    - carla: outra consultora, sem equipa
    """
    admin = _user("admin", "administrador")
    supervisor = _user("supervisor", "supervisor")
    ana = _user("ana", "consultor", supervisor_id=supervisor["id"])
    bruno = _user("bruno", "consultor")
    carla = _user("carla", "consultor")

    team = {"admin": admin, "supervisor": supervisor, "ana": ana, "bruno": bruno, "carla": carla}
    for user in team.values():
        await fake_db.users.insert_one(dict(user))
    return team


@pytest.fixture
def auth_headers(users):
    """auth_headers("ana") -> cabeçalho Authorization com o token da utilizadora."""
    def _headers(name: str, hours: int = 1) -> dict:
        user = users[name]
        token = create_token(user["id"], user["email"], user["role"], hours=hours)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest_asyncio.fixture
async def stages(fake_db):
    """Etapas padrão, indexadas pelo nome."""
    await seed_default_stages()
    docs = await fake_db.lead_stages.find({}, {"_id": 0}).sort("ordem", 1).to_list(100)
    return {s["nome"]: s for s in docs}


@pytest.fixture
def make_lead(fake_db):
    """Insere um lead directamente na colecção, com os defaults do modelo."""
    async def _make(**fields) -> dict:
        now = now_iso()
        lead = {
            "id": str(uuid.uuid4()),
            "tipo": "PF",
            "nome": "Maria Souza",
            "contato": "+5511987654321",
            "email": None,
            "endereco": None,
            "idade": 34,
            "cpf": None,
            "cnpj": None,
            "created_by": None,
            "livre": False,
            "stage_id": None,
            "doc_foto_path": None,
            "cartao_cnpj_path": None,
            "comprovante_endereco_path": None,
            "cotacao_path": None,
            "dados_extras": {},
            "origem": "interno",
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        lead.update(fields)
        await fake_db.leads.insert_one(lead)
        lead.pop("_id", None)
        return lead
    return _make
