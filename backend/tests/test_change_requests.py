"""
Solicitações de alteração enviadas ao supervisor.
"""
import pytest

from models.change_request import ChangeRequestKind, ChangeRequestStatus
from services.change_requests import list_change_requests, request_change, resolve_change_request
from services.errors import NotFoundError, PermissionDeniedError, ValidationError

pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize("motivo", ["", "   ", "<b></b>"])
async def test_empty_justification_rejected(users, make_lead, fake_db, motivo):
    lead = await make_lead(created_by=users["ana"]["id"])

    with pytest.raises(ValidationError) as exc:
        await request_change(lead["id"], ChangeRequestKind.EDIT, motivo, users["supervisor"])

    assert exc.value.message == "Informe a justificativa."
    assert await fake_db.correction_requests.count_documents({}) == 0


async def test_non_owner_creates_one_pending_request(users, make_lead, fake_db):
    lead = await make_lead(created_by=users["ana"]["id"], nome="Empresa XPTO")
    before = await fake_db.leads.find_one({"id": lead["id"]}, {"_id": 0})

    created = await request_change(
        lead["id"], ChangeRequestKind.DELETE, "Lead duplicado", users["supervisor"]
    )

    assert created["tipo"] == "lead_delete"
    assert created["registro_id"] == lead["id"]
    assert created["user_id"] == users["supervisor"]["id"]
    assert created["status"] == "pendente"
    assert created["motivo"] == "Lead duplicado"
    assert await fake_db.correction_requests.count_documents({}) == 1
    assert await fake_db.leads.find_one({"id": lead["id"]}, {"_id": 0}) == before


async def test_request_for_invisible_lead(users, make_lead):
    lead = await make_lead(created_by=users["bruno"]["id"])

    with pytest.raises(NotFoundError):
        await request_change(lead["id"], ChangeRequestKind.EDIT, "Telefone errado", users["carla"])


async def test_list_scoped_to_requester(users, make_lead):
    lead = await make_lead(created_by=None, livre=True)
    await request_change(lead["id"], ChangeRequestKind.EDIT, "Nome incorreto", users["bruno"])
    await request_change(lead["id"], ChangeRequestKind.DELETE, "Teste", users["carla"])

    mine = await list_change_requests(users["bruno"])
    everything = await list_change_requests(users["admin"])
    pending = await list_change_requests(users["admin"], ChangeRequestStatus.PENDENTE)

    assert [r["user_id"] for r in mine] == [users["bruno"]["id"]]
    assert len(everything) == 2
    assert len(pending) == 2


async def test_admin_applies_delete_request(users, make_lead, fake_db):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.DELETE, "Cliente desistiu", users["supervisor"])

    resolved = await resolve_change_request(
        req["id"], ChangeRequestStatus.RESOLVIDO, users["admin"], aplicar=True
    )

    assert resolved["status"] == "resolvido"
    assert resolved["admin_resposta"] == "Registro excluído pelo administrador."
    assert await fake_db.leads.find_one({"id": lead["id"]}) is None


async def test_reject_keeps_lead(users, make_lead, fake_db):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.DELETE, "Duplicado", users["supervisor"])

    rejected = await resolve_change_request(
        req["id"], ChangeRequestStatus.REJEITADO, users["admin"], admin_resposta="Não é duplicado"
    )

    assert rejected["status"] == "rejeitado"
    assert await fake_db.leads.find_one({"id": lead["id"]}) is not None

    with pytest.raises(ValidationError):
        await resolve_change_request(req["id"], ChangeRequestStatus.RESOLVIDO, users["admin"])


async def test_only_admin_resolves(users, make_lead):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.EDIT, "Corrigir e-mail", users["supervisor"])

    with pytest.raises(PermissionDeniedError):
        await resolve_change_request(req["id"], ChangeRequestStatus.RESOLVIDO, users["supervisor"])


async def test_edit_request_cannot_be_applied_automatically(users, make_lead):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.EDIT, "Corrigir e-mail", users["supervisor"])

    with pytest.raises(ValidationError):
        await resolve_change_request(
            req["id"], ChangeRequestStatus.RESOLVIDO, users["admin"], aplicar=True
        )


async def test_pending_is_not_a_resolution(users, make_lead):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.EDIT, "Corrigir", users["supervisor"])

    with pytest.raises(ValidationError):
        await resolve_change_request(req["id"], ChangeRequestStatus.PENDENTE, users["admin"])


async def test_concurrent_resolution_does_not_delete(users, make_lead, fake_db, monkeypatch):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.DELETE, "Duplicado", users["supervisor"])
    pending = dict(req)

    # Outro administrador rejeitou entre a leitura e a gravação
    await fake_db.correction_requests.update_one({"id": req["id"]}, {"$set": {"status": "rejeitado"}})

    async def _stale_find_one(query, projection=None):
        return dict(pending)

    monkeypatch.setattr(fake_db.correction_requests, "find_one", _stale_find_one)

    with pytest.raises(ValidationError) as exc:
        await resolve_change_request(
            req["id"], ChangeRequestStatus.RESOLVIDO, users["admin"], aplicar=True
        )

    assert exc.value.message == "Esta solicitação já foi tratada."
    assert await fake_db.leads.find_one({"id": lead["id"]}) is not None
    assert await fake_db.lead_history.count_documents({"lead_id": lead["id"]}) == 0


async def test_apply_when_lead_already_gone(users, make_lead, fake_db):
    lead = await make_lead(created_by=users["ana"]["id"])
    req = await request_change(lead["id"], ChangeRequestKind.DELETE, "Duplicado", users["supervisor"])
    await fake_db.leads.delete_one({"id": lead["id"]})

    resolved = await resolve_change_request(
        req["id"], ChangeRequestStatus.RESOLVIDO, users["admin"], aplicar=True
    )

    assert resolved["status"] == "resolvido"
    stored = await fake_db.correction_requests.find_one({"id": req["id"]})
    assert stored["status"] == "resolvido"
