"""
Regras de transição entre etapas do kanban (funções puras).
"""
import pytest

from models.stage import StageCategory
from services.transition_rules import (
    can_transition, check_current_stage, infer_stage_category, is_pessoa_fisica
)


def _stage(stage_id, nome, categoria=None):
    categoria = categoria or infer_stage_category(nome)
    return {"id": stage_id, "nome": nome, "cor": "#000000", "ordem": 0, "categoria": categoria.value}


STAGES = [
    _stage("novo", "Novo Lead"),
    _stage("cot", "Envio de Cotação"),
    _stage("neg", "Negociação"),
    _stage("fech", "Fechamento"),
    _stage("pos", "Pós-venda"),
    _stage("venda", "Venda Realizada"),
]


def _lead(**fields):
    lead = {
        "id": "lead-1",
        "tipo": "PF",
        "nome": "João",
        "contato": None,
        "email": None,
        "doc_foto_path": None,
        "cartao_cnpj_path": None,
        "cotacao_path": None,
        "stage_id": None,
    }
    lead.update(fields)
    return lead


class TestInferStageCategory:

    @pytest.mark.parametrize("nome,expected", [
        ("Envio de Cotação", StageCategory.COTACAO),
        ("cotacao", StageCategory.COTACAO),
        ("Negociação", StageCategory.CONTATO),
        ("Fechamento", StageCategory.FECHAMENTO),
        ("Pós-venda", StageCategory.FECHAMENTO),
        ("Pos venda", StageCategory.FECHAMENTO),
        ("Venda Realizada", StageCategory.VENDA_REALIZADA),
        ("Novo Lead", StageCategory.NENHUMA),
        ("", StageCategory.NENHUMA),
    ])
    def test_category_from_name(self, nome, expected):
        assert infer_stage_category(nome) == expected


class TestCanTransition:

    def test_removing_from_pipeline_always_allowed(self):
        assert can_transition(_lead(), None, STAGES) is None

    def test_unknown_stage_rejected(self):
        assert can_transition(_lead(), "nao-existe", STAGES) == "Etapa de destino inexistente."

    def test_stage_without_rules_accepts_empty_lead(self):
        assert can_transition(_lead(), "novo", STAGES) is None

    def test_quotation_stage_requires_quotation_document(self):
        reason = can_transition(_lead(contato="11999998888"), "cot", STAGES)
        assert reason is not None
        assert "cotação" in reason

    def test_quotation_checked_before_contact(self):
        reason = can_transition(_lead(), "cot", STAGES)
        assert "documento de cotação" in reason

    def test_quotation_stage_with_document_and_contact(self):
        lead = _lead(contato="11999998888", cotacao_path="leads/lead-1/cotacao.pdf")
        assert can_transition(lead, "cot", STAGES) is None

    @pytest.mark.parametrize("stage_id", ["neg", "fech", "pos"])
    def test_contact_required_without_phone_or_email(self, stage_id):
        lead = _lead(doc_foto_path="x.jpg", cotacao_path="c.pdf")
        reason = can_transition(lead, stage_id, STAGES)
        assert "telefone ou o e-mail" in reason

    def test_blank_contact_counts_as_missing(self):
        reason = can_transition(_lead(contato="   "), "neg", STAGES)
        assert "telefone ou o e-mail" in reason

    def test_email_alone_satisfies_contact(self):
        assert can_transition(_lead(email="joao@email.com"), "neg", STAGES) is None

    @pytest.mark.parametrize("stage_id", ["fech", "pos"])
    def test_individual_needs_photo_id(self, stage_id):
        reason = can_transition(_lead(contato="11999998888"), stage_id, STAGES)
        assert "documento com foto" in reason

        ok = _lead(contato="11999998888", doc_foto_path="leads/lead-1/rg.jpg")
        assert can_transition(ok, stage_id, STAGES) is None

    @pytest.mark.parametrize("stage_id", ["fech", "pos"])
    def test_company_needs_cnpj_card(self, stage_id):
        lead = _lead(tipo="PME", contato="11999998888", doc_foto_path="leads/lead-1/rg.jpg")
        reason = can_transition(lead, stage_id, STAGES)
        assert "cartão CNPJ" in reason

        lead["cartao_cnpj_path"] = "leads/lead-1/cnpj.pdf"
        assert can_transition(lead, stage_id, STAGES) is None

    def test_terminal_stage_has_no_document_rules(self):
        assert can_transition(_lead(), "venda", STAGES) is None

    def test_renamed_stage_keeps_its_rules(self):
        stages = [_stage("x", "Proposta enviada", StageCategory.COTACAO)]
        reason = can_transition(_lead(contato="11999998888"), "x", stages)
        assert "Proposta enviada" in reason

    def test_name_alone_does_not_trigger_rules(self):
        stages = [_stage("x", "Cotação antiga", StageCategory.NENHUMA)]
        assert can_transition(_lead(), "x", stages) is None

    @pytest.mark.parametrize("categoria", [None, ""])
    def test_legacy_stage_without_category_uses_name(self, categoria):
        legacy = {"id": "x", "nome": "Envio de Cotação", "ordem": 0}
        if categoria is not None:
            legacy["categoria"] = categoria

        reason = can_transition(_lead(contato="11999998888"), "x", [legacy])

        assert "documento de cotação" in reason

    def test_unknown_category_has_no_rules(self):
        stages = [{"id": "x", "nome": "Envio de Cotação", "categoria": "outra"}]
        assert can_transition(_lead(), "x", stages) is None


class TestCheckCurrentStage:

    def test_lead_outside_pipeline(self):
        assert check_current_stage(_lead(), STAGES) is None

    def test_lead_losing_required_document(self):
        lead = _lead(stage_id="cot", contato="11999998888", cotacao_path=None)
        assert "cotação" in check_current_stage(lead, STAGES)


def test_individual_modalities():
    assert is_pessoa_fisica("PF")
    assert is_pessoa_fisica("Familiar")
    assert not is_pessoa_fisica("PME")
    assert not is_pessoa_fisica(None)
