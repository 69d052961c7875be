"""
====================================================================
REGRAS DE TRANSIÇÃO DO PIPELINE DE LEADS
====================================================================
Decide se um lead pode entrar numa etapa do kanban.

As regras dependem apenas da categoria guardada na etapa. O nome
da coluna só é usado para inferir a categoria quando a etapa é
criada sem uma categoria explícita.
====================================================================
"""
import unicodedata
from typing import Optional, List, Dict

from config import INDIVIDUAL_TIPOS
from models.stage import StageCategory


# Etapas que exigem o documento de cotação anexado
QUOTATION_GATED = frozenset({StageCategory.COTACAO})

# Etapas de contacto activo com o cliente
CONTACT_REQUIRED = frozenset({
    StageCategory.COTACAO,
    StageCategory.CONTATO,
    StageCategory.FECHAMENTO,
})

# Etapas de contratação: exigem documento de identificação
DOCUMENT_GATED = frozenset({StageCategory.FECHAMENTO})


def _normalize(text: str) -> str:
    text = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in text if not unicodedata.combining(c)).lower().strip()


def infer_stage_category(nome: str) -> StageCategory:
    """
    Infere a categoria de regra a partir do nome da coluna.

    Usado apenas na criação/renomeação de etapas sem categoria explícita;
    o resultado fica gravado na etapa.
    """
    name = _normalize(nome)
    if "cotacao" in name:
        return StageCategory.COTACAO
    if "negocia" in name:
        return StageCategory.CONTATO
    if "fechamento" in name or "pos-venda" in name or "pos venda" in name:
        return StageCategory.FECHAMENTO
    if "venda realizada" in name:
        return StageCategory.VENDA_REALIZADA
    return StageCategory.NENHUMA


def is_pessoa_fisica(tipo: Optional[str]) -> bool:
    return tipo in INDIVIDUAL_TIPOS


def stage_category(stage: Optional[dict]) -> StageCategory:
    if not stage:
        return StageCategory.NENHUMA
    if not stage.get("categoria"):
        # Etapa antiga, gravada antes de existir a categoria
        return infer_stage_category(stage.get("nome", ""))
    try:
        return StageCategory(stage["categoria"])
    except ValueError:
        return StageCategory.NENHUMA


def find_stage(stage_id: Optional[str], stages: List[Dict]) -> Optional[dict]:
    if not stage_id:
        return None
    return next((s for s in stages if s.get("id") == stage_id), None)


def _has(lead: dict, field: str) -> bool:
    value = lead.get(field)
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def can_transition(
    lead: dict,
    target_stage_id: Optional[str],
    stages: List[Dict]
) -> Optional[str]:
    """
    Verifica se o lead pode ser movido para a etapa indicada.

    Args:
        lead: Documento do lead (campos de contacto e documentos)
        target_stage_id: Etapa de destino; None retira o lead do pipeline
        stages: Registo de etapas

    Returns:
        None se a movimentação é permitida, caso contrário a mensagem
        da primeira regra violada.
    """
    if target_stage_id is None:
        return None

    stage = find_stage(target_stage_id, stages)
    if stage is None:
        return "Etapa de destino inexistente."

    category = stage_category(stage)
    nome = stage.get("nome", "")

    if category in QUOTATION_GATED and not _has(lead, "cotacao_path"):
        return f"Anexe o documento de cotação antes de mover o lead para '{nome}'."

    if category in CONTACT_REQUIRED and not (_has(lead, "contato") or _has(lead, "email")):
        return f"Informe o telefone ou o e-mail do lead antes de mover para '{nome}'."

    if category in DOCUMENT_GATED:
        if is_pessoa_fisica(lead.get("tipo")):
            if not _has(lead, "doc_foto_path"):
                return f"Anexe o documento com foto antes de mover o lead para '{nome}'."
        elif not _has(lead, "cartao_cnpj_path"):
            return f"Anexe o cartão CNPJ antes de mover o lead para '{nome}'."

    return None


def check_current_stage(lead: dict, stages: List[Dict]) -> Optional[str]:
    """
    Revalida o lead contra a etapa em que já se encontra.
    Impede que uma edição deixe o lead numa etapa cujas regras já não cumpre.
    """
    stage_id = lead.get("stage_id")
    if find_stage(stage_id, stages) is None:
        return None
    return can_transition(lead, stage_id, stages)
