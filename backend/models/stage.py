"""
Modelo de dados para as Etapas (colunas) do pipeline de leads
"""
from typing import Optional, List
from pydantic import BaseModel, Field
from enum import Enum


class StageCategory(str, Enum):
    """
    Categoria de regra de uma etapa.
    As regras de transição leem apenas a categoria, nunca o nome da coluna.
    """
    COTACAO = "cotacao"                  # Envio de cotação
    CONTATO = "contato"                  # Negociação
    FECHAMENTO = "fechamento"            # Fechamento / Pós-venda
    VENDA_REALIZADA = "venda_realizada"  # Etapa terminal
    NENHUMA = "nenhuma"


class StageCreate(BaseModel):
    nome: str = Field(..., min_length=1, max_length=80)
    cor: str = "#6B7280"
    ordem: Optional[int] = None
    # Se omitida, é inferida do nome no momento da criação
    categoria: Optional[StageCategory] = None


class StageUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=1, max_length=80)
    cor: Optional[str] = None
    categoria: Optional[StageCategory] = None


class StageOrderItem(BaseModel):
    id: str
    ordem: int


class StageOrder(BaseModel):
    stages: List[StageOrderItem]


class Stage(BaseModel):
    id: str
    nome: str
    cor: str
    ordem: int
    categoria: StageCategory = StageCategory.NENHUMA
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
