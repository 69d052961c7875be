"""
Modelo de dados para Leads do CRM (pipeline de vendas)
"""
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, EmailStr, Field
from enum import Enum


class DocumentSlot(str, Enum):
    """Campos de documento anexáveis a um lead"""
    DOC_FOTO = "doc_foto"
    CARTAO_CNPJ = "cartao_cnpj"
    COMPROVANTE_ENDERECO = "comprovante_endereco"
    COTACAO = "cotacao"

    @property
    def field(self) -> str:
        """Nome do campo no documento do lead."""
        return f"{self.value}_path"


class LeadOrigin(str, Enum):
    INTERNO = "interno"
    PUBLICO = "publico"


class LeadCreate(BaseModel):
    """Dados para criar um novo lead"""
    tipo: str = "PF"
    nome: str = Field(..., min_length=1, max_length=200)
    contato: Optional[str] = None
    email: Optional[str] = None
    endereco: Optional[str] = None
    idade: Optional[int] = Field(None, ge=0, le=130)
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    stage_id: Optional[str] = None
    livre: bool = False
    dados_extras: Dict[str, Any] = {}


class LeadUpdate(BaseModel):
    """
    Dados para actualizar um lead.
    Etapa e dono têm operações próprias (mover / assumir).
    """
    tipo: Optional[str] = None
    nome: Optional[str] = Field(None, min_length=1, max_length=200)
    contato: Optional[str] = None
    email: Optional[str] = None
    endereco: Optional[str] = None
    idade: Optional[int] = Field(None, ge=0, le=130)
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    livre: Optional[bool] = None
    dados_extras: Optional[Dict[str, Any]] = None
    version: Optional[int] = None  # Última versão lida pelo cliente


class PublicLeadCreate(BaseModel):
    """Captação pública (landing page) - sem autenticação"""
    tipo: str = "PF"
    nome: str = Field(..., min_length=1, max_length=200)
    contato: Optional[str] = None
    email: Optional[EmailStr] = None
    idade: Optional[int] = Field(None, ge=0, le=130)
    mensagem: Optional[str] = Field(None, max_length=1000)


class Lead(BaseModel):
    """Lead completo"""
    id: str
    tipo: str
    nome: str
    contato: Optional[str] = None
    email: Optional[str] = None
    endereco: Optional[str] = None
    idade: Optional[int] = None
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    created_by: Optional[str] = None
    livre: bool = False
    stage_id: Optional[str] = None
    doc_foto_path: Optional[str] = None
    cartao_cnpj_path: Optional[str] = None
    comprovante_endereco_path: Optional[str] = None
    cotacao_path: Optional[str] = None
    dados_extras: Dict[str, Any] = {}
    origem: LeadOrigin = LeadOrigin.INTERNO
    version: int = 1
    created_at: str
    updated_at: str


class LeadMoveRequest(BaseModel):
    """Pedido de movimentação (drag & drop no kanban)"""
    stage_id: Optional[str] = None
    version: Optional[int] = None


class SalesHandoff(BaseModel):
    """Dados para pré-preencher o registo de venda"""
    lead_id: str
    tipo: str
    nome: str
    idade: Optional[int] = None
    contato: Optional[str] = None
    email: Optional[str] = None
    valor: Optional[float] = None


class LeadMoveResponse(BaseModel):
    success: bool = True
    message: str
    lead_id: str
    old_stage_id: Optional[str] = None
    new_stage_id: Optional[str] = None
    old_column_name: Optional[str] = None
    new_column_name: Optional[str] = None
    version: int
    celebrar: bool = False
    handoff: Optional[SalesHandoff] = None
    invalidate: List[str] = ["leads"]
