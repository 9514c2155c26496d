"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Lead - Modelo de lead de campanha                                           ║
║                                                                              ║
║  REGRAS FUNDAMENTAIS:                                                        ║
║  1. Um lead pertence a exatamente UMA campanha                               ║
║  2. Lead em estoque <=> consultor_id nulo                                    ║
║  3. previous_consultants só cresce (append-only)                             ║
║  4. FECHADO e PERDIDO são terminais para repescagem                          ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional, List
from pydantic import BaseModel
from enum import Enum


class LeadStatus(str, Enum):
    """Status do ciclo de vida do lead"""
    NOVO = "NOVO"                      # Importado, ainda não trabalhado
    EM_CONTATO = "EM_CONTATO"
    EM_ATENDIMENTO = "EM_ATENDIMENTO"
    EM_NEGOCIACAO = "EM_NEGOCIACAO"
    FINALIZADO = "FINALIZADO"
    FECHADO = "FECHADO"                # Venda concluída
    PERDIDO = "PERDIDO"


TERMINAL_STATUSES = [LeadStatus.FECHADO.value, LeadStatus.PERDIDO.value]


class LeadAction(str, Enum):
    """Ações registradas no histórico do lead"""
    DISTRIBUICAO_MANUAL = "DISTRIBUICAO_MANUAL"
    DISTRIBUICAO_AUTOMATICA = "DISTRIBUICAO_AUTOMATICA"
    REPESCAGEM = "REPESCAGEM"
    RECAPTURE = "RECAPTURE"
    REATRIBUICAO = "REATRIBUICAO"
    RESET = "RESET"


class LeadDocument(BaseModel):
    """
    Estrutura de um lead na base (coleção leads)
    """
    id: str
    campanha_id: str

    status: LeadStatus = LeadStatus.NOVO

    # Atribuição
    consultor_id: Optional[str] = None
    office_id: Optional[str] = None
    previous_consultants: List[str] = []
    assigned_at: Optional[str] = None
    is_worked: bool = False

    # Empresa
    documento: str = ""
    razao_social: str = ""
    nome_fantasia: str = ""
    vl_fat_presumido: str = ""  # "1.250.000,00"

    # Telefones (telefone = legado)
    telefone: str = ""
    telefone1: str = ""
    telefone2: str = ""
    telefone3: str = ""

    # Meta
    created_at: str = ""
    last_activity_at: Optional[str] = None
    last_status_change_at: Optional[str] = None


class LeadHistoryEntry(BaseModel):
    """Entrada imutável do histórico de posse de um lead"""
    id: str
    lead_id: str
    campanha_id: Optional[str] = None
    action: LeadAction
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    by_user_id: str
    notes: Optional[str] = None
    created_at: str
