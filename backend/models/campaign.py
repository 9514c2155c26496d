"""
Campanha - lote de leads importados juntos
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel


class CampaignStatus(str, Enum):
    ATIVA = "ATIVA"
    PAUSADA = "PAUSADA"
    ENCERRADA = "ENCERRADA"


class CampaignDocument(BaseModel):
    id: str
    nome: str
    status: Optional[CampaignStatus] = CampaignStatus.ATIVA
    # Escritórios participantes (vazio = todos)
    office_ids: List[str] = []
    created_at: str = ""


def is_campaign_active(campaign: dict) -> bool:
    """Campanha sem status = legado, tratada como ativa"""
    status = campaign.get("status")
    return not status or status == CampaignStatus.ATIVA.value
