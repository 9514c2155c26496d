"""
Routes Campanhas - distribuição, recaptura, reset e painéis
"""

from fastapi import APIRouter, Depends
from typing import Optional

from config import get_db
from models.auth import ActorScope, Role
from models.distribution import DistributeRequest, RecaptureRequest
from routes.auth import get_actor
from services.directory import list_consultants
from services.distribution import (
    distribute_campaign_leads,
    load_campaign,
    recapture_leads,
    reset_campaign,
)
from services.distribution_summary import get_campaign_audit, get_distribution_summary
from services.errors import ForbiddenError, UnauthorizedError
from services.lead_history import get_campaign_logs
from services.permissions import can_access_offices, ensure_can_distribute, is_unrestricted

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


def _require_manager(actor: ActorScope) -> None:
    if actor.role == Role.CONSULTOR:
        raise UnauthorizedError("Unauthorized")


# ==================== DISTRIBUIÇÃO ====================

@router.post("/{campaign_id}/distribute")
async def distribute(
    campaign_id: str,
    data: DistributeRequest,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """
    Distribui leads do estoque para os consultores selecionados.

    Body:
    - consultantIds: consultores na ordem de prioridade
    - mode: manual (quantityPerConsultant obrigatório) | auto
    - officeId: restringe o estoque a um escritório
    - filters: onlyNew, onlyUnassigned, onlyWithPhone, ignoreInvalidPhones,
      faturamentoMin, faturamentoMax
    """
    return await distribute_campaign_leads(db, actor, campaign_id, data)


@router.post("/{campaign_id}/recapture")
async def recapture(
    campaign_id: str,
    data: RecaptureRequest,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """Repescagem de leads escolhidos um a um"""
    return await recapture_leads(db, actor, campaign_id, data)


@router.post("/{campaign_id}/reset")
async def reset(
    campaign_id: str,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """Devolve todos os leads ao estoque (MASTER)"""
    return await reset_campaign(db, actor, campaign_id)


# ==================== LEITURA ====================

@router.get("/{campaign_id}/distribution")
async def distribution_summary(
    campaign_id: str,
    officeId: Optional[str] = None,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    _require_manager(actor)
    await load_campaign(db, campaign_id)
    return await get_distribution_summary(db, actor, campaign_id, officeId or None)


@router.get("/{campaign_id}/consultants")
async def campaign_consultants(
    campaign_id: str,
    officeId: Optional[str] = None,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """Consultores que o ator pode escolher como destino"""
    ensure_can_distribute(actor)
    campaign = await load_campaign(db, campaign_id)

    if officeId:
        if not can_access_offices(actor.role, actor.office_ids, [officeId]):
            raise ForbiddenError("Você não tem acesso a este escritório.", officeId=officeId)
        office_ids = [officeId]
    elif is_unrestricted(actor):
        office_ids = None
    else:
        office_ids = list(actor.office_ids)

    consultants = await list_consultants(db, office_ids)

    campaign_offices = campaign.get("office_ids") or []
    if campaign_offices:
        consultants = [c for c in consultants if c.get("office_id") in campaign_offices]

    return {
        "consultants": [
            {
                "id": c["id"],
                "name": c.get("name", ""),
                "email": c.get("email", ""),
                "officeId": c.get("office_id"),
            }
            for c in consultants
        ],
        "count": len(consultants),
    }


@router.get("/{campaign_id}/audit")
async def campaign_audit(
    campaign_id: str,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    _require_manager(actor)
    await load_campaign(db, campaign_id)
    return await get_campaign_audit(db, campaign_id)


@router.get("/{campaign_id}/logs")
async def campaign_logs(
    campaign_id: str,
    limit: int = 30,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """Últimas distribuições e movimentações de leads"""
    _require_manager(actor)
    await load_campaign(db, campaign_id)
    return await get_campaign_logs(db, campaign_id, min(max(limit, 1), 200))
