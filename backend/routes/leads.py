"""
Routes Leads - histórico e reatribuição individual
"""

from fastapi import APIRouter, Depends

from config import get_db
from models.auth import ActorScope, Role
from models.distribution import ReassignRequest
from routes.auth import get_actor
from services.distribution import reassign_lead
from services.errors import ForbiddenError, NotFoundError
from services.lead_history import get_lead_history

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.patch("/reatribuir")
async def reatribuir(
    data: ReassignRequest,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """Troca o consultor de um lead (observacao vai para o histórico)"""
    return await reassign_lead(db, actor, data)


@router.get("/{lead_id}/history")
async def lead_history(
    lead_id: str,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """
    Quem teve o lead e quando.
    Consultor só vê o histórico dos próprios leads.
    """
    lead = await db.leads.find_one(
        {"id": lead_id},
        {"_id": 0, "id": 1, "consultor_id": 1, "previous_consultants": 1}
    )
    if not lead:
        raise NotFoundError("Lead não encontrado.", leadId=lead_id)

    if actor.role == Role.CONSULTOR and lead.get("consultor_id") != actor.id:
        raise ForbiddenError("Você não tem acesso a este lead.", leadId=lead_id)

    return {
        "leadId": lead_id,
        "consultorId": lead.get("consultor_id"),
        "previousConsultants": lead.get("previous_consultants", []),
        "history": await get_lead_history(db, lead_id),
    }
