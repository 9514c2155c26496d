"""
Routes Repescagem - transferência de leads entre consultores
"""

from fastapi import APIRouter, Depends

from config import get_db
from models.auth import ActorScope
from models.distribution import RepescagemRequest
from routes.auth import get_actor
from services.distribution import transfer_leads

router = APIRouter(prefix="/campanhas", tags=["Repescagem"])


@router.post("/repescagem")
async def repescagem(
    data: RepescagemRequest,
    actor: ActorScope = Depends(get_actor),
    db=Depends(get_db),
):
    """
    Move até `quantity` leads ativos de fromConsultantId (ou do estoque)
    para toConsultantId. Leads FECHADO/PERDIDO ficam onde estão.
    """
    return await transfer_leads(db, actor, data)
