"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  SERVICE DE DISTRIBUIÇÃO E REPESCAGEM                                        ║
║                                                                              ║
║  Orquestra cada operação sobre o estoque de uma campanha:                    ║
║    ator -> permissões -> elegibilidade -> partição -> gravação -> auditoria  ║
║                                                                              ║
║  - distribute_campaign_leads : estoque -> consultores (manual / auto)        ║
║  - transfer_leads            : repescagem consultor X -> consultor Y         ║
║  - recapture_leads           : repescagem de uma lista explícita de leads    ║
║  - reassign_lead             : troca de dono de um único lead                ║
║  - reset_campaign            : devolve toda a campanha ao estoque (MASTER)   ║
║                                                                              ║
║  Distribuição parcial NÃO é erro: 200 com partial=true.                      ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import Dict, List, Optional

from models.auth import ActorScope, Role
from models.campaign import is_campaign_active
from models.distribution import (
    ConsultantResult,
    DistributeRequest,
    DistributionMode,
    ReassignRequest,
    RecaptureRequest,
    RepescagemRequest,
)
from models.lead import LeadAction, LeadStatus, TERMINAL_STATUSES
from services.assignment import commit_assignments
from services.directory import get_consultants, get_offices
from services.eligibility import select_eligible_leads
from services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NoEligibleLeadsError,
    NotFoundError,
    PersistenceError,
)
from services.lead_history import describe_rules, log_lead_action
from services.partitioner import partition_by_quota, partition_evenly
from services.permissions import (
    authorize_consultants,
    can_access_offices,
    ensure_can_distribute,
    is_unrestricted,
)
from services.settings import get_distribution_settings

logger = logging.getLogger("distribution")

PARTIAL_MESSAGE = "Nem todos os leads solicitados estavam disponíveis. Distribuição parcial concluída."
SUCCESS_MESSAGE = "Distribuição concluída com sucesso."


# ==================== CAMPANHA / CONSULTORES ====================

async def load_campaign(db, campaign_id: str) -> dict:
    campaign = await db.campanhas.find_one({"id": campaign_id}, {"_id": 0})
    if not campaign:
        raise NotFoundError("Campanha não encontrada.", campaignId=campaign_id)
    return campaign


async def load_consultants(db, consultant_ids: List[str]) -> Dict[str, dict]:
    """Consultores na ordem do pedido; id desconhecido -> 400"""
    found = await get_consultants(db, consultant_ids)
    missing = [cid for cid in consultant_ids if cid not in found]
    if missing:
        raise InvalidRequestError(
            "Consultor(es) não encontrado(s).",
            issues={"consultantIds": missing},
            status_code=400,
        )
    return {cid: found[cid] for cid in consultant_ids}


def validate_receivers(
    consultants: List[dict],
    campaign: dict,
    office_id: Optional[str] = None,
) -> None:
    """
    Quem recebe leads precisa ser CONSULTOR ativo, do escritório pedido
    e de um escritório participante da campanha.
    """
    not_consultant = [
        c["id"] for c in consultants
        if c.get("role") != Role.CONSULTOR.value or c.get("is_active") is False
    ]
    if not_consultant:
        raise InvalidRequestError(
            "Apenas consultores ativos podem receber leads.",
            issues={"consultantIds": not_consultant},
            status_code=400,
        )

    if office_id:
        outside = [c["id"] for c in consultants if c.get("office_id") != office_id]
        if outside:
            raise InvalidRequestError(
                "Consultor fora do escritório selecionado.",
                issues={"consultantIds": outside},
                status_code=400,
            )

    campaign_offices = campaign.get("office_ids") or []
    if campaign_offices:
        outside = [c["id"] for c in consultants if c.get("office_id") not in campaign_offices]
        if outside:
            raise InvalidRequestError(
                "Consultor de escritório que não participa da campanha.",
                issues={"consultantIds": outside},
                status_code=400,
            )


def _office_scope(actor: ActorScope, consultants: List[dict], office_id: Optional[str]):
    """Escopo implícito: escritórios dos consultores alvo (sem recorte p/ MASTER/SENIOR)"""
    if office_id or is_unrestricted(actor):
        return None
    return [c["office_id"] for c in consultants if c.get("office_id")]


def _raise_if_nothing_committed(outcome: Dict, message: str) -> None:
    if any(outcome["assigned"].values()):
        return
    if outcome["failures"]:
        raise PersistenceError(
            "Falha ao gravar a distribuição.",
            failures=outcome["failures"],
        )
    raise NoEligibleLeadsError(message, lost=len(outcome["lost"]))


# ==================== DISTRIBUIÇÃO ====================

async def distribute_campaign_leads(
    db,
    actor: ActorScope,
    campaign_id: str,
    request: DistributeRequest,
) -> Dict:
    """
    Distribui o estoque de uma campanha entre consultores.

    manual: quantity_per_consultant para cada um, na ordem do pedido
    auto:   todo o estoque elegível dividido igualmente

    Retorna o resumo por consultor (perConsultant) e os contadores globais.
    """
    ensure_can_distribute(actor)

    campaign = await load_campaign(db, campaign_id)
    if not is_campaign_active(campaign):
        raise InvalidRequestError(
            "Campanha inativa não pode ser distribuída.",
            status_code=400,
            campaignId=campaign_id,
        )

    consultants = await load_consultants(db, request.consultant_ids)
    authorize_consultants(actor, list(consultants.values()), request.office_id)
    validate_receivers(list(consultants.values()), campaign, request.office_id)

    consultant_ids = list(consultants)
    filters = request.filters
    manual = request.mode == DistributionMode.MANUAL
    required = request.quantity_per_consultant * len(consultant_ids) if manual else None

    selection = await select_eligible_leads(
        db,
        campaign_id,
        filters,
        required=required,
        office_id=request.office_id,
        office_scope=_office_scope(actor, list(consultants.values()), request.office_id),
    )
    candidates = selection["candidates"]
    lead_ids = [lead["id"] for lead in candidates]

    if manual:
        planned = partition_by_quota(lead_ids, consultant_ids, request.quantity_per_consultant)
    else:
        planned = partition_evenly(lead_ids, consultant_ids)
    used = sum(len(ids) for ids in planned.values())
    spares = lead_ids[used:]

    office_name = None
    if request.office_id:
        offices = await get_offices(db, [request.office_id])
        office_name = offices.get(request.office_id, {}).get("name")

    claim_filter = {}
    if filters.only_new:
        claim_filter["status"] = LeadStatus.NOVO.value

    outcome = await commit_assignments(
        db,
        planned,
        {lead["id"]: lead for lead in candidates},
        consultants,
        actor_id=actor.id,
        action=LeadAction.DISTRIBUICAO_MANUAL if manual else LeadAction.DISTRIBUICAO_AUTOMATICA,
        campaign_id=campaign_id,
        spares=spares,
        claim_filter=claim_filter or None,
        extra_set={"is_worked": False},
        rules_applied=describe_rules(
            request.mode.value, request.quantity_per_consultant, office_name
        ),
    )
    _raise_if_nothing_committed(outcome, "Nenhum lead pôde ser atribuído. Tente novamente.")

    per_consultant = []
    for cid in consultant_ids:
        consultant = consultants[cid]
        assigned = outcome["assigned"].get(cid, [])
        per_consultant.append(ConsultantResult(
            consultant_id=cid,
            name=consultant.get("name", ""),
            email=consultant.get("email", ""),
            office_id=consultant.get("office_id"),
            requested=request.quantity_per_consultant if manual else len(planned[cid]),
            distributed=len(assigned),
            lead_ids=assigned,
        ))

    total_distributed = sum(r.distributed for r in per_consultant)
    requested = required if manual else len(candidates)
    partial = total_distributed < requested
    total = await db.leads.count_documents({"campanha_id": campaign_id})

    logger.info(
        f"[DISTRIBUTION] campanha={campaign_id} por={actor.id} modo={request.mode.value} "
        f"distribuídos={total_distributed}/{requested} perdidos={len(outcome['lost'])} "
        f"falhas={len(outcome['failures'])}"
    )

    return {
        "ok": True,
        "partial": partial,
        "total": total,
        "available": selection["available"],
        "totalEligible": len(candidates),
        "totalDistributed": total_distributed,
        "requested": requested,
        "remaining": max(selection["available"] - total_distributed, 0),
        "perConsultant": [r.to_response() for r in per_consultant],
        "failures": outcome["failures"],
        "message": PARTIAL_MESSAGE if partial else SUCCESS_MESSAGE,
    }


# ==================== REPESCAGEM ====================

async def transfer_leads(db, actor: ActorScope, request: RepescagemRequest) -> Dict:
    """
    Repescagem: move até `quantity` leads de um consultor para outro.
    Sem fromConsultantId a origem é o estoque da campanha.
    Leads FECHADO/PERDIDO nunca são transferidos.
    """
    ensure_can_distribute(actor)

    if not request.campanha_id or not request.to_consultant_id or not request.quantity:
        raise InvalidRequestError("Dados insuficientes.", status_code=400)
    if request.quantity < 1:
        raise InvalidRequestError(
            "Quantidade inválida.", issues={"quantity": request.quantity}, status_code=400
        )
    if request.from_consultant_id == request.to_consultant_id:
        raise InvalidRequestError("Origem e destino são o mesmo consultor.", status_code=400)

    campaign = await load_campaign(db, request.campanha_id)

    ids = [request.to_consultant_id]
    if request.from_consultant_id:
        ids.append(request.from_consultant_id)
    people = await load_consultants(db, ids)
    target = people[request.to_consultant_id]

    # a origem pode estar inativa (consultor desligado), mas precisa estar no escopo
    authorize_consultants(actor, list(people.values()))
    validate_receivers([target], campaign)

    active_only = {"$nin": list(TERMINAL_STATUSES)}
    query = {
        "campanha_id": request.campanha_id,
        "consultor_id": request.from_consultant_id or None,
        "status": active_only,
    }
    if not request.from_consultant_id and not is_unrestricted(actor):
        # estoque: só do escopo do ator ou sem escritório
        query["office_id"] = {"$in": list(actor.office_ids) + [None]}
    settings =await get_distribution_settings(db)
    size = request.quantity + settings["oversample_min_extra"]
    leads = await db.leads.find(query, {"_id": 0, "id": 1, "consultor_id": 1}) \
        .sort([("created_at", 1), ("id", 1)]) \
        .limit(size) \
        .to_list(size)

    if not leads:
        raise NotFoundError("Nenhum lead encontrado para transferir.")

    lead_ids = [lead["id"] for lead in leads]
    outcome = await commit_assignments(
        db,
        {target["id"]: lead_ids[:request.quantity]},
        {lead["id"]: lead for lead in leads},
        {target["id"]: target},
        actor_id=actor.id,
        action=LeadAction.REPESCAGEM,
        campaign_id=request.campanha_id,
        spares=lead_ids[request.quantity:],
        claim_filter={"status": active_only},
        rules_applied=describe_rules(
            "repescagem", from_consultant_id=request.from_consultant_id
        ),
    )
    if not any(outcome["assigned"].values()) and outcome["failures"]:
        raise PersistenceError("Falha ao gravar a repescagem.", failures=outcome["failures"])
    if not any(outcome["assigned"].values()):
        raise NotFoundError("Nenhum lead encontrado para transferir.")

    transferred = outcome["assigned"][target["id"]]
    logger.info(
        f"[REPESCAGEM] campanha={request.campanha_id} de={request.from_consultant_id or 'estoque'} "
        f"para={target['id']} transferidos={len(transferred)}/{request.quantity}"
    )
    return {
        "success": True,
        "transferred": len(transferred),
        "leadIds": transferred,
        "failures": outcome["failures"],
    }


# ==================== RECAPTURA ====================

def _can_take_lead(actor: ActorScope, lead: dict) -> bool:
    """Escopo por lead: escritório do lead, ou estoque sem escritório"""
    if is_unrestricted(actor):
        return True
    if lead.get("office_id") is None:
        return lead.get("consultor_id") is None
    return can_access_offices(actor.role, actor.office_ids, [lead["office_id"]])


async def recapture_leads(
    db,
    actor: ActorScope,
    campaign_id: str,
    request: RecaptureRequest,
) -> Dict:
    """
    Repescagem por seleção: leva os leads escolhidos para um novo consultor.
    Leads fora do escopo do ator são bloqueados individualmente.
    """
    ensure_can_distribute(actor)

    lead_ids = []
    for lid in request.lead_ids:
        lid = (lid or "").strip()
        if lid and lid not in lead_ids:
            lead_ids.append(lid)
    if not lead_ids or not request.new_consultant_id:
        raise InvalidRequestError("Dados insuficientes.", status_code=400)

    campaign = await load_campaign(db, campaign_id)
    people = await load_consultants(db, [request.new_consultant_id])
    target = people[request.new_consultant_id]
    authorize_consultants(actor, [target])
    validate_receivers([target], campaign)

    leads = await db.leads.find(
        {"id": {"$in": lead_ids}, "campanha_id": campaign_id},
        {"_id": 0, "id": 1, "consultor_id": 1, "office_id": 1},
    ).to_list(len(lead_ids))
    by_id = {lead["id"]: lead for lead in leads}

    allowed, blocked = [], []
    for lid in lead_ids:
        lead = by_id.get(lid)
        if lead and _can_take_lead(actor, lead):
            allowed.append(lid)
        else:
            blocked.append(lid)

    if not allowed:
        logger.warning(f"[PERMISSION_DENIED] user={actor.id} recapture campanha={campaign_id}")
        raise ForbiddenError(
            "Nenhum dos leads selecionados pode ser recapturado.",
            blocked=blocked,
        )

    outcome = await commit_assignments(
        db,
        {target["id"]: allowed},
        by_id,
        {target["id"]: target},
        actor_id=actor.id,
        action=LeadAction.RECAPTURE,
        campaign_id=campaign_id,
        notes=request.reason,
        rules_applied=describe_rules("recapture"),
    )
    processed = outcome["assigned"][target["id"]]
    if not processed and outcome["failures"]:
        raise PersistenceError("Falha ao gravar a recaptura.", failures=outcome["failures"])

    logger.info(
        f"[RECAPTURE] campanha={campaign_id} para={target['id']} "
        f"processados={len(processed)} bloqueados={len(blocked)}"
    )
    return {
        "processed": len(processed),
        "blocked": blocked,
        "leadIds": processed,
        "failures": outcome["failures"],
        "message": f"{len(processed)} lead(s) recapturado(s).",
    }


# ==================== REATRIBUIÇÃO ====================

async def reassign_lead(db, actor: ActorScope, request: ReassignRequest) -> Dict:
    """Troca o consultor de um único lead"""
    ensure_can_distribute(actor)
    if not request.lead_id or not request.novo_consultor_id:
        raise InvalidRequestError("Dados insuficientes.", status_code=400)

    lead = await db.leads.find_one(
        {"id": request.lead_id},
        {"_id": 0, "id": 1, "campanha_id": 1, "consultor_id": 1, "office_id": 1},
    )
    if not lead:
        raise NotFoundError("Lead não encontrado.", leadId=request.lead_id)

    if lead.get("consultor_id") == request.novo_consultor_id:
        return {"ok": True, "changed": False}

    people = await load_consultants(db, [request.novo_consultor_id])
    target = people[request.novo_consultor_id]
    authorize_consultants(actor, [target])
    if not _can_take_lead(actor, lead):
        raise ForbiddenError("Você não tem acesso a este lead.", leadId=lead["id"])

    campaign = await load_campaign(db, lead["campanha_id"])
    validate_receivers([target], campaign)

    outcome = await commit_assignments(
        db,
        {target["id"]: [lead["id"]]},
        {lead["id"]: lead},
        {target["id"]: target},
        actor_id=actor.id,
        action=LeadAction.REATRIBUICAO,
        campaign_id=lead["campanha_id"],
        notes=request.observacao,
        rules_applied="Reatribuição individual",
    )
    if outcome["failures"]:
        raise PersistenceError("Falha ao reatribuir o lead.", failures=outcome["failures"])
    if not outcome["assigned"][target["id"]]:
        raise ConflictError("Lead alterado por outra operação. Tente novamente.", leadId=lead["id"])

    logger.info(
        f"[REATRIBUICAO] lead={lead['id']} de={lead.get('consultor_id')} para={target['id']} por={actor.id}"
    )
    return {"ok": True, "changed": True}


# ==================== RESET ====================

async def reset_campaign(db, actor: ActorScope, campaign_id: str) -> Dict:
    """
    Devolve todos os leads da campanha ao estoque (MASTER).
    O dono anterior de cada lead vai para previous_consultants.
    """
    if actor.role != Role.MASTER:
        logger.warning(f"[PERMISSION_DENIED] user={actor.id} role={actor.role.value} action=reset")
        raise ForbiddenError("Apenas MASTER pode resetar uma campanha.")

    await load_campaign(db, campaign_id)

    cleared = {
        "consultor_id": None,
        "office_id": None,
        "status": LeadStatus.NOVO.value,
        "is_worked": False,
        "assigned_at": None,
        "last_status_change_at": None,
        "last_activity_at": None,
    }

    held = await db.leads.find(
        {"campanha_id": campaign_id, "consultor_id": {"$ne": None}},
        {"_id": 0, "id": 1, "consultor_id": 1},
    ).to_list(None)

    for lead in held:
        result = await db.leads.update_one(
            {"id": lead["id"], "consultor_id": lead["consultor_id"]},
            {"$set": cleared, "$push": {"previous_consultants": lead["consultor_id"]}},
        )
        if not result.matched_count:
            logger.info(f"[CLAIM_LOST] reset lead={lead['id']} alterado por outra operação")
            continue
        await log_lead_action(
            db,
            lead_id=lead["id"],
            action=LeadAction.RESET,
            by_user_id=actor.id,
            from_user_id=lead["consultor_id"],
            campanha_id=campaign_id,
        )

    result = await db.leads.update_many(
        {"campanha_id": campaign_id, "consultor_id": None},
        {"$set": cleared},
    )
    reset_count = result.matched_count

    logger.info(f"[RESET] campanha={campaign_id} por={actor.id} leads={reset_count} devolvidos={len(held)}")
    return {"resetCount": reset_count, "message": "Campanha resetada com sucesso."}
