"""
Service de histórico dos leads (trilha de auditoria)

Duas coleções, ambas insert-only:
- lead_history       -> uma entrada por lead movido (de/para/quem/quando)
- distribution_logs  -> uma entrada por consultor por operação
"""

import uuid
from typing import List, Optional

from config import now_iso
from models.lead import LeadAction, LeadHistoryEntry


async def log_lead_action(
    db,
    lead_id: str,
    action: LeadAction,
    by_user_id: Optional[str],
    from_user_id: Optional[str] = None,
    to_user_id: Optional[str] = None,
    campanha_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> dict:
    """
    Registra uma movimentação de lead.

    Actions: DISTRIBUICAO_MANUAL, DISTRIBUICAO_AUTOMATICA, REPESCAGEM,
             RECAPTURE, REATRIBUICAO, RESET
    """
    effective_user = by_user_id or to_user_id or from_user_id
    if not effective_user:
        raise ValueError("Não é possível registrar ação de lead sem usuário")

    entry = LeadHistoryEntry(
        id=str(uuid.uuid4()),
        lead_id=lead_id,
        campanha_id=campanha_id,
        action=action,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        by_user_id=effective_user,
        notes=notes,
        created_at=now_iso(),
    ).model_dump(mode="json")
    await db.lead_history.insert_one(entry)
    entry.pop("_id", None)
    return entry


async def log_distribution(
    db,
    campaign_id: str,
    admin_id: str,
    consultant_id: str,
    lead_ids: List[str],
    rules_applied: str,
) -> dict:
    """Resumo por consultor de uma distribuição/repescagem"""
    entry = {
        "id": str(uuid.uuid4()),
        "campaign_id": campaign_id,
        "admin_id": admin_id,
        "consultant_id": consultant_id,
        "lead_ids": list(lead_ids),
        "rules_applied": rules_applied,
        "created_at": now_iso(),
    }
    await db.distribution_logs.insert_one(entry)
    entry.pop("_id", None)
    return entry


async def get_lead_history(db, lead_id: str) -> List[dict]:
    """Quem teve o lead e quando, do mais antigo ao mais recente"""
    return await db.lead_history.find(
        {"lead_id": lead_id}, {"_id": 0}
    ).sort("created_at", 1).to_list(500)


async def get_campaign_logs(db, campaign_id: str, limit: int = 30) -> dict:
    distributions = await db.distribution_logs.find(
        {"campaign_id": campaign_id}, {"_id": 0}
    ).sort("created_at", -1).limit(limit).to_list(limit)

    history = await db.lead_history.find(
        {"campanha_id": campaign_id}, {"_id": 0}
    ).sort("created_at", -1).limit(limit).to_list(limit)

    return {"distributions": distributions, "activities": history}


def describe_rules(
    mode: str,
    quantity: Optional[int] = None,
    office_name: Optional[str] = None,
    from_consultant_id: Optional[str] = None,
) -> str:
    """Texto legível das regras aplicadas (vai para distribution_logs)"""
    segments = []
    if mode == "auto":
        segments.append("Distribuição igualitária automática")
    elif mode == "repescagem":
        if from_consultant_id:
            segments.append(f"Repescagem de {from_consultant_id}")
        else:
            segments.append("Distribuição do estoque")
    elif mode == "recapture":
        segments.append("Repescagem por seleção de leads")
    else:
        segments.append(f"Distribuição manual ({quantity} por consultor)")
    if office_name:
        segments.append(f"escritório {office_name}")
    return " | ".join(segments)
