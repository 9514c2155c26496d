"""
Visão de leitura da distribuição de uma campanha

- get_distribution_summary : estoque x atribuídos + desempenho por consultor
- get_campaign_audit       : contadores de qualidade dos dados importados
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from config import has_valid_phone, lead_phones
from models.auth import ActorScope
from models.lead import LeadStatus
from services.directory import get_offices
from services.errors import ForbiddenError
from services.permissions import can_access_offices, is_unrestricted

MAX_CAMPAIGN_LEADS = 200000

SUMMARY_PROJECTION = {
    "_id": 0,
    "consultor_id": 1,
    "office_id": 1,
    "status": 1,
    "is_worked": 1,
    "created_at": 1,
    "assigned_at": 1,
    "last_activity_at": 1,
    "last_status_change_at": 1,
}


def _parse_iso(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _reference_time(lead: dict) -> Optional[datetime]:
    """Última atividade conhecida do lead"""
    for field in ("last_activity_at", "last_status_change_at", "assigned_at", "created_at"):
        dt = _parse_iso(lead.get(field))
        if dt:
            return dt
    return None


def _summary_query(campaign_id: str, actor: ActorScope, office_id: Optional[str]) -> Dict:
    query = {"campanha_id": campaign_id}
    if office_id:
        if not can_access_offices(actor.role, actor.office_ids, [office_id]):
            raise ForbiddenError("Você não tem acesso a este escritório.", officeId=office_id)
        query["office_id"] = office_id
    elif not is_unrestricted(actor):
        query["office_id"] = {"$in": list(actor.office_ids) + [None]}
    return query


def _consultant_stats(leads: List[dict]) -> Dict[str, Dict]:
    stats: Dict[str, Dict] = {}
    for lead in leads:
        cid = lead.get("consultor_id")
        if not cid:
            continue
        entry = stats.setdefault(cid, {
            "total": 0, "worked": 0, "closed": 0, "lost": 0,
            "time_ms": 0, "time_count": 0, "last": None,
        })
        status = lead.get("status")
        entry["total"] += 1
        if status != LeadStatus.NOVO.value:
            entry["worked"] += 1
        if status == LeadStatus.FECHADO.value:
            entry["closed"] += 1
        elif status == LeadStatus.PERDIDO.value:
            entry["lost"] += 1

        reference = _reference_time(lead)
        if not reference:
            continue
        if entry["last"] is None or reference > entry["last"]:
            entry["last"] = reference
        created = _parse_iso(lead.get("created_at"))
        if created:
            diff_ms = int((reference - created).total_seconds() * 1000)
            if diff_ms > 0:
                entry["time_ms"] += diff_ms
                entry["time_count"] += 1
    return stats


async def get_distribution_summary(
    db,
    actor: ActorScope,
    campaign_id: str,
    office_id: Optional[str] = None,
) -> Dict:
    """
    Retorna:
      resumo:       {total, estoque, atribuidos, fechados, perdidos}
      distribution: uma linha por consultor com leads na campanha
    """
    query = _summary_query(campaign_id, actor, office_id)
    leads = await db.leads.find(query, SUMMARY_PROJECTION).to_list(MAX_CAMPAIGN_LEADS)

    statuses = Counter(lead.get("status") for lead in leads)
    estoque = sum(1 for lead in leads if not lead.get("consultor_id"))
    resumo = {
        "total": len(leads),
        "estoque": estoque,
        "atribuidos": len(leads) - estoque,
        "fechados": statuses.get(LeadStatus.FECHADO.value, 0),
        "perdidos": statuses.get(LeadStatus.PERDIDO.value, 0),
    }

    stats = _consultant_stats(leads)
    users = await db.users.find(
        {"id": {"$in": list(stats)}},
        {"_id": 0, "id": 1, "name": 1, "email": 1, "office_id": 1},
    ).to_list(len(stats) or 1)
    users_by_id = {u["id"]: u for u in users}
    offices = await get_offices(db, sorted({u["office_id"] for u in users if u.get("office_id")}))

    distribution = []
    for cid, entry in stats.items():
        user = users_by_id.get(cid, {})
        office = offices.get(user.get("office_id"), {})
        distribution.append({
            "officeName": office.get("name", ""),
            "consultantId": cid,
            "consultantName": user.get("name") or user.get("email") or cid,
            "totalAtribuidos": entry["total"],
            "trabalhados": entry["worked"],
            "restantes": entry["total"] - entry["worked"],
            "fechados": entry["closed"],
            "perdidos": entry["lost"],
            "percentConcluido": round(entry["worked"] / entry["total"] * 100) if entry["total"] else 0,
            "tempoMedioTratativaMs": round(entry["time_ms"] / entry["time_count"]) if entry["time_count"] else 0,
            "ultimaAtividadeAt": entry["last"].isoformat() if entry["last"] else None,
        })

    distribution.sort(key=lambda row: (row["officeName"], row["consultantName"]))
    return {"resumo": resumo, "distribution": distribution}


async def get_campaign_audit(db, campaign_id: str) -> Dict:
    """
    Qualidade dos dados da campanha:
      invalidPhones - sem telefone ou com todos inválidos
      duplicated    - documentos que aparecem em mais de um lead
      invalids      - leads PERDIDO ou EM_CONTATO
    """
    leads = await db.leads.find(
        {"campanha_id": campaign_id},
        {"_id": 0, "documento": 1, "status": 1,
         "telefone": 1, "telefone1": 1, "telefone2": 1, "telefone3": 1},
    ).to_list(MAX_CAMPAIGN_LEADS)

    invalid_phones = 0
    for lead in leads:
        phones = lead_phones(lead)
        if not phones or not has_valid_phone(phones):
            invalid_phones += 1

    documents = Counter(lead["documento"] for lead in leads if lead.get("documento"))
    duplicated = sum(1 for count in documents.values() if count > 1)

    invalids = sum(
        1 for lead in leads
        if lead.get("status") in (LeadStatus.PERDIDO.value, LeadStatus.EM_CONTATO.value)
    )

    return {
        "total": len(leads),
        "invalidPhones": invalid_phones,
        "duplicated": duplicated,
        "invalids": invalids,
    }
