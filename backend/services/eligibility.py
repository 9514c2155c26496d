"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  FILTRO DE ELEGIBILIDADE                                                     ║
║                                                                              ║
║  Reduz o pool de uma campanha aos leads distribuíveis:                       ║
║  - status / atribuição / escritório -> direto na query Mongo                 ║
║  - telefone / faturamento           -> em memória (normalização)             ║
║                                                                              ║
║  Ordem: created_at ASC, id ASC (mais antigo primeiro, determinístico)        ║
║  Busca páginas de max(required * 2, required + 10) para que os filtros       ║
║  em memória raramente precisem de uma segunda ida ao banco.                  ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import Dict, Iterable, List, Optional

from config import has_valid_phone, lead_phones, parse_revenue_br
from models.distribution import DistributionFilters
from models.lead import LeadStatus
from services.errors import NoEligibleLeadsError
from services.settings import get_distribution_settings

logger = logging.getLogger("eligibility")

LEAD_PROJECTION = {
    "_id": 0,
    "id": 1,
    "campanha_id": 1,
    "status": 1,
    "consultor_id": 1,
    "office_id": 1,
    "telefone": 1,
    "telefone1": 1,
    "telefone2": 1,
    "telefone3": 1,
    "vl_fat_presumido": 1,
    "created_at": 1,
}

AUTO_PAGE_SIZE = 500


# ==================== QUERY ====================

def build_eligibility_query(
    campaign_id: str,
    filters: DistributionFilters,
    office_id: Optional[str] = None,
    office_scope: Optional[Iterable[str]] = None,
) -> Dict:
    """
    Parte do filtro que o Mongo resolve sozinho.

    office_id explícito -> escritório exato
    office_scope        -> escritórios do escopo + leads ainda sem escritório
    nenhum dos dois     -> sem recorte por escritório
    """
    query = {"campanha_id": campaign_id}

    if filters.only_new:
        query["status"] = LeadStatus.NOVO.value
    if filters.only_unassigned:
        query["consultor_id"] = None

    if office_id:
        query["office_id"] = office_id
    elif office_scope is not None:
        query["office_id"] = {"$in": sorted(set(office_scope)) + [None]}

    return query


def page_size_for(required: int, settings: Dict) -> int:
    return max(
        required * settings["oversample_factor"],
        required + settings["oversample_min_extra"],
    )


# ==================== PREDICADOS EM MEMÓRIA ====================

def has_phone(lead: dict) -> bool:
    return len(lead_phones(lead)) > 0


def lead_has_valid_phone(lead: dict) -> bool:
    return has_valid_phone(lead_phones(lead))


def revenue_in_range(lead: dict, minimum: Optional[float], maximum: Optional[float]) -> bool:
    """Faturamento ilegível é excluído assim que qualquer limite existe"""
    if minimum is None and maximum is None:
        return True
    revenue = parse_revenue_br(lead.get("vl_fat_presumido"))
    if revenue is None:
        return False
    if minimum is not None and revenue < minimum:
        return False
    if maximum is not None and revenue > maximum:
        return False
    return True


def lead_passes_filters(lead: dict, filters: DistributionFilters) -> bool:
    if filters.needs_phone_check and not has_phone(lead):
        return False
    if filters.ignore_invalid_phones and not lead_has_valid_phone(lead):
        return False
    if filters.needs_revenue_check and not revenue_in_range(
        lead, filters.faturamento_min, filters.faturamento_max
    ):
        return False
    return True


# ==================== SELEÇÃO ====================

def _after(last: dict) -> Dict:
    """Keyset: estritamente depois de (created_at, id) da última linha"""
    return {"$or": [
        {"created_at": {"$gt": last.get("created_at")}},
        {"created_at": last.get("created_at"), "id": {"$gt": last["id"]}},
    ]}


async def select_eligible_leads(
    db,
    campaign_id: str,
    filters: DistributionFilters,
    required: Optional[int] = None,
    office_id: Optional[str] = None,
    office_scope: Optional[Iterable[str]] = None,
) -> Dict:
    """
    Lista ordenada de leads candidatos.

    required=None (modo automático) -> todo o estoque elegível, limitado
    por settings.max_auto_batch.

    Retorna: {candidates: [lead], available: int, scanned: int}
      available = leads que casam com a query Mongo
      scanned   = linhas lidas para montar os candidatos
      candidates pode ter mais que required (sobras para o committer)

    Levanta NoEligibleLeadsError se nada sobrar.
    """
    settings = await get_distribution_settings(db)
    query = build_eligibility_query(campaign_id, filters, office_id, office_scope)

    available = await db.leads.count_documents(query)
    if available == 0:
        raise NoEligibleLeadsError(
            "Não há leads disponíveis para esta campanha.",
            available=0,
            filteredAvailable=0,
        )

    if required is None:
        size = AUTO_PAGE_SIZE
        target = settings["max_auto_batch"]
    else:
        size = page_size_for(required, settings)
        target = required

    candidates: List[dict] = []
    scanned = 0
    last = None

    while True:
        page_query = query if last is None else {"$and": [query, _after(last)]}
        rows = await db.leads.find(page_query, LEAD_PROJECTION) \
            .sort([("created_at", 1), ("id", 1)]) \
            .limit(size) \
            .to_list(size)

        scanned += len(rows)
        for row in rows:
            if lead_passes_filters(row, filters):
                candidates.append(row)

        if len(rows) < size:
            break
        if len(candidates) >= target:
            break
        last = rows[-1]
        logger.info(
            f"[ELIGIBILITY] campanha={campaign_id} página extra "
            f"(candidatos={len(candidates)}/{target}, lidos={scanned})"
        )

    if required is None:
        candidates = candidates[:target]

    if not candidates:
        raise NoEligibleLeadsError(
            "Nenhum lead disponível com os filtros aplicados.",
            available=available,
            filteredAvailable=0,
        )

    return {"candidates": candidates, "available": available, "scanned": scanned}
