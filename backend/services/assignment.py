"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  ASSIGNMENT COMMITTER                                                        ║
║                                                                              ║
║  Aplica a partição lead a lead, cada um com um update CONDICIONAL:           ║
║    "atribui SE consultor_id ainda é o valor lido pelo filtro"                ║
║                                                                              ║
║  INVARIANTES:                                                                ║
║  - Um lead só é ganho por uma requisição (claim condicional)                 ║
║  - Dono anterior vai para previous_consultants ($push, nunca $set)           ║
║  - Falha em um lead não desfaz os já gravados (best-effort)                  ║
║  - Reexecutar a mesma distribuição nunca atribui duas vezes                  ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from collections import deque
from typing import Dict, List, Optional

from pymongo.errors import PyMongoError

from config import now_iso
from models.lead import LeadAction
from services.errors import PersistenceError
from services.lead_history import log_distribution, log_lead_action

logger = logging.getLogger("assignment")


async def claim_lead(
    db,
    lead_id: str,
    expected_consultant_id: Optional[str],
    consultant: dict,
    claim_filter: Optional[Dict] = None,
    extra_set: Optional[Dict] = None,
) -> Optional[dict]:
    """
    Transfere um lead para `consultant` se ninguém mexeu nele desde a leitura.

    Retorna o documento ANTES do update, ou None se o claim foi perdido
    (lead já atribuído por outra requisição, status mudou, etc.).
    Levanta PersistenceError em falha do banco.
    """
    query = {"id": lead_id, "consultor_id": expected_consultant_id}
    if claim_filter:
        query.update(claim_filter)

    now = now_iso()
    to_set = {
        "consultor_id": consultant["id"],
        "assigned_at": now,
        "last_activity_at": now,
    }
    if consultant.get("office_id"):
        to_set["office_id"] = consultant["office_id"]
    if extra_set:
        to_set.update(extra_set)

    update = {"$set": to_set}
    if expected_consultant_id and expected_consultant_id != consultant["id"]:
        update["$push"] = {"previous_consultants": expected_consultant_id}

    try:
        return await db.leads.find_one_and_update(
            query, update, projection={"_id": 0, "id": 1, "consultor_id": 1}
        )
    except PyMongoError as e:
        raise PersistenceError(f"Falha ao atribuir lead {lead_id}: {e}") from e


async def commit_assignments(
    db,
    assignments: Dict[str, List[str]],
    leads: Dict[str, dict],
    consultants: Dict[str, dict],
    actor_id: str,
    action: LeadAction,
    campaign_id: str,
    spares: Optional[List[str]] = None,
    claim_filter: Optional[Dict] = None,
    extra_set: Optional[Dict] = None,
    notes: Optional[str] = None,
    rules_applied: Optional[str] = None,
) -> Dict:
    """
    Grava a partição {consultant_id: [lead_id]}.

    leads: documentos lidos pelo filtro, por id (consultor_id lido = valor esperado)
    spares: candidatos excedentes, usados quando um claim é perdido

    Retorna:
      assigned        {consultant_id: [lead_id efetivamente gravados]}
      lost            [lead_id] claims perdidos para outra requisição
      failures        [{leadId, consultantId, error}] erros de banco isolados
      audit_failures  int, entradas de histórico que não foram gravadas
    """
    spare_queue = deque(spares or [])
    assigned: Dict[str, List[str]] = {cid: [] for cid in assignments}
    lost: List[str] = []
    failures: List[Dict] = []
    audit_failures = 0

    for cid, planned in assignments.items():
        consultant = consultants.get(cid) or {"id": cid}
        pending = deque(planned)
        wanted = len(planned)
        failed = 0

        while len(assigned[cid]) + failed < wanted:
            if pending:
                lead_id = pending.popleft()
            elif spare_queue:
                lead_id = spare_queue.popleft()
            else:
                break

            expected = leads.get(lead_id, {}).get("consultor_id")
            if expected == cid:
                # já é deste consultor: não conta como distribuição
                continue

            try:
                before = await claim_lead(
                    db, lead_id, expected, consultant,
                    claim_filter=claim_filter, extra_set=extra_set,
                )
            except PersistenceError as e:
                logger.error(f"[ASSIGNMENT] {e}")
                failures.append({"leadId": lead_id, "consultantId": cid, "error": str(e)})
                failed += 1
                continue

            if before is None:
                logger.info(f"[CLAIM_LOST] lead={lead_id} consultor={cid} (alterado desde a leitura)")
                lost.append(lead_id)
                continue

            assigned[cid].append(lead_id)

            try:
                await log_lead_action(
                    db,
                    lead_id=lead_id,
                    action=action,
                    by_user_id=actor_id,
                    from_user_id=expected,
                    to_user_id=cid,
                    campanha_id=campaign_id,
                    notes=notes,
                )
            except PyMongoError as e:
                audit_failures += 1
                logger.error(f"[AUDIT] histórico não gravado lead={lead_id}: {e}")

    for cid, lead_ids in assigned.items():
        if not lead_ids:
            continue
        try:
            await log_distribution(
                db,
                campaign_id=campaign_id,
                admin_id=actor_id,
                consultant_id=cid,
                lead_ids=lead_ids,
                rules_applied=rules_applied or LeadAction(action).value,
            )
        except PyMongoError as e:
            audit_failures += 1
            logger.error(f"[AUDIT] distribution_log não gravado consultor={cid}: {e}")

    return {
        "assigned": assigned,
        "lost": lost,
        "failures": failures,
        "audit_failures": audit_failures,
    }
