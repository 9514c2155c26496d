"""
Partitioner - divide a sequência ordenada de leads entre consultores.

Manual: por vaga de consultor, na ordem do pedido ("primeiro pedido,
primeiro servido"). Automático: blocos contíguos, os primeiros
consultores recebem o resto da divisão.
Nenhum lead aparece em duas fatias.
"""

from typing import Dict, List


def _empty(consultant_ids: List[str]) -> Dict[str, List[str]]:
    assignments: Dict[str, List[str]] = {}
    for cid in consultant_ids:
        assignments.setdefault(cid, [])
    return assignments


def partition_by_quota(
    lead_ids: List[str],
    consultant_ids: List[str],
    quantity: int,
) -> Dict[str, List[str]]:
    """
    Cada consultor consome leads da frente até atingir quantity ou acabar
    o estoque. Com 5 leads, [c1, c2] e quantity=3 -> c1: 3, c2: 2.
    """
    assignments = _empty(consultant_ids)
    if quantity <= 0:
        return assignments

    cursor = 0
    for cid in assignments:
        if cursor >= len(lead_ids):
            break
        assignments[cid] = list(lead_ids[cursor:cursor + quantity])
        cursor += len(assignments[cid])
    return assignments


def partition_evenly(
    lead_ids: List[str],
    consultant_ids: List[str],
) -> Dict[str, List[str]]:
    """Fatias contíguas na ordem dos leads: tamanhos diferem no máximo em 1"""
    assignments = _empty(consultant_ids)
    slots = list(assignments)
    if not slots:
        return assignments
    base, rest = divmod(len(lead_ids), len(slots))
    cursor = 0
    for index, cid in enumerate(slots):
        size = base + (1 if index < rest else 0)
        assignments[cid] = list(lead_ids[cursor:cursor + size])
        cursor += size
    return assignments


def quota_for(assignments: Dict[str, List[str]]) -> Dict[str, int]:
    return {cid: len(ids) for cid, ids in assignments.items()}
