"""
Permission System - escopo hierárquico
Quem pode distribuir/transferir leads para quais consultores/escritórios.

O núcleo é um predicado puro (can_access_offices) testável sem HTTP;
os demais helpers só levantam os erros de domínio.
"""

import logging
from typing import Iterable, List, Optional

from models.auth import ActorScope, Role
from services.errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger("permissions")

# ════════════════════════════════════════════════════════════════════════
# ROLE SETS
# ════════════════════════════════════════════════════════════════════════

UNRESTRICTED_ROLES = {Role.MASTER, Role.GERENTE_SENIOR}

# Papéis que podem iniciar distribuição / repescagem
DISTRIBUTION_ROLES = {
    Role.MASTER,
    Role.GERENTE_SENIOR,
    Role.GERENTE_NEGOCIOS,
    Role.PROPRIETARIO,
}

# Papéis com escopo restrito a um conjunto de escritórios
OFFICE_SCOPED_ROLES = {Role.GERENTE_NEGOCIOS, Role.PROPRIETARIO}


# ════════════════════════════════════════════════════════════════════════
# PURE PREDICATES
# ════════════════════════════════════════════════════════════════════════

def can_access_offices(
    role: Role,
    actor_office_ids: Iterable[str],
    target_office_ids: Iterable[Optional[str]],
    require_all: bool = True,
) -> bool:
    """
    (papel, escritórios do ator, escritórios alvo) -> permitido?

    - MASTER / GERENTE_SENIOR: sempre
    - GERENTE_NEGOCIOS / PROPRIETARIO: alvo dentro dos escritórios do ator
      (todos por padrão, ao menos um com require_all=False)
    - demais: nunca
    Alvo vazio ou sem escritório nunca passa para papéis restritos.
    """
    role = Role(role)
    if role in UNRESTRICTED_ROLES:
        return True
    if role not in OFFICE_SCOPED_ROLES:
        return False

    allowed = set(actor_office_ids or [])
    targets = list(target_office_ids or [])
    if not targets or not allowed:
        return False

    if require_all:
        return all(t is not None and t in allowed for t in targets)
    return any(t is not None and t in allowed for t in targets)


def is_unrestricted(actor: ActorScope) -> bool:
    return actor.role in UNRESTRICTED_ROLES


def ensure_can_distribute(actor: ActorScope) -> None:
    """CONSULTOR -> 401; papéis fora da hierarquia de distribuição -> 403"""
    if actor.role == Role.CONSULTOR:
        raise UnauthorizedError("Consultores não podem distribuir leads.")
    if actor.role not in DISTRIBUTION_ROLES:
        logger.warning(f"[PERMISSION_DENIED] user={actor.id} role={actor.role.value} action=distribute")
        raise ForbiddenError("Seu perfil não permite distribuir leads.")


def authorize_consultants(
    actor: ActorScope,
    consultants: List[dict],
    office_id: Optional[str] = None,
) -> None:
    """
    Valida que o ator pode entregar leads a todos os consultores alvo.

    PROPRIETARIO só atinge consultores do seu próprio escritório.
    Levanta ForbiddenError com a lista de consultores negados.
    """
    ensure_can_distribute(actor)

    if office_id and not can_access_offices(actor.role, actor.office_ids, [office_id]):
        logger.warning(
            f"[PERMISSION_DENIED] user={actor.id} role={actor.role.value} office={office_id}"
        )
        raise ForbiddenError("Você não tem acesso a este escritório.", officeId=office_id)

    if is_unrestricted(actor):
        return

    denied = []
    for consultant in consultants:
        if can_access_offices(actor.role, actor.office_ids, [consultant.get("office_id")]):
            continue
        denied.append(consultant["id"])

    if denied:
        logger.warning(
            f"[PERMISSION_DENIED] user={actor.id} role={actor.role.value} consultants={denied}"
        )
        raise ForbiddenError(
            "Permissão negada: você não gerencia estes consultores.",
            denied=denied,
        )
