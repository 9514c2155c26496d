"""
Diretório organizacional (somente leitura para o núcleo)

Coleções:
- users            (consultores, proprietários, gerentes)
- offices          (escritórios)
- manager_offices  (vínculo gerente de negócios -> escritório)
"""

from typing import Dict, List, Optional

from models.auth import ActorScope, Role


async def get_user(db, user_id: str) -> Optional[dict]:
    if not user_id:
        return None
    return await db.users.find_one({"id": user_id}, {"_id": 0, "password": 0})


async def get_consultants(db, consultant_ids: List[str]) -> Dict[str, dict]:
    """Consultores por id (ids desconhecidos simplesmente não aparecem)"""
    if not consultant_ids:
        return {}
    docs = await db.users.find(
        {"id": {"$in": consultant_ids}},
        {"_id": 0, "password": 0}
    ).to_list(len(consultant_ids))
    return {d["id"]: d for d in docs}


async def get_offices(db, office_ids: List[str]) -> Dict[str, dict]:
    if not office_ids:
        return {}
    docs = await db.offices.find(
        {"id": {"$in": office_ids}}, {"_id": 0}
    ).to_list(len(office_ids))
    return {d["id"]: d for d in docs}


async def get_managed_office_ids(db, manager_id: str) -> List[str]:
    """Escritórios geridos: tabela manager_offices + offices.business_manager_id"""
    ids = []
    links = await db.manager_offices.find(
        {"manager_id": manager_id}, {"_id": 0, "office_id": 1}
    ).to_list(500)
    for link in links:
        if link.get("office_id") and link["office_id"] not in ids:
            ids.append(link["office_id"])

    offices = await db.offices.find(
        {"business_manager_id": manager_id}, {"_id": 0, "id": 1}
    ).to_list(500)
    for office in offices:
        if office["id"] not in ids:
            ids.append(office["id"])
    return ids


async def get_owned_office_ids(db, owner: dict) -> List[str]:
    """Escritório do proprietário: office_id próprio + offices.owner_id"""
    ids = []
    if owner.get("office_id"):
        ids.append(owner["office_id"])
    offices = await db.offices.find(
        {"owner_id": owner["id"]}, {"_id": 0, "id": 1}
    ).to_list(100)
    for office in offices:
        if office["id"] not in ids:
            ids.append(office["id"])
    return ids


async def resolve_actor_scope(db, user: dict) -> ActorScope:
    """Monta o escopo de escritórios do usuário autenticado"""
    role = Role(user.get("role", Role.CONSULTOR.value))
    office_ids: List[str] = []

    if role == Role.GERENTE_NEGOCIOS:
        office_ids = await get_managed_office_ids(db, user["id"])
    elif role == Role.PROPRIETARIO:
        office_ids = await get_owned_office_ids(db, user)
    elif role == Role.GERENTE_SENIOR:
        offices = await db.offices.find(
            {"senior_manager_id": user["id"]}, {"_id": 0, "id": 1}
        ).to_list(500)
        office_ids = [o["id"] for o in offices]

    return ActorScope(
        id=user["id"],
        role=role,
        office_id=user.get("office_id"),
        office_ids=office_ids,
    )


async def list_consultants(db, office_ids: Optional[List[str]] = None) -> List[dict]:
    """Consultores ativos, opcionalmente restritos a escritórios"""
    query = {"role": Role.CONSULTOR.value, "is_active": {"$ne": False}}
    if office_ids is not None:
        query["office_id"] = {"$in": office_ids}
    return await db.users.find(
        query, {"_id": 0, "password": 0}
    ).sort("name", 1).to_list(1000)
