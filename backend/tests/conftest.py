"""
Fixtures partilhadas: base Mongo em memória + helpers de seed.
Run: cd backend && pytest tests -v
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from mongomock_motor import AsyncMongoMockClient

from config import hash_password
from models.auth import ActorScope, OfficeDocument, Role
from models.campaign import CampaignDocument
from models.lead import LeadDocument

PASSWORD = "Senha2026!"
BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _db_op(coro):
    """Run async DB operation in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class Seeder:
    """Cria usuários, escritórios, campanhas e leads direto na base"""

    def __init__(self, db):
        self.db = db
        self._lead_seq = 0

    def office(self, office_id, name=None, **fields):
        doc = OfficeDocument(id=office_id, name=name or office_id, code=office_id.upper(), **fields)
        _db_op(self.db.offices.insert_one(doc.model_dump()))
        return office_id

    def user(self, user_id, role=Role.CONSULTOR, office_id=None, **fields):
        doc = {
            "id": user_id,
            "email": f"{user_id}@test.com",
            "name": user_id.upper(),
            "role": Role(role).value,
            "office_id": office_id,
            "owner_id": None,
            "is_active": True,
            "password": hash_password(PASSWORD),
        }
        doc.update(fields)
        _db_op(self.db.users.insert_one(doc))
        return user_id

    def manages(self, manager_id, office_id):
        _db_op(self.db.manager_offices.insert_one({"manager_id": manager_id, "office_id": office_id}))

    def campaign(self, campaign_id="camp1", status="ATIVA", office_ids=None):
        doc = CampaignDocument(
            id=campaign_id,
            nome=f"Campanha {campaign_id}",
            status=status,
            office_ids=office_ids or [],
        )
        _db_op(self.db.campanhas.insert_one(doc.model_dump(mode="json")))
        return campaign_id

    def lead(self, campaign_id="camp1", status="NOVO", consultor_id=None, office_id=None, **fields):
        """Leads criados em sequência: created_at e id crescentes"""
        self._lead_seq += 1
        lead_id = f"lead-{self._lead_seq:04d}"
        doc = {
            "id": lead_id,
            "campanha_id": campaign_id,
            "status": status,
            "consultor_id": consultor_id,
            "office_id": office_id,
            "previous_consultants": [],
            "telefone1": "(11) 98765-4321",
            "documento": f"DOC{self._lead_seq:06d}",
            "is_worked": False,
            "created_at": (BASE_TIME + timedelta(minutes=self._lead_seq)).isoformat(),
        }
        doc.update(fields)
        _db_op(self.db.leads.insert_one(LeadDocument(**doc).model_dump(mode="json")))
        return lead_id

    def leads(self, count, **fields):
        return [self.lead(**fields) for _ in range(count)]

    def session(self, user_id):
        token = uuid.uuid4().hex
        _db_op(self.db.sessions.insert_one({
            "token": token,
            "user_id": user_id,
            "created_at": BASE_TIME.isoformat(),
            "expires_at": "2999-01-01T00:00:00+00:00",
        }))
        return token

    def get_lead(self, lead_id):
        return _db_op(self.db.leads.find_one({"id": lead_id}, {"_id": 0}))

    def leads_of(self, consultant_id, campaign_id="camp1"):
        return _db_op(self.db.leads.find(
            {"campanha_id": campaign_id, "consultor_id": consultant_id}, {"_id": 0}
        ).sort("id", 1).to_list(1000))


@pytest.fixture
def db():
    client = AsyncMongoMockClient()
    return client[f"test_{uuid.uuid4().hex[:8]}"]


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def org(seed):
    """
    Estrutura padrão:
      off-a: proprietário owner-a, gerente gn-a, consultores c1 c2
      off-b: proprietário owner-b, consultor c3
      master, senior, contas, e campanha camp1 (todos os escritórios)
    """
    seed.office("off-a", name="Escritório A", owner_id="owner-a")
    seed.office("off-b", name="Escritório B", owner_id="owner-b")
    seed.user("master", Role.MASTER)
    seed.user("senior", Role.GERENTE_SENIOR)
    seed.user("gn-a", Role.GERENTE_NEGOCIOS)
    seed.manages("gn-a", "off-a")
    seed.user("contas", Role.GERENTE_CONTAS, office_id="off-a")
    seed.user("owner-a", Role.PROPRIETARIO, office_id="off-a")
    seed.user("owner-b", Role.PROPRIETARIO, office_id="off-b")
    seed.user("c1", office_id="off-a", owner_id="owner-a")
    seed.user("c2", office_id="off-a", owner_id="owner-a")
    seed.user("c3", office_id="off-b", owner_id="owner-b")
    seed.campaign("camp1")
    return seed


@pytest.fixture
def actor(db):
    """actor("gn-a") -> ActorScope resolvido como na rota"""
    from services.directory import get_user, resolve_actor_scope

    def _actor(user_id) -> ActorScope:
        user = _db_op(get_user(db, user_id))
        return _db_op(resolve_actor_scope(db, user))
    return _actor
