"""
Modelos Auth & Usuários
Hierarquia comercial: MASTER > GERENTE_SENIOR > GERENTE_NEGOCIOS > PROPRIETARIO > CONSULTOR
"""

from enum import Enum
from pydantic import BaseModel
from typing import Optional, List


class Role(str, Enum):
    MASTER = "MASTER"
    GERENTE_SENIOR = "GERENTE_SENIOR"
    GERENTE_NEGOCIOS = "GERENTE_NEGOCIOS"
    GERENTE_CONTAS = "GERENTE_CONTAS"
    PROPRIETARIO = "PROPRIETARIO"
    CONSULTOR = "CONSULTOR"


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str = ""
    role: Role = Role.CONSULTOR
    office_id: Optional[str] = None
    owner_id: Optional[str] = None
    is_active: bool = True
    office_ids: List[str] = []


class OfficeDocument(BaseModel):
    """Escritório: agrupa consultores sob um proprietário e gerentes"""
    id: str
    name: str
    code: str = ""
    owner_id: Optional[str] = None
    business_manager_id: Optional[str] = None
    senior_manager_id: Optional[str] = None


class ActorScope(BaseModel):
    """
    Usuário autenticado + escritórios que ele enxerga.
    office_ids: escritórios do proprietário OU geridos pelo gerente de negócios
    """
    id: str
    role: Role
    office_id: Optional[str] = None
    office_ids: List[str] = []
