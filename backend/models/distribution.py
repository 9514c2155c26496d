"""
Payloads de distribuição, repescagem e recaptura
Os corpos HTTP usam camelCase (contrato do front), os atributos Python snake_case.
"""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DistributionMode(str, Enum):
    MANUAL = "manual"   # quantidade fixa por consultor
    AUTO = "auto"       # divide todo o estoque igualmente


class DistributionFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    only_new: bool = Field(True, alias="onlyNew")
    only_unassigned: bool = Field(True, alias="onlyUnassigned")
    only_with_phone: bool = Field(False, alias="onlyWithPhone")
    ignore_invalid_phones: bool = Field(False, alias="ignoreInvalidPhones")
    faturamento_min: Optional[float] = Field(None, alias="faturamentoMin")
    faturamento_max: Optional[float] = Field(None, alias="faturamentoMax")

    @model_validator(mode="after")
    def check_revenue_bounds(self):
        if (
            self.faturamento_min is not None
            and self.faturamento_max is not None
            and self.faturamento_min > self.faturamento_max
        ):
            raise ValueError("faturamentoMin não pode ser maior que faturamentoMax")
        return self

    @property
    def needs_phone_check(self) -> bool:
        return self.only_with_phone or self.ignore_invalid_phones

    @property
    def needs_revenue_check(self) -> bool:
        return self.faturamento_min is not None or self.faturamento_max is not None


class DistributeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    consultant_ids: List[str] = Field(..., alias="consultantIds")
    mode: DistributionMode = DistributionMode.MANUAL
    quantity_per_consultant: Optional[int] = Field(None, alias="quantityPerConsultant", ge=1)
    office_id: Optional[str] = Field(None, alias="officeId")
    filters: DistributionFilters = Field(default_factory=DistributionFilters)

    @field_validator("consultant_ids")
    @classmethod
    def clean_consultant_ids(cls, v):
        # trim + dedupe, mantendo a ordem do pedido
        seen = []
        for cid in v:
            cid = (cid or "").strip()
            if cid and cid not in seen:
                seen.append(cid)
        if not seen:
            raise ValueError("Selecione ao menos um consultor")
        return seen

    @field_validator("office_id")
    @classmethod
    def blank_office_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_quantity(self):
        if self.mode == DistributionMode.MANUAL and not self.quantity_per_consultant:
            raise ValueError("Quantidade por consultor inválida.")
        return self


class RepescagemRequest(BaseModel):
    """
    Campos opcionais de propósito: a ausência vira 400 no serviço,
    não 422 do FastAPI.
    """
    model_config = ConfigDict(populate_by_name=True)

    campanha_id: Optional[str] = Field(None, alias="campanhaId")
    from_consultant_id: Optional[str] = Field(None, alias="fromConsultantId")
    to_consultant_id: Optional[str] = Field(None, alias="toConsultantId")
    quantity: Optional[int] = None


class RecaptureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lead_ids: List[str] = Field(default_factory=list, alias="leadIds")
    new_consultant_id: Optional[str] = Field(None, alias="newConsultantId")
    reason: Optional[str] = None


class ReassignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lead_id: Optional[str] = Field(None, alias="leadId")
    novo_consultor_id: Optional[str] = Field(None, alias="novoConsultorId")
    observacao: Optional[str] = None


class ConsultantResult(BaseModel):
    consultant_id: str
    name: str = ""
    email: str = ""
    office_id: Optional[str] = None
    requested: int = 0
    distributed: int = 0
    lead_ids: List[str] = []

    def to_response(self) -> Dict:
        return {
            "consultantId": self.consultant_id,
            "name": self.name,
            "email": self.email,
            "officeId": self.office_id,
            "requested": self.requested,
            "distributed": self.distributed,
        }
