"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Models Package                                                              ║
║                                                                              ║
║  Exporta todos os modelos para import fácil                                  ║
║  from models import LeadStatus, Role, DistributeRequest, etc.                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Auth / hierarquia
from .auth import (
    Role,
    UserLogin,
    UserResponse,
    OfficeDocument,
    ActorScope,
)

# Campanha
from .campaign import (
    CampaignStatus,
    CampaignDocument,
    is_campaign_active,
)

# Lead
from .lead import (
    LeadStatus,
    TERMINAL_STATUSES,
    LeadAction,
    LeadDocument,
    LeadHistoryEntry,
)

# Distribuição
from .distribution import (
    DistributionMode,
    DistributionFilters,
    DistributeRequest,
    RepescagemRequest,
    RecaptureRequest,
    ReassignRequest,
    ConsultantResult,
)

__all__ = [
    "Role", "UserLogin", "UserResponse",
    "OfficeDocument", "ActorScope",
    "CampaignStatus", "CampaignDocument", "is_campaign_active",
    "LeadStatus", "TERMINAL_STATUSES", "LeadAction",
    "LeadDocument", "LeadHistoryEntry",
    "DistributionMode", "DistributionFilters", "DistributeRequest",
    "RepescagemRequest", "RecaptureRequest", "ReassignRequest", "ConsultantResult",
]
