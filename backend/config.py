"""
Configuração e utilitários compartilhados
"""

import os
import re
import hashlib
import secrets
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Carregar .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'leads_database')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
SESSION_DAYS = int(os.environ.get('SESSION_DAYS', '7'))


def get_db():
    """FastAPI dependency: handle da base (sobrescrito nos testes)"""
    return db


# ==================== HELPERS ====================

def hash_password(password: str) -> str:
    """Hash de senha com SHA256"""
    return hashlib.sha256(password.encode()).hexdigest()

def generate_token() -> str:
    """Gera um token de sessão seguro"""
    return secrets.token_urlsafe(32)

def now_iso() -> str:
    """Data/hora atual em ISO (UTC)"""
    return datetime.now(timezone.utc).isoformat()


# ==================== TELEFONES ====================

PHONE_FIELDS = ("telefone", "telefone1", "telefone2", "telefone3")

# 8 a 15 dígitos, "+" opcional na frente
VALID_PHONE_RE = re.compile(r"^\+?\d{8,15}$")


def lead_phones(lead: dict) -> List[str]:
    """Telefones não vazios de um lead, na ordem dos campos"""
    phones = []
    for field in PHONE_FIELDS:
        value = (lead.get(field) or "").strip()
        if value:
            phones.append(value)
    return phones


def phone_digits(phone: str) -> str:
    """Remove tudo que não é dígito"""
    return ''.join(filter(str.isdigit, phone or ""))


def is_valid_phone(phone: str) -> bool:
    """
    Telefone válido = 8 a 15 dígitos depois da normalização.
    "(11) 98765-4321" -> "11987654321" -> válido
    """
    digits = phone_digits(phone)
    if not digits:
        return False
    return VALID_PHONE_RE.match(digits) is not None


def has_valid_phone(phones: Iterable[str]) -> bool:
    return any(is_valid_phone(p) for p in phones)


# ==================== FATURAMENTO ====================

def parse_revenue_br(value: Optional[str]) -> Optional[float]:
    """
    Converte faturamento no formato brasileiro em número.

    "R$ 1.250.000,50" -> 1250000.5
    "50.000,00"       -> 50000.0
    ""/None/"n/d"     -> None

    Pipeline:
      1. Manter apenas dígitos, "." e ","
      2. Remover separador de milhar "."
      3. Vírgula decimal -> ponto
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r"[^\d.,]", "", str(value))
    if not cleaned:
        return None

    normalized = cleaned.replace(".", "").replace(",", ".", 1)
    try:
        return float(normalized)
    except ValueError:
        return None
