"""
Service Settings

Gestão de parâmetros dinâmicos do sistema.
Coleção: settings (cada doc identificado por key)

Settings disponíveis:
- distribution: fator de sobre-amostragem do filtro de elegibilidade,
  teto do modo automático
"""

import logging
from typing import Optional, Dict, Any
from config import now_iso

logger = logging.getLogger("settings")


async def get_setting(db, key: str) -> Optional[Dict]:
    """Busca um setting pela chave"""
    doc = await db.settings.find_one({"key": key}, {"_id": 0})
    return doc


async def upsert_setting(db, key: str, data: Dict[str, Any], updated_by: str = "system") -> Dict:
    """Cria ou atualiza um setting"""
    now = now_iso()
    fields = dict(data, key=key, updated_at=now, updated_by=updated_by)
    await db.settings.update_one(
        {"key": key},
        {"$set": fields, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )
    logger.info(f"[SETTINGS] {key} atualizado por {updated_by}")
    return await db.settings.find_one({"key": key}, {"_id": 0})


# ---- Distribution helpers ----

DEFAULT_DISTRIBUTION = {
    # busca max(required * factor, required + min_extra) linhas por página
    "oversample_factor": 2,
    "oversample_min_extra": 10,
    # teto de leads por distribuição automática
    "max_auto_batch": 5000,
}


async def get_distribution_settings(db) -> Dict:
    """Settings de distribuição (com defaults para chaves ausentes)"""
    doc = await get_setting(db, "distribution") or {}
    settings = dict(DEFAULT_DISTRIBUTION)
    for k in DEFAULT_DISTRIBUTION:
        value = doc.get(k)
        if isinstance(value, int) and value > 0:
            settings[k] = value
    return settings
