"""
Routes Auth
Login / Logout / Sessão. Só o necessário para saber QUEM está agindo.
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timezone, timedelta

from models.auth import ActorScope, UserLogin, UserResponse
from config import get_db, hash_password, generate_token, now_iso, SESSION_DAYS
from services.directory import resolve_actor_scope

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)


# ==================== HELPERS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db),
):
    """Recupera o usuário conectado a partir do token."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Não autenticado")

    session = await db.sessions.find_one({
        "token": credentials.credentials,
        "expires_at": {"$gt": now_iso()}
    })

    if not session:
        raise HTTPException(status_code=401, detail="Sessão expirada")

    user = await db.users.find_one(
        {"id": session["user_id"]},
        {"_id": 0, "password": 0}
    )

    if not user:
        raise HTTPException(status_code=401, detail="Usuário não encontrado")

    if user.get("is_active") is False:
        raise HTTPException(status_code=403, detail="Conta desativada")

    return user


async def get_actor(user: dict = Depends(get_current_user), db=Depends(get_db)) -> ActorScope:
    """Usuário + escritórios do seu escopo"""
    return await resolve_actor_scope(db, user)


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(data: UserLogin, db=Depends(get_db)):
    """Conexão do usuário."""
    user = await db.users.find_one(
        {"email": data.email.lower().strip()},
        {"_id": 0}
    )

    if not user or user.get("password") != hash_password(data.password):
        raise HTTPException(status_code=401, detail="Email ou senha incorretos")

    if user.get("is_active") is False:
        raise HTTPException(status_code=403, detail="Conta desativada")

    token = generate_token()
    expires_at = (datetime.now(timezone.utc) + timedelta(days=SESSION_DAYS)).isoformat()

    await db.sessions.insert_one({
        "token": token,
        "user_id": user["id"],
        "created_at": now_iso(),
        "expires_at": expires_at
    })

    return {
        "token": token,
        "user": UserResponse(**user).model_dump(mode="json", exclude={"office_ids"}),
    }


@router.post("/logout")
async def logout(
    user: dict = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db),
):
    if credentials:
        await db.sessions.delete_one({"token": credentials.credentials})
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def get_me(actor: ActorScope = Depends(get_actor), user: dict = Depends(get_current_user)):
    """Usuário + escritórios visíveis."""
    return UserResponse(**user, office_ids=actor.office_ids)
