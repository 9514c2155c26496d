from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
import logging

from config import client, CORS_ORIGINS, now_iso
from routes import auth, campaigns, leads, repescagem
from services.errors import DistributionError

logger = logging.getLogger("server")

# Create the main app without a prefix
app = FastAPI(title="Lead Distribution API")

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")


@api_router.get("/health")
async def health():
    return {"status": "ok", "time": now_iso()}


api_router.include_router(auth.router)
api_router.include_router(campaigns.router)
api_router.include_router(repescagem.router)
api_router.include_router(leads.router)

app.include_router(api_router)


@app.exception_handler(DistributionError)
async def distribution_error_handler(request: Request, exc: DistributionError):
    if exc.status_code >= 500:
        logger.error(f"[{exc.error.upper()}] {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"[{exc.error.upper()}] {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
