import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from salonpos.core.config import settings
from salonpos.core.errors import EngineError
from salonpos.routes.auth import router as auth_router
from salonpos.routes.catalog import router as catalog_router
from salonpos.routes.health import router as health_router
from salonpos.routes.agenda import router as agenda_router
from salonpos.routes.appointments import router as appointments_router
from salonpos.routes.cash import router as cash_router
from salonpos.routes.checkout import router as checkout_router
from salonpos.routes.commissions import router as commissions_router
from salonpos.routes.goals import router as goals_router
from salonpos.routes.public import router as public_router
from salonpos.routes.status_history import router as status_history_router
from salonpos.core.database import SessionLocal, init_db
from salonpos.services.seed import seed_demo

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Salon POS API", version="0.1.0")

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(catalog_router, prefix="/catalog", tags=["catalog"])
    app.include_router(agenda_router, prefix="/agenda", tags=["agenda"])
    app.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
    app.include_router(cash_router, prefix="/cash", tags=["cash"])
    app.include_router(checkout_router, prefix="/checkout", tags=["checkout"])
    app.include_router(commissions_router, prefix="/commissions", tags=["commissions"])
    app.include_router(goals_router, prefix="/goals", tags=["goals"])
    app.include_router(public_router, prefix="/public", tags=["public"])
    app.include_router(status_history_router, prefix="/status-history", tags=["status-history"])

    return app


app = create_app()

init_db()

# Only seed in development or when explicitly requested
if settings.env == "dev" or os.getenv("FORCE_SEED") == "true":
    with SessionLocal() as db:
        seed_demo(db)
