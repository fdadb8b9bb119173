import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.db import Base, engine
from app.deps import build_services
from app import models  # noqa: F401  registra las tablas en Base.metadata

from app.routers import webhooks as webhooks_router
from app.routers import lessons as lessons_router
from app.routers import quizzes as quizzes_router
from app.routers import flows as flows_router
from app.routers import wallet as wallet_router
from app.routers import admin as admin_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
log = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # los tests inyectan sus propios servicios antes de arrancar
    if getattr(app.state, "services", None) is None:
        Base.metadata.create_all(bind=engine)
        app.state.services = build_services()
    services = app.state.services
    recovered = services.scheduler.recover()
    log.info("notifier=%s, recovered %s scheduled quiz start(s)", type(services.notifier).__name__, recovered)
    try:
        yield
    finally:
        services.scheduler.shutdown()


app = FastAPI(title="Lessons & Quiz API", lifespan=lifespan)

# ==== CORS ====
origins_list = [o.strip() for o in CORS_ORIGINS.split(",")] if CORS_ORIGINS else ["http://localhost:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==== Routers ====
app.include_router(webhooks_router.router)
app.include_router(lessons_router.router)
app.include_router(quizzes_router.router)
app.include_router(flows_router.router)
app.include_router(wallet_router.router)
app.include_router(admin_router.router)

@app.get("/health")
def health():
    return {"status": "ok"}
