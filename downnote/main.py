from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from downnote.api.http.health import router as health_router
from downnote.api.http.documents import router as documents_router
from downnote.core.config import settings
from downnote.core.db import Base, engine
import downnote.db.models  # noqa: F401  регистрирует модели в Base.metadata

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_schema_on_startup:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")
    yield
    await engine.dispose()


app = FastAPI(
    title="DownNote",
    description="Версионирование markdown документов: история, восстановление, перенос гостевых документов",
    version="1.0.0",
    lifespan=lifespan
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене указать конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Подключаем роутеры
app.include_router(health_router)
app.include_router(documents_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "DownNote API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
