import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import CORS_ORIGINS
from app.core.logging import setup_logging

# IMPORTANTE: Importar Base y Engine para que funcione la creación de tablas
from app.db.session import engine, Base

# Importar modelos para que SQLAlchemy los "vea" antes de crear las tablas
from app.db.models import _all

# Importar las rutas (los routers)
from app.api.auth import router as auth_router
from app.api.seasons import router as seasons_router
from app.api.races import router as races_router
from app.api.championships import router as championships_router
from app.api.predictions import router as predictions_router
from app.api.admin import router as admin_router

setup_logging()
logger = logging.getLogger("app.main")

app = FastAPI(
    title="Porras F1",
    version="1.0.0"
)

# Creamos las tablas en la base de datos
Base.metadata.create_all(bind=engine)

# Conectamos las piezas (routers), todas bajo /api
for router in (
    auth_router,
    seasons_router,
    races_router,
    championships_router,
    predictions_router,
    admin_router,
):
    app.include_router(router, prefix="/api")


# Configuramos el permiso para que el frontend pueda hablar con Python
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def read_root():
    return {"message": "API Porras F1 funcionando 🏎️"}
