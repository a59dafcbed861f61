import os
from dotenv import load_dotenv

# Variables de entorno (opcionalmente desde .env)
load_dotenv(".env")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./porras.db")

# JWT
SECRET_KEY = os.getenv("SECRET_KEY", "cambia-esta-clave-en-produccion")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Orígenes permitidos para el frontend (separados por comas)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

# Segundos que espera un recálculo antes de rendirse si otro está en curso
RECALC_LOCK_TIMEOUT = float(os.getenv("RECALC_LOCK_TIMEOUT", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

FASTF1_CACHE_DIR = os.getenv("FASTF1_CACHE_DIR", "cache")
