import os
from dotenv import load_dotenv

load_dotenv()

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", 8000))

# CORS origins allowed to call the access API (comma separated)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:8000").split(",")
    if origin.strip()
]

# Database Configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./access_control.db")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"  # SQL query debugging
DATABASE_POOL_SIZE = int(os.getenv("DATABASE_POOL_SIZE", 10))
DATABASE_MAX_OVERFLOW = int(os.getenv("DATABASE_MAX_OVERFLOW", 5))

# Seed default catalog, tenant and menus on startup
SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "false").lower() == "true"

# Fallback log level when not running under uvicorn
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
