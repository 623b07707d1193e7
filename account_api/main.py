# account_api/main.py
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from account_api.core.config import get_settings
from account_api.core.errors import register_exception_handlers
from account_api.core.logging_config import setup_logging
from account_api.routers.user import user_router

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Account API",
    version=os.getenv("APP_VERSION", "0.1.0"),
)

# CORS
origins = settings.cors_origins or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    # browsers refuse credentialed requests against a wildcard origin
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(user_router, prefix=settings.api_prefix.rstrip("/"))

logger.info("Startup config: APP_ENV=%s API_PREFIX=%s", settings.app_env, settings.api_prefix)


@app.get("/health")
def health_app():
    return {"ok": True}
