# backoffice/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.core.config import settings
from backoffice.esign.credentials import load_provider_credentials
from backoffice.esign.docusign_client import DocusignClient
from backoffice.esign.exceptions import ConfigurationError
from backoffice.esign.router import router as esign_routes
from backoffice.utils.logger import setup_app_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Load the DocuSign credentials once; a bad configuration stops startup
    """
    try:
        credentials = load_provider_credentials(settings)
    except ConfigurationError as e:
        logger.error("docusign_configuration_invalid", key=e.key, error=e.message)
        raise
    app.state.docusign_client = DocusignClient(credentials)
    yield


backoffice_app = FastAPI(
    title=f"Vehicle Protection Back Office - {settings.environment}",
    description="Vehicle Protection Back Office API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

setup_app_logging(
    backoffice_app,
    log_level=settings.log_level,
    use_json=settings.is_production,
    log_file=settings.log_file,
    environment=settings.environment,
)
logger = get_logger(__name__)

backoffice_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

backoffice_app.include_router(esign_routes)


# Root API to check if the server is up
@backoffice_app.get("/", tags=["Base"])
async def health_check():
    """
    Root API to check if the server is up
    """
    logger.info("health_check")
    return {"status": "ok"}
