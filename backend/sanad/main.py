from fastapi import FastAPI, Request
import logging
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sanad.api.api import api_router
from sanad.core.config import settings
from sanad.core.exceptions import SanadError
from sanad.db.session import init_db

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Sanad API",
    description="Claims backend for flight and delivery compensation",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SanadError)
async def sanad_error_handler(request: Request, exc: SanadError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api_router, prefix="/api")

@app.on_event("startup")
async def startup_event():
    logger.info("Sanad API starting up...")
    init_db()
    from sanad.services import llm_service
    if not llm_service.client:
        logger.warning("OpenAI client could not be initialized. AI, OCR and document checks will be unavailable.")
    if not settings.AERODATABOX_API_KEY:
        logger.warning("AeroDataBox API key is not configured. Flight status checks will use mock data.")
    if not settings.STAFF_API_KEYS:
        logger.warning("No STAFF_API_KEYS configured. Staff endpoints will reject every request.")


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the Sanad API. We are live."}
