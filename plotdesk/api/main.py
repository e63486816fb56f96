"""
FastAPI application for the story-writing backend.

Run with:
    uvicorn plotdesk.api.main:app --reload --port 3000
"""
import asyncio
import logging
from dotenv import load_dotenv
load_dotenv()  # Load .env before other imports

from fastapi import FastAPI, APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from ..config import settings
from ..services.gemini_proxy import GeminiProxy, GenerationError, get_gemini_proxy
from ..services.story_store import StoryStore, get_story_store
from .models import GenerateTextRequest, ErrorResponse, StatusResponse
from . import story_routes

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the Gemini proxy on startup and release its HTTP client on shutdown."""
    proxy = get_gemini_proxy()
    if proxy.key_count == 0:
        logger.warning("No GEMINI_API_KEY* set; /generate-text will answer 500")
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("SUPABASE_URL and SUPABASE_KEY are not set; story routes will fail")
    logger.info(f"Server ready with {proxy.key_count} Gemini key(s)")
    yield
    proxy.close()
    get_gemini_proxy.cache_clear()


app = FastAPI(
    title="plotdesk",
    description="Story settings, characters, episodes and a Gemini proxy for a fiction-writing tool",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def no_store(request: Request, call_next):
    """Disable browser caching so the editor always sees fresh data."""
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
    return response


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


router = APIRouter()


@router.get("/status", response_model=StatusResponse)
def status(
    store: StoryStore = Depends(get_story_store),
    proxy: GeminiProxy = Depends(get_gemini_proxy),
):
    """Server and database status."""
    try:
        store.ping()
    except Exception as e:
        logger.error(f"Database connection error on status check: {e}")
        body = StatusResponse(
            serverStatus="Running",
            dbStatus="Disconnected",
            message="Database connection failed",
            geminiKeys=proxy.key_count,
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    return StatusResponse(
        serverStatus="Running",
        dbStatus="Connected",
        message="API and database are healthy",
        geminiKeys=proxy.key_count,
    )


@router.post(
    "/generate-text",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_text(
    request: Request,
    proxy: GeminiProxy = Depends(get_gemini_proxy),
):
    """
    Forward a generateContent call to Gemini, rotating across the configured keys.

    - **model**: Gemini model id
    - **payload**: generateContent request body, sent as-is

    Failures answer with `{"error", "details"}`, including unreadable bodies.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}
    fields = GenerateTextRequest.model_validate(body)
    result = await asyncio.to_thread(proxy.generate, fields.model, fields.payload)
    return JSONResponse(status_code=200, content=result.payload)


# Same routes under /api (local) and / (hosts that strip the /api prefix)
app.include_router(router, prefix="/api")
app.include_router(story_routes.router, prefix="/api")
app.include_router(router, include_in_schema=False)
app.include_router(story_routes.router, include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "plotdesk.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
