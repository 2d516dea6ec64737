from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from consumer_insights import __version__
from consumer_insights.api.routes import analysis, events, search
from consumer_insights.config import settings
from consumer_insights.container import build_container
from consumer_insights.errors import PipelineError
from consumer_insights.services import logger as log_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    container = build_container(settings)
    app.state.container = container
    yield
    # Shutdown
    await container.aclose()


app = FastAPI(
    title="Consumer Insights",
    description="Korean consumer-opinion search, filtering and analysis pipeline",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    log_service.log_event(
        event_type="request_failed",
        message=exc.message,
        path=request.url.path,
        reason=exc.reason,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Routes
app.include_router(search.router)
app.include_router(analysis.router)
app.include_router(events.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "consumer-insights"}
