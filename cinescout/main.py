from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cinescout.api.routes import messages, recommendations
from cinescout.config import settings
from cinescout.errors import InvalidRequest, Misconfigured
from cinescout.services import logger as log_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_service.log_event(event_type="app_started", message="CineScout started")
    yield
    log_service.log_event(event_type="app_stopped", message="CineScout stopped")


app = FastAPI(
    title="CineScout",
    description="Movie recommendations from deep web research, streamed over SSE",
    version="0.1.0",
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


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(Misconfigured)
async def misconfigured_handler(request: Request, exc: Misconfigured):
    log_service.log_event(
        event_type="misconfigured",
        message="Rejected request: service is missing configuration",
        error=str(exc),
        path=request.url.path,
    )
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Routes
app.include_router(recommendations.router)
app.include_router(messages.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "cinescout"}
