from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from upsc_pyq.config import get_settings
from upsc_pyq.routers import questions, answers, admin, auth, progress
from upsc_pyq.core.logging_config import setup_logging, OperationLogger
import time
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware


logger = setup_logging()
settings = get_settings()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        response = None
        with OperationLogger(
            "http_request",
            method=request.method,
            url=str(request.url),
            client_host=request.client.host if request.client else None,
        ):
            try:
                response = await call_next(request)
                return response
            finally:
                process_time = (time.time() - start_time) * 1000
                status_code = response.status_code if response else 500
                logger.info(
                    "Request processed",
                    process_time_ms=round(process_time, 2),
                    status_code=status_code,
                    method=request.method,
                    url=str(request.url),
                )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")
    try:
        yield
    finally:
        logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_TITLE,
    description="Previous year question search, practice and import API",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

v1 = FastAPI(
    title=settings.APP_TITLE,
    description="Version 1 of the UPSC PYQ API",
    version=settings.APP_VERSION
)

v1.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

v1.include_router(auth.router, prefix="/auth", tags=["Authentication"])
v1.include_router(questions.router, prefix="/questions", tags=["Questions"])
v1.include_router(answers.router, prefix="/questions", tags=["Answers"])
v1.include_router(admin.router, prefix="/admin", tags=["Admin"])
v1.include_router(progress.router, prefix="/progress", tags=["Progress"])

app.mount("/api/v1", v1)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(
        "Global exception handler caught",
        error=str(exc),
        url=str(request.url),
        method=request.method,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@v1.exception_handler(Exception)
async def v1_global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(
        "V1 API - Global exception handler caught",
        error=str(exc),
        url=str(request.url),
        method=request.method,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health_check():
    logger.info("Health check endpoint called")
    return {"status": "healthy", "version": app.version}
