import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware import Middleware

from accounts_api.core.config import settings
from .database import engine, Base
from .routers import auth

logger = logging.getLogger("accounts_api.requests")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    Base.metadata.create_all(bind=engine)
    logger.info("Startup: database tables checked/created")
    yield


middleware = [
    Middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS),
    Middleware(CORSMiddleware,
               allow_origins=settings.CORS_ORIGINS,
               allow_credentials=True,
               allow_methods=["*"],
               allow_headers=["*"]),

    Middleware(GZipMiddleware, minimum_size=1000)
]

app = FastAPI(
    title="Accounts Api",
    description="Account lifecycle and authentication api",
    version="1.0.0",
    lifespan=lifespan,
    middleware=middleware
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.append(f"{field}: {error['msg']}" if field else error["msg"])
    return JSONResponse(status_code=422, content={"errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred. Please try again."})


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, process_time * 1000)
    return response


app.include_router(auth.router, prefix="/auth", tags=["Authentication"])


@app.get("/")
def health_check():
    return {"status": "ok", "message": "Nice and Healthy"}
