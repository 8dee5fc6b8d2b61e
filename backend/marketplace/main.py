import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from marketplace.config import settings
from marketplace.errors import MarketplaceError
from marketplace.routers import (
    admin_users,
    auth,
    cart,
    categories,
    custom_domains,
    orders,
    products,
    storefront,
    vendors,
)
from marketplace.utils.logger import logger

app = FastAPI(title="Marketplace API", version="1.0.0", debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)


# Request logging middleware with request ID
@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = uuid.uuid4().hex[:8]
    request.state.rid = rid
    logging.info("→ %s %s rid=%s", request.method, request.url.path, rid)
    try:
        resp = await call_next(request)
    except Exception as e:
        logging.exception("Unhandled error rid=%s: %s", rid, type(e).__name__)
        resp = JSONResponse(
            {"message": "Internal server error", "rid": rid},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    logging.info("← %s status=%s rid=%s", request.url.path, resp.status_code, rid)
    resp.headers["X-Request-ID"] = rid
    return resp


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    rid = getattr(request.state, "rid", "unknown")
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path} rid={rid}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path} rid={rid}: {exc.message}")
    return JSONResponse({"message": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid {field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse({"message": message}, status_code=status.HTTP_400_BAD_REQUEST)


app.include_router(auth.router)
app.include_router(admin_users.router)
app.include_router(vendors.router)
app.include_router(vendors.admin_router)
app.include_router(custom_domains.router)
app.include_router(categories.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(storefront.router)


@app.on_event("startup")
async def startup_event():
    logger.info("Marketplace API starting up...")
    if settings.AUTO_CREATE_TABLES:
        from marketplace.models_sqlalchemy import Base, engine
        from marketplace.models_sqlalchemy import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured via create_all")


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/healthz/db")
async def healthz_db():
    """Database health check endpoint"""
    try:
        from marketplace.models_sqlalchemy import engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        logger.exception("Database health check failed")
        return JSONResponse(
            {"message": f"Database unavailable: {type(e).__name__}"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


@app.get("/")
async def root():
    return {
        "message": "Marketplace API",
        "version": "1.0.0",
        "docs": "/docs",
    }
