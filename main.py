import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import accounts
import admin
import catalog
import notifications
import orders
import reviews
from database import Store, open_store
from gateway import GatewayError, PaymentGateway
from settings import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    return f"{field}: {err['msg']}" if field else err["msg"]


def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None,
               gateway: Optional[PaymentGateway] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.store is None
        if owned:
            app.state.store = open_store(settings)
        try:
            app.state.store.ensure_indexes()
        except PyMongoError:
            logger.exception("Could not create indexes, database may be unavailable")
        yield
        if owned:
            app.state.store.close()
            app.state.store = None

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway or PaymentGateway.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": first_error_message(exc)})

    @app.exception_handler(PyMongoError)
    async def database_error(request: Request, exc: PyMongoError):
        logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=503, content={"detail": "Database not available"})

    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        logger.exception("Payment gateway error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=503, content={"detail": "Payment gateway unavailable"})

    # ----------------------- Health -----------------------
    @app.get("/")
    def root():
        return {"message": "Storefront API running"}

    @app.get("/test")
    def test_database(request: Request):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": settings.database_name,
            "payment_gateway": "⚠️ Simulated" if app.state.gateway.simulated else "✅ Configured",
            "connection_status": "Not Connected",
            "collections": [],
        }
        try:
            db_store = request.app.state.store
            if db_store is not None:
                response["collections"] = db_store.db.list_collection_names()[:10]
                response["database"] = "✅ Connected & Working"
                response["connection_status"] = "Connected"
        except PyMongoError as e:
            response["database"] = f"❌ Error: {str(e)[:80]}"
        return response

    app.include_router(accounts.router)
    app.include_router(catalog.router)
    app.include_router(reviews.router)
    app.include_router(orders.router)
    app.include_router(notifications.router)
    app.include_router(admin.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
