import logging
import os

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import config
from database import check_connection, get_session
from routers import credit_notes_router, invoices_router, orders_router


def configure_logging() -> None:
    """Configure root logging once; uvicorn may already have installed handlers."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=config.LOG_LEVEL,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        root_logger.setLevel(config.LOG_LEVEL)


configure_logging()

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Bike Workshop Invoicing", version="1.0.0")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(orders_router)
    app.include_router(invoices_router)
    app.include_router(credit_notes_router)

    @app.get("/health", tags=["health"])
    def health(db: Session = Depends(get_session)):
        database_ok = check_connection(db.get_bind())
        return {"status": "ok" if database_ok else "degraded", "database": database_ok}

    # Last-resort handler: log and hide internals
    @app.middleware("http")
    async def unhandled_error_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

    logger.info("Application startup complete.")
    return app


app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", 10000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
