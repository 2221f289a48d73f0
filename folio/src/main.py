"""
Folio - Application Entry Point
================================
FastAPI application factory.  Registers the chat routes and CORS
middleware; all configuration comes from ``folio.config.settings``.

Run:
    uvicorn folio.src.main:app --host 0.0.0.0 --port 8000
    folio-serve
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from folio.config.settings import settings
from folio.src.api.routes import router
from folio.src.utils.logger import get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Folio portfolio assistant", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router)

    missing = settings.missing_credentials()
    if missing:
        logger.warning("Starting without %s — /api/chat will answer 500 until configured.", ", ".join(missing))
    return app


app = create_app()


def serve() -> None:
    import uvicorn

    uvicorn.run("folio.src.main:app", host=settings.HOST, port=settings.PORT, reload=False)


if __name__ == "__main__":
    serve()
