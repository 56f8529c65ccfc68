"""Application factory for the Detective de Demanda FastAPI backend.

Serve with ``uvicorn demand_detective.app:create_app --factory``.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import LLMSettings, require_llm_settings, resolve_allowed_origins
from .llm import GenerationClient
from .memory import SessionMemory
from .orchestrator import StepGenerator
from .routers import wizard


DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(
    settings: LLMSettings | None = None,
    generation_client: StepGenerator | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Raises ``FatalConfigurationError`` when no OpenAI credential is configured.
    """
    settings = settings or require_llm_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Detective de Demanda",
        version="0.1.0",
        description="Turns a professional profile into personas, pilot offers and scaling plans.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolve_allowed_origins(settings, DEFAULT_ALLOWED_ORIGINS),
        allow_origin_regex=r"http://localhost:\d+$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.llm_settings = settings
    app.state.generation_client = generation_client or GenerationClient(settings)
    app.state.sessions = SessionMemory()
    app.include_router(wizard.router)
    return app
