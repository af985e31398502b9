"""FastAPI application entry point for the document analysis API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
from server.api.routers.DocumentRouter import document_router
from server.api.routers.SubjectRouter import subject_router
from services.document_analysis.AnalysisOrchestrator import AnalysisOrchestrator
from shared.clients.extract.plaintext.ExtractClientPlaintext import ExtractClientPlaintext
from shared.clients.provider.ProviderClientManager import ProviderClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import AnalysisSettings

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    settings = AnalysisSettings.from_helper_config(app.state.config)
    provider_manager = ProviderClientManager(helper_config=app.state.config, settings=settings)
    store = StoreClientManager(helper_config=app.state.config).get_client()
    await provider_manager.boot()

    # Wire up the orchestrator and resume persisted work
    app.state.orchestrator = AnalysisOrchestrator(
        helper_config=app.state.config,
        settings=settings,
        provider_manager=provider_manager,
        store=store,
        extractor=ExtractClientPlaintext(helper_config=app.state.config),
    )
    await app.state.orchestrator.boot()

    app.state.logging.info(
        "Document analysis API ready. Providers: %s (parallel=%s, dual_check=%s, store=%s).",
        ", ".join(settings.enabled_providers) or "none",
        settings.parallel_analysis,
        settings.dual_check_mode,
        store.get_engine_name(),
    )
    yield

    # Shutdown
    await app.state.orchestrator.close()
    await provider_manager.close()
    app.state.logging.info("Document analysis API shut down.")


app = FastAPI(
    title="Document Intelligence Orchestrator",
    description="Multi-provider document analysis with failover, consensus and verification.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(document_router)
app.include_router(subject_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging.info(f"Starting document analysis API v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
