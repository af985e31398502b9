"""
Shared fixtures for the unit tests.

Fixture overview:
  helper_config     : HelperConfig with in-memory overrides (no retry backoff)
  make_provider     : factory for scripted fake providers
  make_orchestrator : factory wiring an orchestrator over a memory store

Fake providers subclass ProviderClientInterface and only replace the single
backend call, so the retry loop of the real base class stays under test.
"""

import asyncio
import logging

import pytest

from services.document_analysis.AnalysisOrchestrator import AnalysisOrchestrator
from shared.clients.extract.plaintext.ExtractClientPlaintext import ExtractClientPlaintext
from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.clients.provider.ProviderClientManager import ProviderClientManager
from shared.clients.store.memory.StoreClientMemory import StoreClientMemory
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.analysis import AnalysisResult, AnalyzeOptions
from shared.models.config import AnalysisSettings, EnvConfig


class FakeProvider(ProviderClientInterface):
    """Provider whose backend call replays a script.

    Script items are AnalysisResult instances (returned) or exceptions
    (raised). The last item repeats once the script is exhausted; an empty
    script answers with a plain summary.
    """

    def __init__(self, helper_config: HelperConfig, name: str, script: list | None = None):
        self._name = name
        super().__init__(helper_config=helper_config)
        self.script = list(script or [])
        self.calls: list[AnalyzeOptions] = []
        self.gate: asyncio.Event | None = None
        self.running = 0
        self.max_running = 0

    def _get_engine_name(self) -> str:
        return self._name

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _get_auth_header(self) -> dict:
        return {}

    def _get_base_url(self) -> str:
        return f"http://{self._name}.invalid"

    def _get_endpoint_healthcheck(self) -> str:
        return "/health"

    def _get_endpoint_analyze(self) -> str:
        return "/analyze"

    async def get_analyze_payload(self, prompt: str, images: list[str], options: AnalyzeOptions) -> dict:
        return {"prompt": prompt}

    def extract_response_text(self, response_data: dict) -> str:
        return response_data["text"]

    async def do_healthcheck(self):
        return None

    async def _do_analyze_once(self, text: str, images: list[str], options: AnalyzeOptions) -> AnalysisResult:
        self.calls.append(options)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            item = self.script.pop(0) if len(self.script) > 1 else (self.script[0] if self.script else None)
            if item is None:
                return AnalysisResult(summary=f"Summary by {self._name}")
            if isinstance(item, BaseException):
                raise item
            return item
        finally:
            self.running -= 1


@pytest.fixture
def logger():
    return ColorLogger(logging.getLogger("tests"))


@pytest.fixture
def helper_config(logger):
    return HelperConfig(logger=logger, overrides={
        "PROVIDER_RETRY_BACKOFF": "0",
        "PROVIDER_MAX_ATTEMPTS": "3",
        "PROVIDER_TIMEOUT": "5",
    })


@pytest.fixture
def make_provider(helper_config):
    def _make(name: str, script: list | None = None) -> FakeProvider:
        return FakeProvider(helper_config, name, script)
    return _make


@pytest.fixture
def make_settings():
    def _make(providers: list[str], **changes) -> AnalysisSettings:
        return AnalysisSettings(provider_order=providers, enabled_providers=list(providers), **changes)
    return _make


@pytest.fixture
def memory_store(helper_config):
    return StoreClientMemory(helper_config=helper_config)


@pytest.fixture
async def make_orchestrator(helper_config, make_settings, memory_store):
    created: list[AnalysisOrchestrator] = []

    async def _make(providers: list[FakeProvider], store=None, boot: bool = True, **settings_changes) -> AnalysisOrchestrator:
        settings = make_settings([p.get_engine_name() for p in providers], **settings_changes)
        manager = ProviderClientManager(helper_config, settings, clients=providers)
        orchestrator = AnalysisOrchestrator(
            helper_config=helper_config,
            settings=settings,
            provider_manager=manager,
            store=store or memory_store,
            extractor=ExtractClientPlaintext(helper_config=helper_config),
        )
        if boot:
            await orchestrator.boot()
        created.append(orchestrator)
        return orchestrator

    yield _make

    for orchestrator in created:
        await orchestrator.close()
