"""Execution policies: how the enabled providers are applied to one document.

- Sequential failover: providers in priority order, first non-empty result wins.
- Parallel consensus: all providers at once, successful results merged.
"""

import asyncio
from dataclasses import dataclass, field

from services.document_analysis.ConsensusMerger import merge_results
from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.clients.provider.ProviderClientManager import ProviderClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.models.analysis import AnalysisResult
from shared.models.config import AnalysisSettings
from shared.models.errors import AllProvidersFailed


@dataclass
class PolicyOutcome:
    """Final result of one policy run and the providers behind it."""

    result: AnalysisResult
    lineage: list[str] = field(default_factory=list)


class ExecutionPolicy:
    def __init__(self, helper_config: HelperConfig, provider_manager: ProviderClientManager, settings: AnalysisSettings):
        self.logging = helper_config.get_logger()
        self._providers = provider_manager
        self._settings = settings

    ##########################################
    ################# CORE ###################
    ##########################################

    async def do_run(self, doc_id: str, text: str, images: list[str]) -> PolicyOutcome:
        """Analyse a document with the configured policy.

        Raises:
            NoProvidersEnabled: If no provider is enabled.
            AllProvidersFailed: If no provider produced a result.
        """
        clients = self._providers.get_clients()
        if self._settings.parallel_analysis:
            return await self.do_parallel(doc_id, clients, text, images)
        return await self.do_sequential(doc_id, clients, text, images)

    async def do_sequential(self, doc_id: str, clients: list[ProviderClientInterface], text: str, images: list[str]) -> PolicyOutcome:
        """Try providers in priority order until one returns a summary.

        Every attempted provider is recorded in the lineage, in order.
        """
        lineage: list[str] = []
        errors: list[tuple[str, str]] = []

        for client in clients:
            name = client.get_engine_name()
            lineage.append(name)
            try:
                result = await client.do_analyze(text, images)
            except Exception as exc:
                self.logging.warning("Document %s: provider '%s' failed: %s. Trying next provider.", doc_id, name, exc)
                errors.append((name, str(exc)))
                continue

            if not result.summary.strip():
                self.logging.warning("Document %s: provider '%s' returned an empty summary.", doc_id, name)
                errors.append((name, "empty summary"))
                continue

            self.logging.info("Document %s analysed by '%s' (attempt %d).", doc_id, name, len(lineage))
            return PolicyOutcome(result=merge_results([(name, result)]), lineage=lineage)

        raise AllProvidersFailed(errors)

    async def do_parallel(self, doc_id: str, clients: list[ProviderClientInterface], text: str, images: list[str]) -> PolicyOutcome:
        """Call all providers concurrently and merge the successful results.

        Each call settles on its own; a failing provider never cancels the
        others. Lineage lists the successful providers in priority order.
        """
        names = [client.get_engine_name() for client in clients]
        settled = await asyncio.gather(
            *[client.do_analyze(text, images) for client in clients],
            return_exceptions=True,
        )

        successes: list[tuple[str, AnalysisResult]] = []
        errors: list[tuple[str, str]] = []
        for name, outcome in zip(names, settled):
            if isinstance(outcome, BaseException):
                self.logging.warning("Document %s: provider '%s' failed in parallel run: %s", doc_id, name, outcome)
                errors.append((name, str(outcome)))
            elif not outcome.summary.strip():
                errors.append((name, "empty summary"))
            else:
                successes.append((name, outcome))

        if not successes:
            raise AllProvidersFailed(errors)

        self.logging.info(
            "Document %s: parallel run, %d/%d providers succeeded.", doc_id, len(successes), len(names)
        )
        return PolicyOutcome(result=merge_results(successes), lineage=[name for name, _ in successes])
