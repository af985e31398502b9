"""Batch runner entry point.

Ingests the given files, waits until every document has been analysed (and
verified, in dual-check mode) and logs a per-document summary. Documents
restored from a persistent store are resumed as well.

Usage:
    python -m services.document_analysis.analysis_runner <file> [<file> ...]
"""

import asyncio
import os
import sys

from services.document_analysis.AnalysisOrchestrator import AnalysisOrchestrator
from shared.clients.extract.plaintext.ExtractClientPlaintext import ExtractClientPlaintext
from shared.clients.provider.ProviderClientManager import ProviderClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import STATUS_COLORS, setup_logging
from shared.models.document import DocumentStatus
from shared.models.config import AnalysisSettings


async def main(paths: list[str]) -> int:
    """Run the analysis pipeline over ``paths``. Returns the process exit code."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    settings = AnalysisSettings.from_helper_config(config)
    provider_manager = ProviderClientManager(helper_config=config, settings=settings)
    store = StoreClientManager(helper_config=config).get_client()
    orchestrator = AnalysisOrchestrator(
        helper_config=config,
        settings=settings,
        provider_manager=provider_manager,
        store=store,
        extractor=ExtractClientPlaintext(helper_config=config),
    )

    try:
        await provider_manager.boot()
        await orchestrator.boot()

        for path in paths:
            with open(path, "rb") as f:
                data = f.read()
            await orchestrator.ingest(os.path.basename(path), data=data)

        await orchestrator.wait_idle()

        for record in orchestrator.list_documents():
            logger.info(
                "%s [%s] lineage=%s %s",
                record.name,
                record.status.value,
                ", ".join(record.lineage) or "-",
                record.error_message or "",
                color=STATUS_COLORS.get(record.status.value),
            )
        logger.info("Tracked subjects: %d", len(orchestrator.list_subjects()))
        return 1 if orchestrator.list_documents(DocumentStatus.ERROR) else 0
    finally:
        await orchestrator.close()
        await provider_manager.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
