"""Analysis orchestrator.

Wires ingestion, the primary scheduler, the execution policy, subject
aggregation, persistence and the verification side channel:

    ingest -> pending -> [primary worker] processing
        -> policy (failover | consensus)
        -> tracked subjects updated
        -> completed, or verifying -> [verification worker] -> completed
        -> error when every provider failed

Documents are owned by DocumentState; workers only change them through its
serialized update path.
"""

import asyncio
import uuid

from services.document_analysis.DocumentState import DocumentState
from services.document_analysis.ExecutionPolicy import ExecutionPolicy
from services.document_analysis.Scheduler import WorkScheduler
from services.document_analysis.SubjectAggregator import SubjectAggregator
from shared.clients.extract.ExtractClientInterface import ExtractClientInterface
from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.clients.provider.ProviderClientManager import ProviderClientManager
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.analysis import AnalysisResult, AnalyzeOptions, Entity, VerificationTarget
from shared.models.config import AnalysisSettings
from shared.models.document import DocumentRecord, DocumentStatus
from shared.models.errors import AllProvidersFailed, DocumentNotFound, NoProvidersEnabled, SourceMissing
from shared.models.subject import TrackedSubject

RETRYABLE_STATUSES = (DocumentStatus.ERROR, DocumentStatus.PENDING, DocumentStatus.COMPLETED)


class AnalysisOrchestrator:
    def __init__(
        self,
        helper_config: HelperConfig,
        settings: AnalysisSettings,
        provider_manager: ProviderClientManager,
        store: StoreClientInterface,
        extractor: ExtractClientInterface,
    ) -> None:
        self._helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.settings = settings
        self._providers = provider_manager
        self._store = store
        self._extractor = extractor

        self.state = DocumentState(helper_config, store)
        self.policy = ExecutionPolicy(helper_config, provider_manager, settings)
        self.aggregator = SubjectAggregator(settings)
        self.primary = WorkScheduler(helper_config, "primary", settings.primary_concurrency, self._process_document)
        self.verification = WorkScheduler(helper_config, "verification", settings.verification_concurrency, self._verify_document)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Prepare the store and restore persisted documents."""
        await self._store.boot()
        await self.restore()

    async def close(self) -> None:
        await self.primary.close()
        await self.verification.close()
        await self.state.close()
        await self._store.close()

    async def restore(self) -> list[str]:
        """Reload persisted state and resolve records left mid-flight.

        In-flight work is not durable: ``processing`` records go back to
        pending and are re-queued, ``verifying`` records complete without
        verification. A pending or completed record that has neither
        extracted text nor a readable source blob is marked as error so it
        gets re-ingested.

        Returns:
            list[str]: Ids queued for processing.
        """
        records = await self._store.load_all()
        subjects = await self._store.load_subjects()
        await self.state.load(records, subjects)

        requeue: list[str] = []
        for record in records:
            if record.status == DocumentStatus.VERIFYING:
                await self.state.transition(record.id, DocumentStatus.COMPLETED)
                continue
            if record.status == DocumentStatus.PROCESSING:
                record = await self.state.transition(record.id, DocumentStatus.PENDING)

            if record.status in (DocumentStatus.PENDING, DocumentStatus.COMPLETED) and await self._source_missing(record):
                await self.state.transition(record.id, DocumentStatus.ERROR, error_message=str(SourceMissing(record.id)))
            elif record.status == DocumentStatus.PENDING:
                requeue.append(record.id)

        self.logging.info("Restored %d document(s), %d tracked subject(s).", len(records), len(subjects))
        if requeue:
            try:
                self._providers.get_clients()
            except NoProvidersEnabled as exc:
                self.logging.error("Not resuming %d pending document(s): %s", len(requeue), exc)
                return []
            self.primary.enqueue_many(requeue)
            self.logging.info("Re-queued %d pending document(s).", len(requeue))
        return requeue

    def apply_settings(self, settings: AnalysisSettings) -> None:
        """Switch policy flags, patterns and worker limits for future runs."""
        self._providers.apply_settings(settings)
        self.settings = settings
        self.policy = ExecutionPolicy(self._helper_config, self._providers, settings)
        self.aggregator = SubjectAggregator(settings)
        self.primary.set_max_workers(settings.primary_concurrency)
        self.verification.set_max_workers(settings.verification_concurrency)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_document(self, doc_id: str) -> DocumentRecord:
        return self.state.get(doc_id)

    def list_documents(self, status: DocumentStatus | None = None) -> list[DocumentRecord]:
        return self.state.list_documents(status)

    def list_subjects(self) -> list[TrackedSubject]:
        return self.state.list_subjects()

    def get_status(self) -> dict:
        return {
            "documents": self.state.count_by_status(),
            "primary": {
                "active": self.primary.active_count,
                "max_workers": self.primary.max_workers,
                "queued": self.primary.queue_size,
            },
            "verification": {
                "active": self.verification.active_count,
                "max_workers": self.verification.max_workers,
                "queued": self.verification.queue_size,
            },
            "providers": self._providers.get_names(),
            "enabled_providers": list(self.settings.enabled_providers),
            "parallel_analysis": self.settings.parallel_analysis,
            "dual_check_mode": self.settings.dual_check_mode,
            "tracked_subjects": len(self.state.list_subjects()),
        }

    ##########################################
    ################ INGEST ##################
    ##########################################

    async def ingest(
        self,
        name: str,
        data: bytes | None = None,
        text: str | None = None,
        images: list[str] | None = None,
    ) -> DocumentRecord:
        """Create a pending document and queue it.

        Either source bytes (extracted by the worker) or already extracted
        text must be given.

        Raises:
            NoProvidersEnabled: Before anything is stored, if no provider is enabled.
            ValueError: If neither data nor text is given.
        """
        self._providers.get_clients()
        if not data and not (text and text.strip()):
            raise ValueError(f"Document '{name}' has no content.")

        doc_id = uuid.uuid4().hex[:12]
        blob_handle = await self._store.put_blob(doc_id, data) if data else None
        record = DocumentRecord(
            id=doc_id,
            name=name,
            text=text or "",
            images=images or [],
            blob_handle=blob_handle,
        )
        await self.state.add(record)
        self.primary.enqueue(doc_id)
        self.logging.info("Ingested document %s (%s).", doc_id, name)
        return record

    async def retry(self, doc_id: str) -> bool:
        """Re-queue a failed, pending or completed document.

        Tracked subjects derived from earlier runs are kept.

        Returns:
            bool: False if the document is already scheduled or in a state
                that cannot be retried (processing, verifying).

        Raises:
            NoProvidersEnabled: If no provider is enabled.
            DocumentNotFound: If the id is unknown.
        """
        self._providers.get_clients()
        record = self.state.get(doc_id)
        if self.primary.is_scheduled(doc_id) or record.status not in RETRYABLE_STATUSES:
            return False
        if record.status != DocumentStatus.PENDING:
            await self.state.transition(doc_id, DocumentStatus.PENDING, error_message=None)
        return self.primary.enqueue(doc_id)

    async def retry_failed(self) -> int:
        """Re-queue every document in error or left pending. Returns the count."""
        self._providers.get_clients()
        queued = 0
        for record in self.state.list_documents():
            if record.status in (DocumentStatus.ERROR, DocumentStatus.PENDING) and await self.retry(record.id):
                queued += 1
        self.logging.info("Restarted analysis for %d document(s).", queued)
        return queued

    async def clear(self) -> None:
        """Drop queued work and wipe all documents and subjects."""
        self.primary.clear_queue()
        self.verification.clear_queue()
        await self.state.clear()
        self.logging.warning("Archive purged.")

    async def wait_idle(self) -> None:
        """Wait until both schedulers have drained."""
        while True:
            await self.primary.wait_idle()
            await self.verification.wait_idle()
            if self.primary.queue_size == 0 and self.primary.active_count == 0:
                break
        await self.state.flush()

    ##########################################
    ############ PRIMARY WORKER ##############
    ##########################################

    async def _process_document(self, doc_id: str) -> None:
        """Primary worker: extract, analyse, aggregate, then complete or hand off."""
        try:
            record = await self.state.transition(doc_id, DocumentStatus.PROCESSING, error_message=None)
        except DocumentNotFound:
            self.logging.warning("Document %s vanished before processing.", doc_id)
            return

        try:
            text, images = await self._load_content(record)
            outcome = await self.policy.do_run(doc_id, text, images)
            result = outcome.result

            await self.state.update_subjects(
                lambda subjects: self.aggregator.aggregate(subjects, doc_id, record.name, result.entities)
            )

            is_poi = bool(result.flagged_subjects) or any(e.notable for e in result.entities)
            targets = self.aggregator.get_high_value_entities(result.entities) if self.settings.dual_check_mode else []
            if targets:
                await self.state.transition(
                    doc_id, DocumentStatus.VERIFYING, analysis=result, lineage=outcome.lineage, is_poi=is_poi
                )
                self.verification.enqueue(doc_id)
            else:
                await self.state.transition(
                    doc_id, DocumentStatus.COMPLETED, analysis=result, lineage=outcome.lineage, is_poi=is_poi
                )
        except DocumentNotFound:
            self.logging.warning("Document %s was removed while processing.", doc_id)
        except Exception as exc:
            if isinstance(exc, (AllProvidersFailed, NoProvidersEnabled, SourceMissing)):
                self.logging.error("Document %s failed: %s", doc_id, exc)
            else:
                self.logging.exception("Document %s failed unexpectedly.", doc_id)
            lineage = [name for name, _ in exc.errors] if isinstance(exc, AllProvidersFailed) else []
            try:
                await self.state.transition(doc_id, DocumentStatus.ERROR, error_message=str(exc), lineage=lineage)
            except DocumentNotFound:
                pass

    async def _load_content(self, record: DocumentRecord) -> tuple[str, list[str]]:
        """Return the document text and images, extracting from the blob if needed.

        Raises:
            SourceMissing: If there is neither extracted text nor a readable blob.
        """
        if record.text:
            return record.text, record.images

        data = await self._store.get_blob(record.blob_handle) if record.blob_handle else None
        if data is None:
            raise SourceMissing(record.id)

        text, images = await self._extractor.do_extract(data)
        await self.state.update(record.id, lambda r: r.with_changes(text=text, images=images))
        self.logging.debug("Extracted document %s: %d chars, %d image(s).", record.id, len(text), len(images))
        return text, images

    async def _source_missing(self, record: DocumentRecord) -> bool:
        if record.text:
            return False
        if not record.blob_handle:
            return True
        return await self._store.get_blob(record.blob_handle) is None

    ##########################################
    ########## VERIFICATION WORKER ###########
    ##########################################

    def _select_verifier(self) -> ProviderClientInterface:
        """Preferred verifier if it is enabled, else the highest priority provider.

        Raises:
            NoProvidersEnabled: If no provider is enabled.
        """
        preferred = (self.settings.preferred_verifier or "auto").lower()
        if preferred != "auto":
            client = self._providers.get_client(preferred)
            if client is not None:
                return client
            self.logging.warning("Preferred verifier '%s' is not enabled; using priority order.", preferred)
        return self._providers.get_clients()[0]

    async def _verify_document(self, doc_id: str) -> None:
        """Verification worker. Always ends with the document completed."""
        try:
            record = self.state.get(doc_id)
        except DocumentNotFound:
            return
        if record.status != DocumentStatus.VERIFYING:
            return

        verifier_name = "verifier"
        target: Entity | None = None
        try:
            targets = self.aggregator.get_high_value_entities(record.analysis.entities if record.analysis else [])
            if not targets:
                raise ValueError("no high-value entity to verify")
            target = targets[0]
            verifier = self._select_verifier()
            verifier_name = verifier.get_engine_name()

            options = AnalyzeOptions(verification_target=VerificationTarget(name=target.name, role=target.role, context=target.context))
            text, images = await self._load_content(record)
            result = await verifier.do_analyze(text, images, options)
            confirmed = self._is_confirmed(result, target)
            note = "%s: %s (%s)." % ("Confirmed" if confirmed else "Could not confirm", target.name, target.role or "unknown role")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logging.warning("Verification of document %s failed: %s", doc_id, exc)
            subject = target.name if target else "finding"
            note = "Could not confirm %s (verification failed: %s)." % (subject, exc)

        self.logging.info("Document %s verification by '%s': %s", doc_id, verifier_name, note)
        try:
            await self.state.update(doc_id, lambda r: self._complete_verification(r, verifier_name, note))
        except DocumentNotFound:
            pass

    @staticmethod
    def _is_confirmed(result: AnalysisResult, target: Entity) -> bool:
        if result.degraded:
            return False
        return any(entity.key == target.key for entity in result.entities)

    @staticmethod
    def _complete_verification(record: DocumentRecord, verifier_name: str, note: str) -> DocumentRecord:
        if record.status != DocumentStatus.VERIFYING:
            return record
        analysis = record.analysis
        if analysis is not None:
            summary = f"{analysis.summary}\n\n[Verification by {verifier_name}] {note}"
            analysis = analysis.model_copy(update={"summary": summary})
        return record.with_status(
            DocumentStatus.COMPLETED,
            analysis=analysis,
            lineage=[*record.lineage, f"{verifier_name} (verification)"],
        )
