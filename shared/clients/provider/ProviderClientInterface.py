import asyncio
from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.ResponseParser import recover_result
from shared.models.analysis import AnalysisResult, AnalyzeOptions, VerificationTarget
from shared.models.errors import ProviderError

ANALYSIS_PROMPT = """TASK: ANALYZE CASE FILE DOCUMENT.
OUTPUT ONLY VALID JSON.

1. summary: A precise summary of the document's nature and core content.
2. entities: List EVERY person mentioned as objects with name, role, context and
   isFamous. Set isFamous: true for high-profile individuals (political figures,
   celebrities, billionaires).
3. flaggedPOIs: Names of persons of specific interest.
4. keyInsights: Direct revelations or significant details found in the text or images.
5. locations, organizations: Places and organizations mentioned.
6. documentDate: The document date, if found.
7. sentiment: One word describing the tone.
8. IMAGES: If image data is provided, describe what is seen (e.g. "Photograph of
   person X", "Handwritten ledger") as key insights.

DOCUMENT CONTENT:
{text}
"""

VERIFICATION_PROMPT = """TASK: INDEPENDENT VERIFICATION.
OUTPUT ONLY VALID JSON.

Another analyst reported that the document below mentions:
  name: {name}
  role: {role}
  context: {context}

Read the document independently. If it really mentions this person in this
capacity, include them in "entities" (name, role, context, isFamous). Do not
include them otherwise. Also return "summary" with one sentence stating whether
the finding is confirmed and why.

DOCUMENT CONTENT:
{text}
"""


class ProviderClientInterface(ClientInterface):
    """Base class of every analysis backend.

    Subclasses provide endpoints, the backend specific request body and the
    extraction of the reply text; this class owns prompt building, retry of
    transient failures and recovery of the structured result.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # retry policy, shared by all providers
        self.max_attempts = max(1, int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_ATTEMPTS", default=3)))
        self.retry_backoff = float(helper_config.get_number_val(f"{self.get_client_type().upper()}_RETRY_BACKOFF", default=2))

        # per provider enrichment switch
        self.use_search = self.get_config_val("USE_SEARCH", default=False, val_type="bool")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "provider"

    def get_max_text_chars(self) -> int:
        """Max number of document characters sent to the backend."""
        return 40000

    def get_max_images(self) -> int:
        """Max number of page images sent to the backend."""
        return 5

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_analyze(self) -> str:
        """Returns the endpoint path for analysis requests (e.g. "/v1/chat/completions")."""
        pass

    ################ PAYLOAD BUILDER ##################
    def build_prompt(self, text: str, options: AnalyzeOptions) -> str:
        """Render the analysis or verification prompt for a document.

        Args:
            text (str): Extracted document text (truncated to get_max_text_chars()).
            options (AnalyzeOptions): Carries the optional verification target.

        Returns:
            str: The prompt text.
        """
        text = (text or "")[: self.get_max_text_chars()]
        target: VerificationTarget | None = options.verification_target
        if target is not None:
            return VERIFICATION_PROMPT.format(
                name=target.name,
                role=target.role or "unknown",
                context=target.context or "none given",
                text=text,
            )
        return ANALYSIS_PROMPT.format(text=text)

    @abstractmethod
    async def get_analyze_payload(self, prompt: str, images: list[str], options: AnalyzeOptions) -> dict:
        """Build the backend-specific request body for an analysis request.

        Args:
            prompt (str): The rendered prompt.
            images (list[str]): Base64 JPEG page images, already truncated.
            options (AnalyzeOptions): Call options (e.g. search enrichment).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_response_text(self, response_data: dict) -> str:
        """Extract the model reply text from a raw backend response.

        Raises:
            ValueError: If the response does not contain a reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_analyze(self, text: str, images: list[str] | None = None, options: AnalyzeOptions | None = None) -> AnalysisResult:
        """Analyse a document, retrying transient failures.

        Transient errors (rate limits, outages, timeouts) are retried up to
        max_attempts times with exponential backoff. Permanent errors are
        raised at once. Unparseable replies never raise; they come back as a
        degraded result.

        Args:
            text (str): Extracted document text.
            images (list[str] | None): Base64 page images.
            options (AnalyzeOptions | None): Verification target / enrichment flag.

        Returns:
            AnalysisResult: The recovered result.

        Raises:
            ProviderError: Permanent failure, or the last transient failure
                once all attempts are used up.
        """
        options = options or AnalyzeOptions()
        if self.use_search and not options.use_search:
            options = options.model_copy(update={"use_search": True})

        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(
                    self._do_analyze_once(text, images or [], options),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                error = ProviderError(f"Call timed out after {self.timeout}s", provider=self.get_engine_name(), transient=True)
            except ProviderError as exc:
                error = exc

            if not error.transient or attempt >= self.max_attempts:
                raise error

            delay = self.retry_backoff * (2 ** (attempt - 1))
            self.logging.warning(
                "Provider '%s' transient failure (attempt %d/%d): %s. Retrying in %.1fs.",
                self.get_engine_name(), attempt, self.max_attempts, error.message, delay,
            )
            await asyncio.sleep(delay)

    async def _do_analyze_once(self, text: str, images: list[str], options: AnalyzeOptions) -> AnalysisResult:
        """Single backend call without retry."""
        prompt = self.build_prompt(text, options)
        body = await self.get_analyze_payload(prompt, images[: self.get_max_images()], options)
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_analyze(),
            json=body,
            raise_on_error=True,
        )
        try:
            reply = self.extract_response_text(response.json())
        except ValueError as exc:
            raise ProviderError(f"Malformed response: {exc}", provider=self.get_engine_name(), transient=False)

        result = recover_result(reply, provider=self.get_engine_name())
        if result.degraded:
            self.logging.warning(
                "Provider '%s' returned non-JSON output; using degraded result.", self.get_engine_name()
            )
        return result
