from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.analysis import AnalyzeOptions
from shared.models.config import EnvConfig


class ProviderClientGemini(ProviderClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self.model = self.get_config_val("MODEL", default="gemini-3-flash-preview", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="MODEL", val_type="string", default="gemini-3-flash-preview"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1beta/models"

    def _get_endpoint_analyze(self) -> str:
        return f"/v1beta/models/{self.model}:generateContent"

    ################ PAYLOAD BUILDER ##################
    async def get_analyze_payload(self, prompt: str, images: list[str], options: AnalyzeOptions) -> dict:
        """Build the generateContent request body.

        Images are sent as inline JPEG parts. With search enrichment the
        google_search tool is attached; JSON response mode cannot be combined
        with tools, so it is only requested without search.
        """
        parts: list[dict] = [{"text": prompt}]
        parts.extend({"inline_data": {"mime_type": "image/jpeg", "data": img}} for img in images)

        body: dict = {"contents": [{"role": "user", "parts": parts}]}
        if options.use_search:
            body["tools"] = [{"google_search": {}}]
        else:
            body["generationConfig"] = {"responseMimeType": "application/json"}
        return body

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_response_text(self, response_data: dict) -> str:
        """Concatenate the text parts of the first candidate.

        Raises:
            ValueError: If the response has no candidate with text.
        """
        candidates = response_data.get("candidates") or []
        if not candidates:
            feedback = response_data.get("promptFeedback", {})
            raise ValueError("Gemini returned no candidates (block reason: %s)" % feedback.get("blockReason", "unknown"))
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text:
            raise ValueError("Gemini candidate contains no text parts.")
        return text
