from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.clients.provider.openrouter.ProviderClientOpenrouter import build_openai_user_content, extract_openai_message
from shared.helper.HelperConfig import HelperConfig
from shared.models.analysis import AnalyzeOptions
from shared.models.config import EnvConfig
from shared.models.errors import ProviderError


class ProviderClientLmstudio(ProviderClientInterface):
    """Local LM Studio server (OpenAI-compatible API).

    When no model is configured, the first model reported by ``/v1/models``
    is used and cached for the lifetime of the client.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        base_url = self.get_config_val("BASE_URL", default="http://localhost:1234", val_type="string")
        self._base_url = base_url if base_url.startswith("http") else f"http://{base_url}"
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self.model: str | None = self.get_config_val("MODEL", default="", val_type="string") or None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Lmstudio"

    def get_max_images(self) -> int:
        return 3

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:1234"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def _get_endpoint_models(self) -> str:
        return "/v1/models"

    def _get_endpoint_analyze(self) -> str:
        return "/v1/chat/completions"

    ################ PAYLOAD BUILDER ##################
    async def get_analyze_payload(self, prompt: str, images: list[str], options: AnalyzeOptions) -> dict:
        model = await self._resolve_model()
        return {
            "model": model,
            "messages": [{"role": "user", "content": build_openai_user_content(prompt, images)}],
            "temperature": 0.2,
            "max_tokens": 2000,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_response_text(self, response_data: dict) -> str:
        return extract_openai_message(response_data, "LM Studio")

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_models(self) -> list[str]:
        """List the model ids currently loaded in LM Studio."""
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_models(), raise_on_error=True)
        return [m.get("id") for m in response.json().get("data", []) if m.get("id")]

    async def _resolve_model(self) -> str:
        """Return the configured model, discovering the loaded one if unset.

        Raises:
            ProviderError: Permanent, if no model is loaded.
        """
        if self.model:
            return self.model
        models = await self.do_fetch_models()
        if not models:
            raise ProviderError("No model loaded in LM Studio. Please load a model first.", provider=self.get_engine_name(), transient=False)
        self.model = models[0]
        self.logging.info("LM Studio: using loaded model '%s'.", self.model)
        return self.model
