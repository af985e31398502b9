from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.analysis import AnalyzeOptions
from shared.models.config import EnvConfig

SYSTEM_PROMPT = (
    "You are a professional OSINT investigator. You analyze documents and images "
    "from case files. You only output valid JSON."
)


def extract_openai_message(response_data: dict, engine: str) -> str:
    """Reply text of an OpenAI-compatible chat completion response.

    Raises:
        ValueError: If the response carries no choices or no message content.
    """
    choices = response_data.get("choices") or []
    if not choices:
        raise ValueError("%s returned an empty response. Response keys: %s" % (engine, list(response_data.keys())))
    content = (choices[0].get("message") or {}).get("content")
    if isinstance(content, list):
        content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
    if content is None:
        raise ValueError("%s response does not contain a message." % engine)
    return content


def build_openai_user_content(prompt: str, images: list[str]) -> list[dict]:
    """OpenAI vision message content: the prompt followed by data-URL images."""
    content: list[dict] = [{"type": "text", "text": prompt}]
    content.extend(
        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{img}"}}
        for img in images
    )
    return content


class ProviderClientOpenrouter(ProviderClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://openrouter.ai/api", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self.model = self.get_config_val("MODEL", default="google/gemini-2.0-flash-001", val_type="string")
        self._app_title = self.get_config_val("APP_TITLE", default="Nexus Document Intelligence", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openrouter"

    def get_max_text_chars(self) -> int:
        return 30000

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="MODEL", val_type="string", default="google/gemini-2.0-flash-001"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}", "X-Title": self._app_title}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def _get_endpoint_analyze(self) -> str:
        return "/v1/chat/completions"

    ################ PAYLOAD BUILDER ##################
    async def get_analyze_payload(self, prompt: str, images: list[str], options: AnalyzeOptions) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_openai_user_content(prompt, images)},
            ],
            "response_format": {"type": "json_object"},
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_response_text(self, response_data: dict) -> str:
        return extract_openai_message(response_data, "OpenRouter")
