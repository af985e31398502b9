from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles
from typing import Any
from shared.models.config import EnvConfig
from shared.models.errors import ProviderError

from shared.helper.HelperConfig import HelperConfig

# Status codes worth retrying: request timeout, rate limit, server side outages
TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})
TRANSIENT_BODY_MARKERS = ("RESOURCE_EXHAUSTED", "rate limit", "overloaded")


def is_transient_response(status_code: int, body: str) -> bool:
    """Classify a failed HTTP response as transient (retryable) or permanent."""
    if status_code in TRANSIENT_STATUS_CODES:
        return True
    lowered = (body or "").lower()
    return any(marker.lower() in lowered for marker in TRANSIENT_BODY_MARKERS)


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=300.0)

        # client and config
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "provider"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "provider"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "gemini"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "Gemini"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the client.

        Returns:
            list[EnvConfig]: A list containing the details of each required configuration key.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "PROVIDER_GEMINI_API_KEY"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend, if a credential is set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend (e.g. "http://localhost:1234").
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/v1/models").
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the backend is reachable and accepts our credentials.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport: Optional transport, e.g. ``httpx.MockTransport`` in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, …).
            content: Raw bytes / stream body.
            data: Form-encoded body.
            files: Multipart file upload.
            json: JSON-serialisable body.
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise a ProviderError on non-2xx responses.

        Returns:
            The raw httpx.Response.

        Raises:
            ProviderError: Transient for timeouts and transport failures; for
                non-2xx responses (when raise_on_error) classified by status.
            RuntimeError: If the client has not been booted.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "timeout": self.timeout,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif data is not None:
            kwargs["data"] = data
        elif files is not None:
            kwargs["files"] = files
        elif json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderError(f"Request to {kwargs['url']} timed out: {exc}", provider=self.get_engine_name(), transient=True)
        except httpx.TransportError as exc:
            raise ProviderError(f"Request to {kwargs['url']} failed: {exc}", provider=self.get_engine_name(), transient=True)

        if raise_on_error and response.status_code >= 300:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text[:300],
            )
            raise ProviderError(
                f"Request to {kwargs['url']} failed with status {response.status_code}",
                provider=self.get_engine_name(),
                transient=is_transient_response(response.status_code, response.text),
                status_code=response.status_code,
            )

        return response
