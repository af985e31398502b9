from shared.helper.HelperConfig import HelperConfig
from shared.clients.provider.ProviderClientInterface import ProviderClientInterface
from shared.models.config import AnalysisSettings
from shared.models.errors import NoProvidersEnabled


class ProviderClientManager:
    """
    Manager class to instantiate the enabled analysis providers in priority order.

    Providers are looked up by name: engine "gemini" maps to
    ``shared.clients.provider.gemini.ProviderClientGemini``. Disabled engines
    are never instantiated, so their credentials are not required.
    """

    def __init__(self, helper_config: HelperConfig, settings: AnalysisSettings, clients: list[ProviderClientInterface] | None = None):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.settings = settings
        self.clients = clients if clients is not None else self._initialize_clients()

    def _initialize_clients(self) -> list[ProviderClientInterface]:
        """
        Instantiates a client for every enabled engine, keeping priority order.

        Returns:
            list[ProviderClientInterface]: The provider clients.

        Raises:
            ValueError: If an engine is unsupported or cannot be imported.
        """
        clients = []
        for engine in self.settings.enabled_providers:
            engine = engine.strip().lower().capitalize()
            class_name = f"ProviderClient{engine}"
            try:
                module = __import__(
                    f"shared.clients.provider.{engine.lower()}.{class_name}",
                    fromlist=[class_name],
                )
                client_class = getattr(module, class_name)
                clients.append(client_class(helper_config=self.helper_config))
                self.logging.debug("Instantiated provider client for engine: %s", engine)
            except (ImportError, AttributeError) as e:
                raise ValueError("Unsupported provider engine '%s'. Error: %s" % (engine, e))
        return clients

    def apply_settings(self, settings: AnalysisSettings) -> None:
        """Swap in new settings. Only already instantiated engines can be enabled."""
        unknown = [e for e in settings.enabled_providers if e not in {c.get_engine_name() for c in self.clients}]
        if unknown:
            raise ValueError("Provider(s) %s were not configured at startup and cannot be enabled." % ", ".join(unknown))
        self.settings = settings

    def get_clients(self) -> list[ProviderClientInterface]:
        """
        Returns the enabled provider clients, highest priority first.

        Raises:
            NoProvidersEnabled: If no provider is enabled.
        """
        enabled = set(self.settings.enabled_providers)
        order = {name: index for index, name in enumerate(self.settings.provider_order)}
        clients = [c for c in self.clients if c.get_engine_name() in enabled]
        clients.sort(key=lambda c: order.get(c.get_engine_name(), len(order)))
        if not clients:
            raise NoProvidersEnabled()
        return clients

    def get_client(self, name: str) -> ProviderClientInterface | None:
        """Return the enabled client with the given engine name, if any."""
        name = name.strip().lower()
        if name not in self.settings.enabled_providers:
            return None
        for client in self.clients:
            if client.get_engine_name() == name:
                return client
        return None

    def get_names(self) -> list[str]:
        """Names of all instantiated clients, enabled or not."""
        return [client.get_engine_name() for client in self.clients]

    async def boot(self) -> None:
        """Boot every client. A client failing its healthcheck stays booted but is logged."""
        for client in self.clients:
            await client.boot()
            try:
                await client.do_healthcheck()
            except Exception as e:
                self.logging.warning("Healthcheck failed for provider '%s': %s", client.get_engine_name(), e)

    async def close(self) -> None:
        for client in self.clients:
            await client.close()
