from shared.helper.HelperConfig import HelperConfig
from shared.clients.store.StoreClientInterface import StoreClientInterface


class StoreClientManager:
    """Manager class to instantiate the configured store client."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """Read the store engine name (STORE_ENGINE, default "memory").

        Returns:
            str: Capitalised engine name (e.g. "Json").
        """
        engine = self.helper_config.get_string_val("STORE_ENGINE", default="memory")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> StoreClientInterface:
        """Instantiate the store client for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"StoreClient{engine}"
        try:
            module = __import__(
                f"shared.clients.store.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
            client = client_class(helper_config=self.helper_config)
            self.logging.debug("Instantiated store client for engine: %s", engine)
            return client
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported store engine '%s'. Error: %s" % (engine, e))

    def get_client(self) -> StoreClientInterface:
        """Return the instantiated store client."""
        return self.client
