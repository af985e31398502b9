from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The key/name of the environment variable to read.
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool", and "list".
        default (str | int | bool | list | None): An optional default value. If None, the variable is required and an error will be raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


DEFAULT_RELEVANCE_PATTERN = r"agent|witness"
DEFAULT_SENSITIVE_PATTERN = r"president|governor|senator"


class AnalysisSettings(BaseModel):
    """Execution policy settings of the orchestrator.

    Per-provider endpoint, credential and model are read by each provider
    client from ``PROVIDER_<ENGINE>_*``; this model carries the priority
    order, the enabled set and the policy flags.

    Attributes:
        provider_order:           Provider names, highest priority first.
        enabled_providers:        Subset of provider_order that may be called.
        parallel_analysis:        Parallel consensus instead of sequential failover.
        dual_check_mode:          Route high-value findings through verification.
        preferred_verifier:       Provider name, or "auto" for the first enabled one.
        primary_concurrency:      Max concurrent primary workers.
        verification_concurrency: Max concurrent verification workers.
        relevance_pattern:        Role regex promoting an entity to a tracked subject.
        sensitive_pattern:        Role regex marking a notable subject sensitive.
    """

    provider_order: list[str] = []
    enabled_providers: list[str] = []
    parallel_analysis: bool = False
    dual_check_mode: bool = False
    preferred_verifier: str = "auto"
    primary_concurrency: int = 1
    verification_concurrency: int = 1
    relevance_pattern: str = DEFAULT_RELEVANCE_PATTERN
    sensitive_pattern: str = DEFAULT_SENSITIVE_PATTERN

    @classmethod
    def from_helper_config(cls, helper_config: HelperConfig) -> "AnalysisSettings":
        """Build the settings from ``PROVIDER_*`` and ``ANALYSIS_*`` keys.

        Raises:
            ValueError: If a value is malformed or a concurrency limit is below 1.
        """
        order = [e.strip().lower() for e in helper_config.get_list_val("PROVIDER_ENGINES", default=[])]
        enabled = [e for e in order if helper_config.get_bool_val(f"PROVIDER_{e.upper()}_ENABLED", default=True)]

        # compile once so a bad pattern fails at startup
        relevance = helper_config.get_pattern_val("ANALYSIS_RELEVANCE_PATTERN", default=DEFAULT_RELEVANCE_PATTERN)
        sensitive = helper_config.get_pattern_val("ANALYSIS_SENSITIVE_PATTERN", default=DEFAULT_SENSITIVE_PATTERN)

        settings = cls(
            provider_order=order,
            enabled_providers=enabled,
            parallel_analysis=helper_config.get_bool_val("ANALYSIS_PARALLEL", default=False),
            dual_check_mode=helper_config.get_bool_val("ANALYSIS_DUAL_CHECK", default=False),
            preferred_verifier=helper_config.get_string_val("ANALYSIS_PREFERRED_VERIFIER", default="auto").lower(),
            primary_concurrency=int(helper_config.get_number_val("ANALYSIS_PRIMARY_CONCURRENCY", default=1)),
            verification_concurrency=int(helper_config.get_number_val("ANALYSIS_VERIFICATION_CONCURRENCY", default=1)),
            relevance_pattern=relevance.pattern,
            sensitive_pattern=sensitive.pattern,
        )
        if settings.primary_concurrency < 1 or settings.verification_concurrency < 1:
            raise ValueError("ANALYSIS_PRIMARY_CONCURRENCY and ANALYSIS_VERIFICATION_CONCURRENCY must be at least 1.")
        return settings
