import pytest

from shared.clients.provider.ProviderClientManager import ProviderClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import AnalysisSettings
from shared.models.errors import NoProvidersEnabled


@pytest.fixture
def config(logger):
    return HelperConfig(logger=logger, overrides={
        "PROVIDER_ENGINES": "[gemini, openrouter, lmstudio]",
        "PROVIDER_OPENROUTER_ENABLED": "false",
        "PROVIDER_GEMINI_API_KEY": "g-key",
        "ANALYSIS_PARALLEL": "true",
        "ANALYSIS_DUAL_CHECK": "yes",
        "ANALYSIS_PREFERRED_VERIFIER": "LMStudio",
        "ANALYSIS_PRIMARY_CONCURRENCY": "2",
    })


class TestHelperConfig:
    def test_overrides_take_precedence(self, config, monkeypatch):
        monkeypatch.setenv("ANALYSIS_PARALLEL", "false")
        assert config.get_bool_val("ANALYSIS_PARALLEL") is True

    def test_list_format_is_enforced(self, config):
        config.set_override("SOME_LIST", "a,b")
        with pytest.raises(ValueError):
            config.get_list_val("SOME_LIST")

    def test_missing_value_without_default(self, config):
        with pytest.raises(ValueError):
            config.get_string_val("DEFINITELY_NOT_SET_ANYWHERE")

    def test_invalid_pattern(self, config):
        config.set_override("ANALYSIS_RELEVANCE_PATTERN", "agent(")
        with pytest.raises(ValueError):
            config.get_pattern_val("ANALYSIS_RELEVANCE_PATTERN", default="x")


class TestAnalysisSettings:
    def test_from_helper_config(self, config):
        settings = AnalysisSettings.from_helper_config(config)

        assert settings.provider_order == ["gemini", "openrouter", "lmstudio"]
        assert settings.enabled_providers == ["gemini", "lmstudio"]
        assert settings.parallel_analysis is True
        assert settings.dual_check_mode is True
        assert settings.preferred_verifier == "lmstudio"
        assert settings.primary_concurrency == 2
        assert settings.verification_concurrency == 1
        assert settings.relevance_pattern == "agent|witness"

    def test_concurrency_below_one(self, config):
        config.set_override("ANALYSIS_VERIFICATION_CONCURRENCY", "0")
        with pytest.raises(ValueError):
            AnalysisSettings.from_helper_config(config)


class TestProviderClientManager:
    def test_instantiates_only_enabled_engines(self, config):
        settings = AnalysisSettings.from_helper_config(config)
        manager = ProviderClientManager(config, settings)

        # openrouter is disabled, so its missing API key is not an error
        assert manager.get_names() == ["gemini", "lmstudio"]
        assert manager.get_client("openrouter") is None
        assert manager.get_client("LMStudio").get_engine_name() == "lmstudio"

    def test_unknown_engine(self, config):
        config.set_override("PROVIDER_ENGINES", "[gemini, watson]")
        with pytest.raises(ValueError):
            ProviderClientManager(config, AnalysisSettings.from_helper_config(config))

    def test_apply_settings_disables_and_reorders(self, config):
        manager = ProviderClientManager(config, AnalysisSettings.from_helper_config(config))

        manager.apply_settings(AnalysisSettings(provider_order=["lmstudio", "gemini"], enabled_providers=["lmstudio", "gemini"]))
        assert [c.get_engine_name() for c in manager.get_clients()] == ["lmstudio", "gemini"]

        manager.apply_settings(AnalysisSettings(provider_order=["gemini"], enabled_providers=[]))
        with pytest.raises(NoProvidersEnabled):
            manager.get_clients()

    def test_apply_settings_cannot_enable_unconfigured_engine(self, config):
        manager = ProviderClientManager(config, AnalysisSettings.from_helper_config(config))
        with pytest.raises(ValueError):
            manager.apply_settings(AnalysisSettings(provider_order=["openrouter"], enabled_providers=["openrouter"]))
