"""Tests for configuration loading."""
import pytest

from relay.core.config import AdmissionConfig, AppConfig, DispatchConfig, TelegramConfig


class TestFromEnv:

    def test_defaults(self, monkeypatch):
        for name in ("RELAY_QUEUE_CAPACITY", "RELAY_LLM_RETRIES", "RELAY_LLAMA_URL",
                     "RELAY_TELEGRAM_TOKEN", "TELOXIDE_TOKEN", "RELAY_TRANSPORT"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.admission.capacity == 8
        assert config.dispatch.retries == 3
        assert config.llama.base_url == "http://192.168.2.56:8080"
        assert config.llama.temperature == 0.4
        assert config.telegram.mode == "polling"
        assert config.telegram.token == ""

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("RELAY_QUEUE_CAPACITY", "3")
        monkeypatch.setenv("RELAY_MAX_WAIT", "12.5")
        monkeypatch.setenv("RELAY_FAIRNESS", "round_robin")
        monkeypatch.setenv("RELAY_LLM_TIMEOUT", "20")
        monkeypatch.setenv("RELAY_LLM_RETRIES", "0")
        monkeypatch.setenv("RELAY_LLAMA_URL", "http://localhost:8080/")
        monkeypatch.setenv("RELAY_LLAMA_MAX_TOKENS", "512")
        monkeypatch.setenv("RELAY_TRANSPORT", "webhook")
        monkeypatch.setenv("RELAY_REPLY_UNRECOGNIZED", "off")

        config = AppConfig.from_env()

        assert config.admission.capacity == 3
        assert config.admission.max_wait == 12.5
        assert config.admission.fairness == "round_robin"
        assert config.dispatch.timeout == 20.0
        assert config.dispatch.retries == 0
        assert config.llama.base_url == "http://localhost:8080"
        assert config.llama.max_tokens == 512
        assert config.telegram.mode == "webhook"
        assert config.telegram.reply_unrecognized is False

    def test_teloxide_token_fallback(self, monkeypatch):
        monkeypatch.delenv("RELAY_TELEGRAM_TOKEN", raising=False)
        monkeypatch.setenv("TELOXIDE_TOKEN", "42:legacy")

        assert TelegramConfig.from_env().token == "42:legacy"

        monkeypatch.setenv("RELAY_TELEGRAM_TOKEN", "42:new")
        assert TelegramConfig.from_env().token == "42:new"


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"capacity": 0},
        {"max_wait": 0},
        {"fairness": "random"},
        {"dedupe_window": -1},
    ])
    def test_bad_admission_config(self, kwargs):
        with pytest.raises(ValueError):
            AdmissionConfig(**kwargs)

    @pytest.mark.parametrize("kwargs", [
        {"timeout": 0},
        {"retries": -1},
        {"backoff_multiplier": 0.5},
        {"jitter": -0.1},
    ])
    def test_bad_dispatch_config(self, kwargs):
        with pytest.raises(ValueError):
            DispatchConfig(**kwargs)

    def test_bad_transport_mode(self):
        with pytest.raises(ValueError):
            TelegramConfig(mode="carrier-pigeon")
