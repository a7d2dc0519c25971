import pytest

from config import DEFAULT_MODEL_ID, AppConfig, load_config


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "CLOUDFLARE_ACCOUNT_ID",
        "CLOUDFLARE_API_TOKEN",
        "WORKERS_AI_BASE_URL",
        "MODEL_ID",
        "REQUEST_TIMEOUT_S",
        "MAX_REQUEST_BYTES",
        "PORT",
        "LOG_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = load_config()
    assert config.model_id == DEFAULT_MODEL_ID
    assert config.workers_ai_base_url == "https://api.cloudflare.com/client/v4"
    assert config.request_timeout_s == 60.0
    assert config.port == 8000
    assert config.log_color is True
    assert config.has_credentials is False
    config.validate(require_credentials=False)


def test_missing_credentials_rejected(clean_env):
    with pytest.raises(ValueError, match="CLOUDFLARE_ACCOUNT_ID"):
        AppConfig.from_env().validate()


def test_env_overrides(clean_env):
    clean_env.setenv("CLOUDFLARE_ACCOUNT_ID", "acc")
    clean_env.setenv("CLOUDFLARE_API_TOKEN", "tok")
    clean_env.setenv("WORKERS_AI_BASE_URL", "http://localhost:9000/v4/")
    clean_env.setenv("MODEL_ID", "@cf/meta/llama-3.1-8b-instruct")
    clean_env.setenv("REQUEST_TIMEOUT_S", "5.5")
    clean_env.setenv("PORT", "9100")
    clean_env.setenv("LOG_COLOR", "off")
    config = load_config()
    assert config.has_credentials is True
    assert config.workers_ai_base_url == "http://localhost:9000/v4"
    assert config.model_id == "@cf/meta/llama-3.1-8b-instruct"
    assert config.request_timeout_s == 5.5
    assert config.port == 9100
    assert config.log_color is False
    config.validate()


def test_bad_numbers_fall_back_to_defaults(clean_env):
    clean_env.setenv("REQUEST_TIMEOUT_S", "soon")
    clean_env.setenv("MAX_REQUEST_BYTES", "lots")
    config = load_config()
    assert config.request_timeout_s == 60.0
    assert config.max_request_bytes == 2_000_000


def test_validate_rejects_bad_values(clean_env):
    clean_env.setenv("REQUEST_TIMEOUT_S", "0")
    with pytest.raises(ValueError, match="REQUEST_TIMEOUT_S"):
        load_config().validate(require_credentials=False)


def test_validate_rejects_unknown_log_level(clean_env):
    clean_env.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        load_config().validate(require_credentials=False)
