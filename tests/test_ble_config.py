from ble_config import DEFAULT_PORT, DEFAULT_SCAN_TIMEOUT, BLEConfig


def test_defaults():
    config = BLEConfig.from_env({})

    assert config.scan_timeout == DEFAULT_SCAN_TIMEOUT
    assert config.port == DEFAULT_PORT
    assert config.log_level == "INFO"


def test_env_overrides():
    config = BLEConfig.from_env({
        "EASYBLE_SCAN_TIMEOUT": "2.5",
        "EASYBLE_PORT": "8081",
        "EASYBLE_HOST": "0.0.0.0",
        "EASYBLE_LOG_LEVEL": "debug",
    })

    assert config.scan_timeout == 2.5
    assert config.port == 8081
    assert config.host == "0.0.0.0"
    assert config.log_level == "DEBUG"


def test_invalid_numbers_fall_back(caplog):
    config = BLEConfig.from_env({"EASYBLE_SCAN_TIMEOUT": "soon", "EASYBLE_PORT": "http"})

    assert config.scan_timeout == DEFAULT_SCAN_TIMEOUT
    assert config.port == DEFAULT_PORT
    assert "EASYBLE_SCAN_TIMEOUT" in caplog.text
