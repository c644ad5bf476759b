import pytest
from pydantic import ValidationError

from pricerelay.bootstrap.config.settings import RelaySettings


@pytest.mark.ut
def test_defaults(clean_env):
    settings = RelaySettings()

    assert settings.ws_host == "0.0.0.0"
    assert settings.ws_port == 8080
    assert settings.pricer_host == "pricer-cpp"
    assert settings.pricer_port == 9000
    assert settings.max_pending_results == 10_000
    assert settings.timeout_graceful_shutdown == 5.0


@pytest.mark.ut
def test_environment_overrides(clean_env):
    clean_env.setenv("WS_PORT", "9090")
    clean_env.setenv("PRICER_HOST", "localhost")
    clean_env.setenv("pricer_port", "9100")

    settings = RelaySettings()

    assert settings.ws_port == 9090
    assert settings.pricer_host == "localhost"
    assert settings.pricer_port == 9100


@pytest.mark.ut
@pytest.mark.parametrize(
    "name,value",
    [
        ("WS_PORT", "70000"),
        ("WS_PORT", "http"),
        ("PRICER_PORT", "0"),
        ("MAX_PENDING_RESULTS", "-1"),
        ("TIMEOUT_GRACEFUL_SHUTDOWN", "-0.5"),
    ],
)
def test_invalid_values_are_rejected(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValidationError):
        RelaySettings()


@pytest.mark.ut
def test_from_yaml(clean_env, tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text(
        "ws_port: 8181\n"
        "pricer_host: pricer.internal\n"
        "max_pending_results: 0\n"
    )

    settings = RelaySettings.from_yaml(path)

    assert settings.ws_port == 8181
    assert settings.pricer_host == "pricer.internal"
    assert settings.max_pending_results == 0
    assert settings.pricer_port == 9000


@pytest.mark.ut
def test_environment_wins_over_yaml(clean_env, tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text("pricer_port: 9200\n")
    clean_env.setenv("PRICER_PORT", "9300")

    assert RelaySettings.from_yaml(path).pricer_port == 9300
