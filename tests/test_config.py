from __future__ import annotations

import pytest

from pyconnecteddrive.config import VehicleConfig
from pyconnecteddrive.exceptions import ConnectedDriveConfigError


def _config(**overrides: object) -> VehicleConfig:
    values: dict[str, object] = {"username": "user", "password": "pw", "vin": "WBA12345"}
    values.update(overrides)
    return VehicleConfig(**values)  # type: ignore[arg-type]


def test_defaults() -> None:
    config = _config()
    config.validate()
    assert config.refresh_interval == 15
    assert config.api_base_url == "https://b2vapi.bmwgroup.com"
    assert not config.is_electric


def test_base_url_overrides_region() -> None:
    assert _config(region="MARS", base_url="http://localhost:8080/").api_base_url == "http://localhost:8080"


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"vin": "  "}, "vin"),
        ({"username": "", "password": ""}, "username, password"),
        ({"region": "MARS"}, "Unknown region"),
        ({"refresh_interval": 0}, "refresh_interval"),
        ({"image_viewport": "TOP"}, "image_viewport"),
        ({"image_size": 8}, "image_size"),
    ],
)
def test_validate_rejects(overrides: dict[str, object], message: str) -> None:
    with pytest.raises(ConnectedDriveConfigError, match=message):
        _config(**overrides).validate()


def test_unknown_region_url_raises() -> None:
    with pytest.raises(ConnectedDriveConfigError):
        _ = _config(region="MARS").api_base_url


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CD_USERNAME", "env-user")
    monkeypatch.setenv("CD_PASSWORD", "env-pw")
    monkeypatch.setenv("CD_VIN", "WBAENV")
    monkeypatch.setenv("CD_REGION", "NORTH_AMERICA")
    monkeypatch.setenv("CD_REFRESH_INTERVAL", "5")
    monkeypatch.setenv("CD_IMAGE_SIZE", "512")
    monkeypatch.setenv("CD_IS_ELECTRIC", "yes")

    config = VehicleConfig.from_env(vin="WBAOVERRIDE")

    assert config.username == "env-user"
    assert config.vin == "WBAOVERRIDE"
    assert config.refresh_interval == 5
    assert config.image_size == 512
    assert config.is_electric
    assert config.api_base_url == "https://b2vapi.bmwgroup.us"


def test_from_env_without_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CD_USERNAME", "CD_PASSWORD", "CD_VIN"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ConnectedDriveConfigError):
        VehicleConfig.from_env().validate()


@pytest.mark.parametrize(("name", "value"), [("CD_REFRESH_INTERVAL", "5m"), ("CD_IMAGE_SIZE", "1024.5")])
def test_from_env_rejects_malformed_numbers(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConnectedDriveConfigError, match=name):
        VehicleConfig.from_env()


def test_from_env_malformed_number_ignored_when_overridden(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CD_REFRESH_INTERVAL", "soon")
    assert VehicleConfig.from_env(refresh_interval=7).refresh_interval == 7
