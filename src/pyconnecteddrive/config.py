"""Vehicle configuration for pyconnecteddrive."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyconnecteddrive._constants import (
    DEFAULT_IMAGE_SIZE,
    DEFAULT_IMAGE_VIEWPORT,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REGION,
    IMAGE_SIZE_MAX,
    IMAGE_SIZE_MIN,
    IMAGE_VIEWPORTS,
    REGION_BASE_URLS,
)
from pyconnecteddrive.exceptions import ConnectedDriveConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConnectedDriveConfigError(f"{name} must be a whole number, got {value!r}") from None


@dataclasses.dataclass(frozen=True)
class VehicleConfig:
    """Configuration of a single connected vehicle.

    Parameters
    ----------
    username : str
        ConnectedDrive account user name.
    password : str
        ConnectedDrive account password.
    vin : str
        Vehicle Identification Number.
    region : str
        Server region, one of ``"ROW"``, ``"NORTH_AMERICA"``, ``"CHINA"``.
    refresh_interval : int
        Data refresh rate in minutes.  Defaults to 15.
    is_electric : bool
        Whether the vehicle has a high-voltage battery.  Electric vehicles
        additionally poll the charge profile and the range map.
    image_viewport : str
        Initial viewport of the rendered vehicle image.
    image_size : int
        Initial edge length (pixels) of the rendered vehicle image.
    base_url : str or None
        Explicit API base URL; overrides the region lookup.
    """

    username: str
    password: str
    vin: str
    region: str = DEFAULT_REGION
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    is_electric: bool = False
    image_viewport: str = DEFAULT_IMAGE_VIEWPORT
    image_size: int = DEFAULT_IMAGE_SIZE
    base_url: str | None = None

    @property
    def api_base_url(self) -> str:
        """Base URL for all vehicle requests."""
        if self.base_url:
            return self.base_url.rstrip("/")
        try:
            return REGION_BASE_URLS[self.region]
        except KeyError:
            raise ConnectedDriveConfigError(f"Unknown region {self.region!r}") from None

    def validate(self) -> None:
        """Raise :class:`ConnectedDriveConfigError` if the configuration is unusable."""
        missing = [name for name in ("username", "password", "vin") if not getattr(self, name).strip()]
        if missing:
            raise ConnectedDriveConfigError(f"Missing required configuration: {', '.join(missing)}")
        if not self.base_url and self.region not in REGION_BASE_URLS:
            raise ConnectedDriveConfigError(
                f"Unknown region {self.region!r}, expected one of {sorted(REGION_BASE_URLS)}"
            )
        if self.refresh_interval <= 0:
            raise ConnectedDriveConfigError(f"refresh_interval must be positive, got {self.refresh_interval}")
        if self.image_viewport not in IMAGE_VIEWPORTS:
            raise ConnectedDriveConfigError(
                f"image_viewport must be one of {IMAGE_VIEWPORTS}, got {self.image_viewport!r}"
            )
        if not IMAGE_SIZE_MIN <= self.image_size <= IMAGE_SIZE_MAX:
            raise ConnectedDriveConfigError(
                f"image_size must be between {IMAGE_SIZE_MIN} and {IMAGE_SIZE_MAX}, got {self.image_size}"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> VehicleConfig:
        """Create configuration from environment variables.

        Reads ``CD_USERNAME``, ``CD_PASSWORD``, ``CD_VIN`` and the optional
        ``CD_*`` variables below.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CD_USERNAME": "username",
            "CD_PASSWORD": "password",
            "CD_VIN": "vin",
            "CD_REGION": "region",
            "CD_IMAGE_VIEWPORT": "image_viewport",
            "CD_BASE_URL": "base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric fields, handled separately
        interval_env = env.get("CD_REFRESH_INTERVAL")
        if interval_env is not None and "refresh_interval" not in overrides:
            config_kwargs["refresh_interval"] = _env_int("CD_REFRESH_INTERVAL", interval_env)

        size_env = env.get("CD_IMAGE_SIZE")
        if size_env is not None and "image_size" not in overrides:
            config_kwargs["image_size"] = _env_int("CD_IMAGE_SIZE", size_env)

        if "is_electric" not in overrides:
            config_kwargs["is_electric"] = _env_bool(env.get("CD_IS_ELECTRIC"), False)

        config_kwargs.update(overrides)
        config_kwargs.setdefault("username", "")
        config_kwargs.setdefault("password", "")
        config_kwargs.setdefault("vin", "")

        return cls(**config_kwargs)
