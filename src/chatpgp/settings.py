"""Process-wide policy toggles read by the message pipeline."""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from chatpgp.exceptions import ConfigurationError

# Host settings use camelCase option names; the YAML file may use either.
_HOST_OPTION_NAMES = {
    "autoDecrypt": "auto_decrypt",
    "autoEncrypt": "auto_encrypt",
    "showIndicator": "show_indicator",
    "logDebug": "log_debug",
    "operationTimeout": "operation_timeout",
}
_BOOL_FIELDS = ("auto_decrypt", "auto_encrypt", "show_indicator", "log_debug")


@dataclass
class PolicySettings:
    """Policy toggles for the encryption pipeline."""

    auto_decrypt: bool = True
    auto_encrypt: bool = False
    show_indicator: bool = True
    log_debug: bool = False
    operation_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        for field_name in _BOOL_FIELDS:
            if not isinstance(getattr(self, field_name), bool):
                error_msg = f"Setting '{field_name}' must be true or false"
                raise ConfigurationError(error_msg)
        if isinstance(self.operation_timeout, bool) or not isinstance(
            self.operation_timeout,
            int | float,
        ):
            error_msg = "Setting 'operation_timeout' must be a number of seconds"
            raise ConfigurationError(error_msg)
        if self.operation_timeout <= 0:
            error_msg = "Setting 'operation_timeout' must be positive"
            raise ConfigurationError(error_msg)

    def toggle_auto_encrypt(self) -> bool:
        """Flip automatic encryption and return the new value."""
        self.auto_encrypt = not self.auto_encrypt
        return self.auto_encrypt

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "PolicySettings":
        """Build settings from a mapping of snake_case or host option names.

        Raises:
            ConfigurationError: If an option is unknown or has the wrong type

        """
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _HOST_OPTION_NAMES.get(key, key)
            if name not in cls.__dataclass_fields__:
                error_msg = f"Unknown setting: {key}"
                raise ConfigurationError(error_msg)
            values[name] = value
        return cls(**values)


def load_policy_settings(path: Path) -> PolicySettings:
    """Load policy settings from a YAML file.

    A missing file yields the defaults.

    Args:
        path: Path to the settings YAML file

    Returns:
        Validated PolicySettings instance

    Raises:
        ConfigurationError: If the file cannot be read or is invalid

    """
    if not path.exists():
        return PolicySettings()

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        error_msg = f"Invalid settings file format: {e}"
        raise ConfigurationError(error_msg, e) from e
    except OSError as e:
        error_msg = f"Error reading settings file {path}: {e}"
        raise ConfigurationError(error_msg, e) from e

    if data is None:
        return PolicySettings()
    if not isinstance(data, dict):
        error_msg = f"Settings file {path} must contain a mapping"
        raise ConfigurationError(error_msg)
    return PolicySettings.from_mapping(data)


def save_policy_settings(settings: PolicySettings, path: Path) -> None:
    """Write policy settings to a YAML file.

    Raises:
        ConfigurationError: If the file cannot be written

    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(settings), f, sort_keys=False)
    except OSError as e:
        error_msg = f"Error writing settings file {path}: {e}"
        raise ConfigurationError(error_msg, e) from e
