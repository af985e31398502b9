"""Central configuration helper for the document intelligence orchestrator."""

import logging
import os
import re
from typing import Mapping


class HelperConfig:
    """Central configuration helper.

    Reads all settings from environment variables. An optional override mapping
    takes precedence over the environment, which lets tests and the API adjust
    settings at runtime without touching ``os.environ``.
    """

    def __init__(self, logger: logging.Logger, overrides: Mapping[str, str] | None = None) -> None:
        self._logger = logger
        self._overrides: dict[str, str] = {k.upper(): str(v) for k, v in (overrides or {}).items()}

    def set_override(self, key: str, value: str | None) -> None:
        """Set (or with None, remove) an override for a configuration key."""
        key = key.upper()
        if value is None:
            self._overrides.pop(key, None)
        else:
            self._overrides[key] = str(value)

    def _read_raw(self, key: str) -> str | None:
        if key in self._overrides:
            return self._overrides[key] or None
        return os.getenv(key) or None  # empty string → None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting.

        Args:
            key (str): Setting name (case-insensitive).
            default (str | None): Fallback value if the setting is not present.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the setting is missing and no default is provided.
        """
        key = key.upper()
        val = self._read_raw(key)
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric setting.

        Raises:
            ValueError: If the setting is missing and no default is provided,
                or if the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean setting. "true", "1" and "yes" are truthy."""
        key = key.upper()
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        return raw.strip().lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list setting written as ``[elem1,elem2,...]``.

        Args:
            key (str): Setting name (case-insensitive).
            default (list[str] | None): Fallback value if the setting is not present.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The resolved list of elements.

        Raises:
            ValueError: If the setting is missing without default, malformed, or
                contains elements that cannot be cast.
        """
        key = key.upper()
        raw_val = self._read_raw(key)
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        raw_val = raw_val.strip()
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        if not elements:
            return []
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_pattern_val(self, key: str, default: str) -> re.Pattern:
        """Read a regular expression setting and compile it case-insensitively.

        Raises:
            ValueError: If the expression does not compile.
        """
        raw = self.get_string_val(key, default=default)
        try:
            return re.compile(raw, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid pattern: {e}")

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
