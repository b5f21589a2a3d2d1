"""Central configuration helper for the support AI bridge."""

import logging
import os


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read_raw(self, key: str, default: object | None) -> str | None:
        """Read a raw environment value, treating empty strings as unset.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = os.getenv(key.upper()) or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return raw.strip() if raw is not None else None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self._read_raw(key, default)
        return raw if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        raw = self._read_raw(key, default)
        if raw is None:
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable ("true", "1" and "yes" are truthy)."""
        raw = self._read_raw(key, default)
        if raw is None:
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_choice_val(self, key: str, choices: list[str], default: str | None = None) -> str:
        """Read a string environment variable restricted to a set of choices.

        The comparison is case-insensitive; the returned value is lowercase.

        Args:
            key (str): Environment variable name (case-insensitive).
            choices (list[str]): Accepted values.
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The lowercased value.

        Raises:
            ValueError: If the variable is unset without default, or not one of the choices.
        """
        val = self.get_string_val(key, default=default).lower()
        allowed = [choice.lower() for choice in choices]
        if val not in allowed:
            raise ValueError(
                f"Environment variable '{key.upper()}' must be one of {allowed}. Got: '{val}'"
            )
        return val

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
