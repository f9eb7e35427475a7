"""
Configuration for the loadgate harness.

Configuration is layered, following Convention over Configuration (CoC):

Hierarchy of precedence (highest to lowest):
1. Overrides passed to LoadGateConfig.from_env() (e.g. from the command line)
2. Environment variables (LOADGATE_*)
3. Hardcoded defaults (in dataclass fields)

Unlike timeouts, the load parameters and the target have no sensible
defaults: they are left as None and rejected by validate() when missing.

Example:
    >>> from loadgate import LoadGateConfig
    >>> config = LoadGateConfig.from_env(
    ...     load={"total_requests": 100, "max_concurrent": 5, "requests_per_second": 10},
    ...     target={"url": "https://api.example.com/v1/echo", "json_body": '{"ping": 1}'},
    ... )
    >>> config.load.min_interval
    0.1
"""

from __future__ import annotations

import json
import math
import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

# =============================================================================
# Exceptions
# =============================================================================


class ConfigurationError(ValueError):
    """Base class for every error that prevents a load test from starting."""


class ConfigEnvVarError(ConfigurationError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ConfigurationError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("LOADGATE_TOTAL_REQUESTS", type_hint=int)
        100
        >>> EnvVars.get("LOADGATE_API_URL")
        'https://api.example.com/v1/echo'
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:  # None or empty string
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=EnvVars._type_name(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles string annotations (PEP 563), including optional ones
        such as "int | None".
        """
        type_str = EnvVars._type_name(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str

    @staticmethod
    def _type_name(type_hint: Any) -> str:
        name = type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint)
        return name.replace("| None", "").strip()


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` for creating new instances with partial
    field updates, and `.with_env_vars()` for applying the env vars declared
    in each field's metadata.
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, so unset command-line flags never erase
        a value coming from a lower layer.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return new instance with environment variables applied.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(
                    var_name=env_var,
                    type_hint=f.type,
                    converter=f.metadata.get("converter"),
                )
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)

    def env_sources(self) -> dict[str, str]:
        """Map each field set through the environment to its env var name."""
        return {
            f.name: f"env:{f.metadata['env']}"
            for f in fields(self)
            if f.metadata.get("env") and os.environ.get(f.metadata["env"])
        }


# =============================================================================
# Configuration Dataclasses
# =============================================================================


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    # bools are ints, and nan compares false against everything
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


@dataclass(frozen=True)
class LoadConfig(OverridableConfig):
    """
    Shape of the generated load.

    Attributes:
        total_requests: Number of requests issued in a run (N). Must be > 0.
            Env var: LOADGATE_TOTAL_REQUESTS

        max_concurrent: Maximum number of requests in flight at once.
            Env var: LOADGATE_CONCURRENT_REQUESTS

        requests_per_second: Maximum request-initiation rate. Requests start
            at least `1 / requests_per_second` seconds apart.
            Env var: LOADGATE_REQUESTS_PER_SECOND

        max_workers: Size of the worker thread-pool. If None, uses max_concurrent.
            Env var: LOADGATE_MAX_WORKERS
    """

    total_requests: int | None = field(default=None, metadata={"env": "LOADGATE_TOTAL_REQUESTS"})
    max_concurrent: int | None = field(default=None, metadata={"env": "LOADGATE_CONCURRENT_REQUESTS"})
    requests_per_second: float | None = field(default=None, metadata={"env": "LOADGATE_REQUESTS_PER_SECOND"})
    max_workers: int | None = field(default=None, metadata={"env": "LOADGATE_MAX_WORKERS"})

    @property
    def min_interval(self) -> float:
        """Minimum spacing between two request starts, in seconds."""
        assert self.requests_per_second, "requests_per_second must be set to derive min_interval."
        return 1.0 / self.requests_per_second

    def validate(self) -> Self:
        """Validate load configuration fields."""
        if not _is_int(self.total_requests) or self.total_requests <= 0:
            raise ConfigValidationError(
                "total_requests", self.total_requests,
                "Must be set to an integer greater than 0.", section="load"
            )
        if not _is_int(self.max_concurrent) or self.max_concurrent <= 0:
            raise ConfigValidationError(
                "max_concurrent", self.max_concurrent,
                "Must be set to an integer greater than 0.", section="load"
            )
        if not _is_number(self.requests_per_second) or self.requests_per_second <= 0:
            raise ConfigValidationError(
                "requests_per_second", self.requests_per_second,
                "Must be set to a number greater than 0.", section="load"
            )
        if self.max_workers is not None and (not _is_int(self.max_workers) or self.max_workers <= 0):
            raise ConfigValidationError(
                "max_workers", self.max_workers,
                "Must be an integer greater than 0 (or unset).", section="load"
            )
        return self


@dataclass(frozen=True)
class TargetConfig(OverridableConfig):
    """
    Endpoint under test and the request sent to it.

    Attributes:
        url: Request destination.
            Env var: LOADGATE_API_URL

        json_body: Request payload as a JSON string, parsed once at startup.
            Env var: LOADGATE_JSON_BODY

        client_id: Sent verbatim as the `X-Client-Id` header.
            Env var: LOADGATE_CLIENT_ID

        client_secret: Sent verbatim as the `X-Client-Secret` header.
            Env var: LOADGATE_CLIENT_SECRET

        request_timeout: Per-request timeout in seconds.
            Env var: LOADGATE_REQUEST_TIMEOUT
    """

    url: str | None = field(default=None, metadata={"env": "LOADGATE_API_URL"})
    json_body: str | None = field(default=None, metadata={"env": "LOADGATE_JSON_BODY"})
    client_id: str | None = field(default=None, metadata={"env": "LOADGATE_CLIENT_ID"})
    client_secret: str | None = field(default=None, metadata={"env": "LOADGATE_CLIENT_SECRET"})
    request_timeout: float = field(default=30.0, metadata={"env": "LOADGATE_REQUEST_TIMEOUT"})

    def parsed_body(self) -> Any:
        """
        Parse `json_body` into the request payload.

        Raises:
            ConfigValidationError: If the body is missing or is not valid JSON.
        """
        if self.json_body is None:
            raise ConfigValidationError(
                "json_body", self.json_body,
                "Must be set.", section="target"
            )
        try:
            return json.loads(self.json_body)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(
                "json_body", self.json_body,
                f"Must be valid JSON ({e.msg} at line {e.lineno}, column {e.colno}).", section="target"
            ) from e

    def client_headers(self) -> dict[str, str]:
        """Client identity headers plus the JSON content type."""
        headers = {"Content-Type": "application/json"}
        if self.client_id is not None:
            headers["X-Client-Id"] = self.client_id
        if self.client_secret is not None:
            headers["X-Client-Secret"] = self.client_secret
        return headers

    def validate(self) -> Self:
        """Validate target configuration fields."""
        if not self.url:
            raise ConfigValidationError(
                "url", self.url,
                "Must be set.", section="target"
            )
        if not (self.url.startswith("http://") or self.url.startswith("https://")):
            raise ConfigValidationError(
                "url", self.url,
                "Must start with 'http://' or 'https://'.", section="target"
            )
        if not _is_number(self.request_timeout) or self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be a number greater than 0.", section="target"
            )
        self.parsed_body()
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A single configuration value with its source, used by `explain()`.

    Attributes:
        name: Field name.
        value: Current value.
        source: "default", "env:VAR_NAME" or "user".
    """

    name: str
    value: Any
    source: str

    _SECRET_FIELDS = frozenset({"client_secret"})

    @property
    def formatted_value(self) -> str:
        """Value as displayed by explain(): secrets masked, long values truncated."""
        if self.value is None:
            return "None"
        if self.name in self._SECRET_FIELDS:
            text = str(self.value)
            return "****" if len(text) <= 8 else f"{text[:4]}****"
        text = str(self.value)
        return text if len(text) <= 50 else f"{text[:47]}..."


@dataclass(frozen=True)
class LoadGateConfig:
    """
    Root configuration: the load shape and the target.

    Example:
        >>> config = LoadGateConfig.from_env(load={"total_requests": 10})
        >>> config.validate()
    """

    load: LoadConfig = field(default_factory=LoadConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    _user_fields: frozenset[tuple[str, str]] = field(default=frozenset(), repr=False, compare=False)

    @classmethod
    def from_env(
        cls,
        *,
        load: dict[str, Any] | None = None,
        target: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> LoadGateConfig:
        """
        Build a config from defaults, environment variables and overrides.

        Args:
            load: LoadConfig overrides (win over env vars).
            target: TargetConfig overrides (win over env vars).
            allow_env_override: If False, ignores env vars entirely.

        Returns:
            A new, not yet validated, LoadGateConfig.
        """
        base = cls()
        if allow_env_override:
            base = base.with_env_vars()
        return base.with_section_overrides(load=load, target=target)

    def with_env_vars(self) -> LoadGateConfig:
        """Return a new config with LOADGATE_* environment variables applied."""
        return LoadGateConfig(
            load=self.load.with_env_vars(),
            target=self.target.with_env_vars(),
            _user_fields=self._user_fields,
        )

    def with_section_overrides(
        self,
        *,
        load: dict[str, Any] | None = None,
        target: dict[str, Any] | None = None,
    ) -> LoadGateConfig:
        """Return a new config with overrides merged into each section."""
        touched = {
            (section, name)
            for section, overrides in (("load", load or {}), ("target", target or {}))
            for name, value in overrides.items()
            if value is not None
        }
        return LoadGateConfig(
            load=self.load.with_overrides(load or {}),
            target=self.target.with_overrides(target or {}),
            _user_fields=self._user_fields | touched,
        )

    def validate(self) -> LoadGateConfig:
        """
        Validate every section.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self.load.validate()
        self.target.validate()
        return self

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """Return config values grouped by section, each with its source."""
        result: dict[str, list[ConfigEntry]] = {}
        for section_name in ("load", "target"):
            section_config = getattr(self, section_name)
            env_sources = section_config.env_sources()
            entries = []
            for f in fields(section_config):
                if (section_name, f.name) in self._user_fields:
                    source = "user"
                else:
                    source = env_sources.get(f.name, "default")
                entries.append(ConfigEntry(name=f.name, value=getattr(section_config, f.name), source=source))
            result[section_name] = entries
        return result

    def explain(self, output: Callable[[str], None] = print) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `config.explain(logger.info)`
        """
        name_width = 25
        value_width = 50
        total_width = 2 + name_width + 2 + (value_width + 2) + 1 + 8

        output("loadgate configuration:")
        output("=" * total_width)
        output(f"  {'Field':<{name_width}} │ {'Value':<{value_width}} │ Source")
        output(f"--{'-' * name_width}-+{'-' * (value_width + 2)}+--------")

        for section_name, entries in self.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                value_padded = entry.formatted_value.ljust(value_width)
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {value_padded} {marker} {entry.source}")

        output("=" * total_width)
