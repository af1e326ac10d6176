"""Process configuration read from environment variables.

Usage
-----
Load configuration from the environment:

>>> import os
>>> os.environ["PERCH_HYDRATE_CONCURRENCY"] = "8"
>>> EngineConfig.from_env().hydrate_concurrency
8

"""

from __future__ import annotations

import dataclasses
import os

from perch.github.client import GitHubClientConfig
from perch.github.host import GITHUB_DOT_COM

_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_LOG_LEVEL = "INFO"
_DEFAULT_HYDRATE_CONCURRENCY = 4
_DEFAULT_CREDENTIAL_REFRESH_SECONDS = 60
_DEFAULT_HTTP_TIMEOUT_S = 20.0
_ENTERPRISE_API_SUFFIX = "/api/v3"
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"", "0", "false", "no", "off"})


class PerchConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""

    @classmethod
    def not_an_integer(cls, env_var: str, raw: str) -> PerchConfigError:
        """Create error for a value that does not parse as an integer."""
        return cls(f"{env_var} must be an integer, got: {raw!r}")

    @classmethod
    def not_positive(cls, env_var: str, value: float) -> PerchConfigError:
        """Create error for a zero or negative value."""
        return cls(f"{env_var} must be positive, got: {value}")

    @classmethod
    def not_a_number(cls, env_var: str, raw: str) -> PerchConfigError:
        """Create error for a value that does not parse as a number."""
        return cls(f"{env_var} must be a number, got: {raw!r}")

    @classmethod
    def invalid_flag(cls, env_var: str, raw: str) -> PerchConfigError:
        """Create error for a boolean flag with an unrecognised value.

        Parameters
        ----------
        env_var
            Name of the environment variable.
        raw
            Value as found in the environment.

        Returns
        -------
        PerchConfigError
            Error listing the accepted spellings.

        """
        accepted = ", ".join(sorted(_TRUTHY | (_FALSY - {""})))
        return cls(f"{env_var} must be one of {accepted}; got: {raw!r}")

    @classmethod
    def invalid_api_url(cls, raw: str) -> PerchConfigError:
        """Create error for an API URL without an http(s) scheme."""
        return cls(f"PERCH_API_URL must be an http(s) URL, got: {raw!r}")


@dataclasses.dataclass(frozen=True, slots=True)
class EngineConfig:
    """Runtime configuration for the dashboard engine.

    Attributes
    ----------
    github_token
        Personal access token, or ``None`` to start signed out.
    api_url
        REST API root; ``https://api.github.com`` or an Enterprise
        ``https://host/api/v3``.
    log_level
        Raw log level as configured; normalised by
        :func:`perch.logging.configure_logging`.
    hydrate_concurrency
        Maximum simultaneous full-repository fetches.
    credential_refresh_seconds
        Interval of the credential refresh loop.
    http_timeout_s
        Per-request HTTP timeout.
    watch
        Keep refreshing on the settings interval instead of running once.

    """

    github_token: str | None = None
    api_url: str = _DEFAULT_API_URL
    log_level: str = _DEFAULT_LOG_LEVEL
    hydrate_concurrency: int = _DEFAULT_HYDRATE_CONCURRENCY
    credential_refresh_seconds: int = _DEFAULT_CREDENTIAL_REFRESH_SECONDS
    http_timeout_s: float = _DEFAULT_HTTP_TIMEOUT_S
    watch: bool = False

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise PerchConfigError.not_an_integer(env_var, raw) from exc
        if value < 1:
            raise PerchConfigError.not_positive(env_var, value)
        return value

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        """Read a positive number env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise PerchConfigError.not_a_number(env_var, raw) from exc
        if value <= 0:
            raise PerchConfigError.not_positive(env_var, value)
        return value

    @staticmethod
    def _parse_flag(env_var: str) -> bool:
        raw = os.environ.get(env_var, "")
        normalized = raw.strip().lower()
        if normalized in _TRUTHY:
            return True
        if normalized in _FALSY:
            return False
        raise PerchConfigError.invalid_flag(env_var, raw)

    @staticmethod
    def _parse_api_url() -> str:
        raw = os.environ.get("PERCH_API_URL", "")
        if not raw.strip():
            return _DEFAULT_API_URL
        url = raw.strip().rstrip("/")
        if not url.startswith(("https://", "http://")):
            raise PerchConfigError.invalid_api_url(raw)
        return url

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``PERCH_GITHUB_TOKEN``: Optional personal access token.
        - ``PERCH_API_URL``: Optional REST API root.
        - ``PERCH_LOG_LEVEL``: Optional log level (default ``INFO``).
        - ``PERCH_HYDRATE_CONCURRENCY``: Positive integer (default 4).
        - ``PERCH_CREDENTIAL_REFRESH_SECONDS``: Positive integer (default 60).
        - ``PERCH_HTTP_TIMEOUT_SECONDS``: Positive number (default 20).
        - ``PERCH_WATCH``: Boolean flag (default off).

        Returns
        -------
        EngineConfig
            Configuration instance with values from environment or defaults.

        Raises
        ------
        PerchConfigError
            If any variable is present but invalid.

        """
        token = os.environ.get("PERCH_GITHUB_TOKEN", "").strip() or None
        return cls(
            github_token=token,
            api_url=cls._parse_api_url(),
            log_level=os.environ.get("PERCH_LOG_LEVEL", _DEFAULT_LOG_LEVEL),
            hydrate_concurrency=cls._parse_positive_int(
                "PERCH_HYDRATE_CONCURRENCY", _DEFAULT_HYDRATE_CONCURRENCY
            ),
            credential_refresh_seconds=cls._parse_positive_int(
                "PERCH_CREDENTIAL_REFRESH_SECONDS",
                _DEFAULT_CREDENTIAL_REFRESH_SECONDS,
            ),
            http_timeout_s=cls._parse_positive_float(
                "PERCH_HTTP_TIMEOUT_SECONDS", _DEFAULT_HTTP_TIMEOUT_S
            ),
            watch=cls._parse_flag("PERCH_WATCH"),
        )

    def client_config(self) -> GitHubClientConfig:
        """Return client endpoints derived from ``api_url``.

        An Enterprise ``https://host/api/v3`` root maps to
        ``https://host/api/graphql`` with ``https://host`` as the web origin;
        any other root gets ``/graphql`` appended.
        """
        if self.api_url == _DEFAULT_API_URL:
            return GitHubClientConfig(timeout_s=self.http_timeout_s)
        if self.api_url.endswith(_ENTERPRISE_API_SUFFIX):
            web_url = self.api_url.removesuffix(_ENTERPRISE_API_SUFFIX)
            return GitHubClientConfig(
                api_url=self.api_url,
                graphql_url=f"{web_url}/api/graphql",
                web_url=web_url,
                timeout_s=self.http_timeout_s,
            )
        return GitHubClientConfig(
            api_url=self.api_url,
            graphql_url=f"{self.api_url}/graphql",
            web_url=GITHUB_DOT_COM,
            timeout_s=self.http_timeout_s,
        )
