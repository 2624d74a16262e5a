"""Bearer token providers.

The submission client only needs a zero-argument callable returning the token
string; any function or lambda satisfies :class:`TokenProvider`. The classes
below cover the two common deployments: a fixed token handed over by the
caller and a token read from the environment on every call.
"""

from __future__ import annotations

import os
from typing import Protocol, runtime_checkable

from pydantic import SecretStr

from .errors import ConfigurationError

__all__ = ["TokenProvider", "StaticTokenProvider", "EnvironmentTokenProvider"]

DEFAULT_TOKEN_ENV = "CRPT_TOKEN"


@runtime_checkable
class TokenProvider(Protocol):
    def __call__(self) -> str: ...


class StaticTokenProvider:
    """Return the same token for every submission."""

    def __init__(self, token: str | SecretStr) -> None:
        secret = token if isinstance(token, SecretStr) else SecretStr(token or "")
        if not secret.get_secret_value():
            raise ConfigurationError("token must be a non-empty string")
        self._token = secret

    def __call__(self) -> str:
        return self._token.get_secret_value()

    def __repr__(self) -> str:
        return "StaticTokenProvider(token='**********')"


class EnvironmentTokenProvider:
    """Read the token from an environment variable at call time."""

    def __init__(self, variable: str = DEFAULT_TOKEN_ENV) -> None:
        self.variable = variable

    def __call__(self) -> str:
        token = os.environ.get(self.variable, "").strip()
        if not token:
            raise ConfigurationError(f"Environment variable {self.variable} is not set")
        return token
