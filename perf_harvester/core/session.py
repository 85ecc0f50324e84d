"""
Authenticated HTTP session provider.
"""

import os
from typing import Optional

import httpx
from dotenv import load_dotenv

from .errors import ConfigurationError

TOKEN_ENV_VAR = 'SENTRY_AUTH_TOKEN'


class TokenSessionProvider:
    """Produces httpx clients authorized with a bearer token."""

    def __init__(self, token: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            token: API bearer token
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not token:
            raise ConfigurationError('an API token is required')
        self.token = token
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **kwargs) -> 'TokenSessionProvider':
        """
        Read the token from SENTRY_AUTH_TOKEN, loading a .env file first.

        Raises:
            ConfigurationError: If the variable is unset or empty.
        """
        load_dotenv(env_file)
        token = os.environ.get(TOKEN_ENV_VAR, '').strip()
        if not token:
            raise ConfigurationError(f'{TOKEN_ENV_VAR} is not set')
        return cls(token, **kwargs)

    @property
    def headers(self):
        return {
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/json; charset=utf-8',
        }

    def client(self) -> httpx.AsyncClient:
        """Create a new client; the caller owns and closes it."""
        return httpx.AsyncClient(headers=self.headers, timeout=self.timeout, transport=self.transport)
