"""Token credentials.

A credential produces bearer tokens for requested scopes. The pipeline only
depends on the `TokenCredential` protocol; identity providers (client
secrets, managed identity, CLI login) plug in from outside.

Two simple sources ship with the core:

- `StaticTokenCredential`: a token string and expiry held in memory
- `EnvironmentTokenCredential`: a pre-issued token resolved by
  `CredentialResolver` from an explicit value, an environment variable, a
  .env file (python-dotenv) or a token file

Example:
    ```python
    from arm_client_core.auth import EnvironmentTokenCredential

    credential = EnvironmentTokenCredential(env_var_name="ARM_ACCESS_TOKEN")
    token = await credential.get_token("https://management.azure.com/.default")
    ```

Security Considerations:
    - Tokens are never logged in full (masked with ***)
    - Only source information is logged (env var name, file path)
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from threading import Lock
from typing import NamedTuple, Protocol

from dotenv import load_dotenv

from arm_client_core.auth.exceptions import (
    CredentialFileError,
    CredentialNotFoundError,
    TokenExpiredError,
)

logger = logging.getLogger(__name__)

# Lifetime assumed for tokens whose expiry is unknown
DEFAULT_TOKEN_LIFETIME = 3600


class AccessToken(NamedTuple):
    """Bearer token and its expiry as a POSIX timestamp."""

    token: str
    expires_on: float


class TokenCredential(Protocol):
    async def get_token(self, *scopes: str) -> AccessToken: ...


class StaticTokenCredential:
    """Return the same token for every scope.

    Args:
        token: Bearer token string
        expires_on: POSIX timestamp; defaults to one hour from construction
    """

    def __init__(self, token: str, expires_on: float | None = None) -> None:
        self._token = AccessToken(token, expires_on if expires_on is not None else time.time() + DEFAULT_TOKEN_LIFETIME)

    async def get_token(self, *scopes: str) -> AccessToken:
        if self._token.expires_on <= time.time():
            raise TokenExpiredError("Static access token has expired")
        return self._token


class CredentialResolver:
    """Resolve credential material from multiple sources with priority ordering.

    Resolution order (first match wins):
    1. Explicitly provided value
    2. Environment variable (including values loaded from .env)
    3. Default value

    Args:
        dotenv_path: Path to the .env file; None searches parent directories
        load_dotenv: Whether to load a .env file at all
    """

    def __init__(self, dotenv_path: str | None = None, load_dotenv: bool = True):
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        """Load the .env file once (thread-safe)."""
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            if self._dotenv_loaded:
                return
            load_dotenv(dotenv_path=self._dotenv_path)
            self._dotenv_loaded = True
            logger.debug("Loaded .env file for credential resolution")

    def resolve(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = None,
        default: str | None = None,
        required: bool = False,
        mask_in_logs: bool = True,
    ) -> str | None:
        """Resolve a credential value.

        Args:
            value: Explicit value; wins over every other source
            env_var_name: Environment variable to check
            default: Value used when no other source has one
            required: Raise instead of returning None
            mask_in_logs: Log ``***`` in place of the value

        Raises:
            CredentialNotFoundError: If `required` and no source has a value
        """
        result = None
        source = None

        if value is not None:
            result = value
            source = "explicit parameter"
        elif env_var_name and env_var_name in os.environ:
            result = os.environ[env_var_name]
            source = f"environment variable '{env_var_name}'"
        elif default is not None:
            result = default
            source = "default value"

        if result is not None:
            logger.debug(f"Resolved credential from {source}: {'***' if mask_in_logs else result}")

        if required and result is None:
            error_msg = "Required credential not found"
            if env_var_name:
                error_msg += f" (checked env var: {env_var_name})"
            raise CredentialNotFoundError(error_msg, env_var_name=env_var_name)

        return result

    def resolve_from_file(
        self,
        *,
        file_path: str | Path | None = None,
        env_var_name: str | None = None,
        required: bool = False,
    ) -> str | None:
        """Read a credential from a file, stripped of surrounding whitespace.

        Supports ``~`` and ``$VAR`` expansion in the path.

        Args:
            file_path: Path to the file
            env_var_name: Environment variable holding the path, used when
                `file_path` is None
            required: Raise instead of returning None

        Raises:
            CredentialFileError: If `required` and the file cannot be read
        """
        path_to_use = str(file_path) if file_path is not None else None
        if path_to_use is None and env_var_name:
            path_to_use = self.resolve(env_var_name=env_var_name, mask_in_logs=False)

        if not path_to_use:
            if required:
                error_msg = "No file path provided for credential resolution"
                if env_var_name:
                    error_msg += f" (env var '{env_var_name}' not set)"
                raise CredentialFileError(error_msg)
            return None

        path_obj = Path(os.path.expanduser(os.path.expandvars(path_to_use)))

        try:
            content = path_obj.read_text().strip()
        except FileNotFoundError:
            error_msg = f"Credential file not found: {path_obj}"
            if required:
                raise CredentialFileError(error_msg) from None
            logger.debug(error_msg)
            return None
        except OSError as e:
            error_msg = f"Error reading credential file {path_obj}: {e}"
            if required:
                raise CredentialFileError(error_msg) from e
            logger.warning(error_msg)
            return None

        logger.debug(f"Resolved credential from file: {path_obj} (***)")
        return content


class EnvironmentTokenCredential:
    """Pre-issued bearer token read from the environment or a file.

    The token is re-resolved on every `get_token` call so that rotating the
    variable or file takes effect on the next refresh. The value may be
    scope-agnostic since it was issued out of band.

    Resolution order: `token`, `env_var_name`, `token_file`, then the file
    named by `token_file_env_var`.

    Args:
        token: Explicit token (highest priority)
        env_var_name: Environment variable holding the token
        token_file: File holding the token
        token_file_env_var: Environment variable holding the token file path
        expires_on: Known expiry; defaults to one hour from each resolution
        resolver: Resolver to use; a default one loads .env
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        env_var_name: str | None = "ARM_ACCESS_TOKEN",
        token_file: str | Path | None = None,
        token_file_env_var: str | None = "ARM_ACCESS_TOKEN_FILE",
        expires_on: float | None = None,
        resolver: CredentialResolver | None = None,
    ) -> None:
        self._token = token
        self._env_var_name = env_var_name
        self._token_file = token_file
        self._token_file_env_var = token_file_env_var
        self._expires_on = expires_on
        self._resolver = resolver or CredentialResolver()

    async def get_token(self, *scopes: str) -> AccessToken:
        value = self._resolver.resolve(value=self._token, env_var_name=self._env_var_name)
        if value is None and (self._token_file is not None or self._token_file_env_var):
            # Read off the event loop thread
            value = await asyncio.to_thread(
                self._resolver.resolve_from_file,
                file_path=self._token_file,
                env_var_name=self._token_file_env_var,
            )
        if not value:
            raise CredentialNotFoundError(
                f"No access token available for scopes {list(scopes)}",
                env_var_name=self._env_var_name,
            )

        expires_on = self._expires_on if self._expires_on is not None else time.time() + DEFAULT_TOKEN_LIFETIME
        if expires_on <= time.time():
            raise TokenExpiredError("Configured access token has expired")
        return AccessToken(value, expires_on)
