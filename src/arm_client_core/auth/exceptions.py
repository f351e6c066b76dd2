"""Credential exceptions.

All of them are `AuthenticationError`s, so the pipeline treats a credential
failure as terminal and never retries it.

Example:
    ```python
    from arm_client_core.auth.exceptions import CredentialNotFoundError

    if not token:
        raise CredentialNotFoundError("Access token not found", env_var_name="ARM_ACCESS_TOKEN")
    ```
"""

from arm_client_core.errors.exceptions import AuthenticationError


class CredentialError(AuthenticationError):
    """Base exception for credential-related errors."""

    pass


class CredentialNotFoundError(CredentialError):
    """A required credential could not be resolved from any source.

    Attributes:
        env_var_name: The environment variable that was checked (if any).
    """

    def __init__(self, message: str, env_var_name: str | None = None):
        super().__init__(message)
        self.env_var_name = env_var_name


class CredentialFileError(CredentialError):
    """A credential file could not be read."""

    pass


class TokenExpiredError(CredentialError):
    """A credential only holds a token that has already expired."""

    pass
