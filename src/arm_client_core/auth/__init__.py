"""Authentication components.

- `TokenCredential` protocol and simple token sources
- `BearerTokenPolicy` with per-scope caching and singleflight refresh
- `CredentialResolver` for value → env → .env resolution

Example:
    ```python
    from arm_client_core.auth import BearerTokenPolicy, StaticTokenCredential

    policy = BearerTokenPolicy(
        StaticTokenCredential("eyJ0..."),
        scopes=["https://management.azure.com/.default"],
    )
    ```
"""

from arm_client_core.auth.credentials import (
    AccessToken,
    CredentialResolver,
    EnvironmentTokenCredential,
    StaticTokenCredential,
    TokenCredential,
)
from arm_client_core.auth.exceptions import (
    CredentialError,
    CredentialFileError,
    CredentialNotFoundError,
    TokenExpiredError,
)
from arm_client_core.auth.policy import BearerTokenPolicy

__all__ = [
    "AccessToken",
    "BearerTokenPolicy",
    "CredentialError",
    "CredentialFileError",
    "CredentialNotFoundError",
    "CredentialResolver",
    "EnvironmentTokenCredential",
    "StaticTokenCredential",
    "TokenCredential",
    "TokenExpiredError",
]
