"""Bearer token authentication policy."""

import asyncio
import logging
import time
from collections.abc import Sequence

import httpx

from arm_client_core.auth.credentials import AccessToken, TokenCredential
from arm_client_core.context import CallContext
from arm_client_core.errors.exceptions import AuthenticationError, InsecureTransportError
from arm_client_core.pipeline.base import NextPolicy, PipelineRequest, Policy

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_WINDOW = 300


class BearerTokenPolicy(Policy):
    """Attach ``Authorization: Bearer <token>`` to every request.

    Tokens are cached per scope and refreshed synchronously when absent or
    expiring within `refresh_window` seconds. At most one refresh per scope is
    in flight; concurrent callers await the same result. Refresh failures
    raise `AuthenticationError`, which the retry policy treats as terminal.

    A 401 response evicts the cached token so the next call acquires a new
    one; the 401 itself is returned to the caller.

    Args:
        credential: Token source
        scopes: Default scopes; a request may override them via
            ``request.data["scopes"]``
        refresh_window: Seconds before expiry at which a token is refreshed
        allow_http: Send tokens over plain http (local emulators only)
    """

    def __init__(
        self,
        credential: TokenCredential,
        scopes: Sequence[str],
        *,
        refresh_window: float = DEFAULT_REFRESH_WINDOW,
        allow_http: bool = False,
    ) -> None:
        self._credential = credential
        self._scopes = tuple(scopes)
        self._refresh_window = refresh_window
        self._allow_http = allow_http
        self._tokens: dict[str, AccessToken] = {}
        self._refreshing: dict[str, asyncio.Future[AccessToken]] = {}
        self._lock = asyncio.Lock()

    async def send(self, request: PipelineRequest, next: NextPolicy) -> httpx.Response:
        http_request = request.http_request
        if http_request.url.scheme != "https" and not self._allow_http:
            raise InsecureTransportError(f"Bearer token authentication requires https: {http_request.url}")

        scopes = tuple(request.data.get("scopes") or self._scopes)
        key = " ".join(scopes)
        token = await self._get_token(key, scopes, request.context)
        http_request.headers["Authorization"] = f"Bearer {token.token}"

        response = await next(request)

        if response.status_code == 401:
            async with self._lock:
                if self._tokens.get(key) is token:
                    del self._tokens[key]
            logger.debug(f"Received 401 for scope '{key}', evicted cached token")

        return response

    def _needs_refresh(self, token: AccessToken | None) -> bool:
        return token is None or token.expires_on - time.time() <= self._refresh_window

    async def _get_token(self, key: str, scopes: tuple[str, ...], context: CallContext) -> AccessToken:
        async with self._lock:
            token = self._tokens.get(key)
            if not self._needs_refresh(token):
                return token

            refresh = self._refreshing.get(key)
            if refresh is None:
                refresh = asyncio.ensure_future(self._refresh(key, scopes))
                refresh.add_done_callback(_consume_exception)
                self._refreshing[key] = refresh

        # Shielded so one caller's cancellation does not abort the shared refresh
        return await context.run(asyncio.shield(refresh))

    async def _refresh(self, key: str, scopes: tuple[str, ...]) -> AccessToken:
        logger.debug(f"Acquiring token for scope '{key}'")
        try:
            token = await self._credential.get_token(*scopes)
        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(f"Failed to acquire token for scope '{key}': {e}") from e
        finally:
            self._refreshing.pop(key, None)

        self._tokens[key] = token
        logger.debug(f"Acquired token for scope '{key}' expiring at {token.expires_on:.0f}: ***")
        return token


def _consume_exception(future: asyncio.Future) -> None:
    # Every waiter may have been cancelled; mark the failure as observed
    if not future.cancelled():
        future.exception()
