"""Base client and request descriptions for generated service clients.

Generated clients describe each operation as a `RequestSpec` and delegate
sending, error decoding, polling and paging to `BaseArmClient`.

Example:
    ```python
    class ElasticSansClient(BaseArmClient):
        async def get(self, resource_group: str, name: str) -> dict:
            return await self.request_json(
                RequestSpec(
                    "GET",
                    "/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}"
                    "/providers/Microsoft.ElasticSan/elasticSans/{elasticSanName}",
                    path_params={
                        "subscriptionId": self.subscription_id,
                        "resourceGroupName": resource_group,
                        "elasticSanName": name,
                    },
                    query={"api-version": "2021-11-20-preview"},
                ),
                expected_status=(200,),
            )
    ```
"""

import re
from collections.abc import AsyncIterable, Callable, Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from arm_client_core.auth.credentials import TokenCredential
from arm_client_core.config import ClientOptions
from arm_client_core.context import CallContext
from arm_client_core.errors.exceptions import DecodeError, MissingParameterError, UsageError
from arm_client_core.errors.handler import deserialize_json, raise_for_status
from arm_client_core.paging import ListPage, Pager
from arm_client_core.pipeline.base import Pipeline, PipelineRequest
from arm_client_core.pipeline.factory import create_pipeline
from arm_client_core.polling import FinalStateVia, LROPoller
from arm_client_core.transport import Transport

T = TypeVar("T")

LRO_STATUS_CODES = (200, 201, 202, 204)

_PATH_PARAM = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class RequestSpec:
    """Description of one REST call.

    Attributes:
        method: HTTP method
        template: Path template with ``{name}`` placeholders
        path_params: Values for the placeholders; each must be non-empty
        query: Query parameters, including ``api-version``
        headers: Extra request headers
        json: JSON-serializable body
        content: Raw body; async iterables are sent streamed (not retryable)
    """

    method: str
    template: str
    path_params: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str | Sequence[str]] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    json: Any = None
    content: bytes | AsyncIterable[bytes] | None = None

    def build_url(self, endpoint: str) -> str:
        """Join the endpoint and the expanded path template.

        Raises:
            MissingParameterError: A placeholder has no value or an empty one
        """

        def _substitute(match: re.Match) -> str:
            name = match.group(1)
            value = self.path_params.get(name)
            if value is None or str(value) == "":
                raise MissingParameterError(f"parameter {name} cannot be empty", parameter=name)
            return quote(str(value), safe="")

        path = _PATH_PARAM.sub(_substitute, self.template)
        return f"{endpoint.rstrip('/')}/{path.lstrip('/')}"

    def build_request(self, endpoint: str, context: CallContext | None = None) -> PipelineRequest:
        if self.json is not None and self.content is not None:
            raise UsageError("A request takes either a json body or raw content, not both")

        headers = {"Accept": "application/json", **self.headers}
        http_request = httpx.Request(
            self.method,
            self.build_url(endpoint),
            params=dict(self.query) or None,
            headers=headers,
            json=self.json,
            content=self.content,
        )
        return PipelineRequest(http_request, context=context or CallContext())


class BaseArmClient:
    """Shared behavior for service clients.

    Args:
        credential: Token source; None sends unauthenticated requests
        options: Cloud, pipeline and polling options
        transport: Terminal transport for the default pipeline
        pipeline: Prebuilt pipeline, used instead of building one
    """

    def __init__(
        self,
        credential: TokenCredential | None = None,
        *,
        options: ClientOptions | None = None,
        transport: Transport | None = None,
        pipeline: Pipeline | None = None,
    ) -> None:
        self._options = options or ClientOptions()
        self._endpoint = self._options.endpoint or self._options.cloud.resource_manager_endpoint
        self._pipeline = pipeline or create_pipeline(credential, options=self._options, transport=transport)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    async def send(
        self,
        spec: RequestSpec,
        *,
        expected_status: Collection[int] | None = None,
        context: CallContext | None = None,
    ) -> httpx.Response:
        """Send a request and raise the structured error on an unexpected status."""
        response = await self._pipeline.run(spec.build_request(self._endpoint, context))
        await raise_for_status(response, expected_status)
        return response

    async def request_json(
        self,
        spec: RequestSpec,
        *,
        deserializer: Callable[[Any], T] | None = None,
        expected_status: Collection[int] | None = None,
        context: CallContext | None = None,
    ) -> T | Any:
        """Send a request and decode the JSON response body."""
        response = await self.send(spec, expected_status=expected_status, context=context)
        return deserialize_json(response, deserializer)

    async def begin_operation(
        self,
        spec: RequestSpec,
        *,
        final_state_via: FinalStateVia | None = None,
        deserializer: Callable[[Any], T] | None = None,
        resume_token: str | None = None,
        expected_status: Collection[int] = LRO_STATUS_CODES,
        context: CallContext | None = None,
    ) -> LROPoller[T]:
        """Start a long-running operation, or resume one from a token.

        With `resume_token` no request is sent; polling continues where the
        token left off.
        """
        if resume_token:
            return LROPoller.from_resume_token(
                self._pipeline, resume_token, deserializer=deserializer, options=self._options.polling
            )

        response = await self.send(spec, expected_status=expected_status, context=context)
        return LROPoller.from_response(
            self._pipeline,
            response,
            final_state_via=final_state_via,
            deserializer=deserializer,
            options=self._options.polling,
        )

    def list_pages(
        self,
        spec: RequestSpec,
        *,
        next_link_name: str = "nextLink",
        items_name: str = "value",
        deserializer: Callable[[Any], T] | None = None,
    ) -> Pager[ListPage[T]]:
        """Pager over a list operation.

        The first page is requested from `spec`; later pages GET the next link
        verbatim.
        """

        async def fetch_first(context: CallContext) -> ListPage[T]:
            return await self._fetch_page(spec.build_request(self._endpoint, context), next_link_name, items_name, deserializer)

        async def fetch_next(context: CallContext, page: ListPage[T]) -> ListPage[T]:
            request = PipelineRequest(
                httpx.Request("GET", page.next_link, headers={"Accept": "application/json"}),
                context=context,
            )
            return await self._fetch_page(request, next_link_name, items_name, deserializer)

        return Pager(fetch_first, fetch_next, lambda page: page.next_link)

    async def _fetch_page(
        self,
        request: PipelineRequest,
        next_link_name: str,
        items_name: str,
        deserializer: Callable[[Any], T] | None,
    ) -> ListPage[T]:
        response = await self._pipeline.run(request)
        await raise_for_status(response, (200,))

        body = deserialize_json(response)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise DecodeError("List response body is not a JSON object", raw_body=response.content, response=response)

        items = body.get(items_name) or []
        if deserializer is not None:
            try:
                items = [deserializer(item) for item in items]
            except (KeyError, TypeError, ValueError) as e:
                raise DecodeError(f"Failed to deserialize list item: {e}", raw_body=response.content, response=response) from e

        return ListPage(items=items, next_link=body.get(next_link_name) or None, response=response)

    async def aclose(self) -> None:
        await self._pipeline.aclose()

    async def __aenter__(self) -> "BaseArmClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
