"""Lazy cursor over paginated list endpoints.

ARM list operations return ``{"value": [...], "nextLink": "https://..."}``.
The next link is an absolute URL that is requested verbatim.

Example:
    ```python
    pager = client.list_pages(spec)
    while pager.more():
        page = await pager.next_page()
        for item in page.items:
            ...

    # or
    async for item in client.list_pages(spec).items():
        ...
    ```
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import httpx

from arm_client_core.context import CallContext
from arm_client_core.errors.exceptions import PagerExhaustedError

PageT = TypeVar("PageT")
ItemT = TypeVar("ItemT")


@dataclass
class ListPage(Generic[ItemT]):
    """One page of a list operation."""

    items: list[ItemT] = field(default_factory=list)
    next_link: str | None = None
    response: httpx.Response | None = field(default=None, repr=False)


class Pager(Generic[PageT]):
    """Fetch pages on demand.

    The first `next_page` always issues the initial request. Afterwards
    `more()` is true only if the last page carried a non-empty next link.
    Once the final page is returned, `next_page` raises
    `PagerExhaustedError` without any I/O.

    Not safe for concurrent use; one owner at a time.

    Args:
        fetch_first: Fetches the first page
        fetch_next: Fetches the page following the given one
        next_link: Extracts the next link from a page
    """

    def __init__(
        self,
        fetch_first: Callable[[CallContext], Awaitable[PageT]],
        fetch_next: Callable[[CallContext, PageT], Awaitable[PageT]],
        next_link: Callable[[PageT], str | None],
    ) -> None:
        self._fetch_first = fetch_first
        self._fetch_next = fetch_next
        self._next_link = next_link
        self._current: PageT | None = None
        self._started = False
        self._done = False

    def more(self) -> bool:
        return not self._done

    async def next_page(self, context: CallContext | None = None) -> PageT:
        """Fetch the next page and advance the cursor.

        Raises:
            PagerExhaustedError: The final page was already returned
        """
        if self._done:
            raise PagerExhaustedError("No more pages")

        context = context or CallContext()
        if not self._started:
            page = await self._fetch_first(context)
            self._started = True
        else:
            page = await self._fetch_next(context, self._current)

        self._current = page
        if not self._next_link(page):
            self._done = True
        return page

    def __aiter__(self) -> AsyncIterator[PageT]:
        return self.pages()

    async def pages(self, context: CallContext | None = None) -> AsyncIterator[PageT]:
        """Iterate the remaining pages; `context` is shared by every fetch."""
        while self.more():
            yield await self.next_page(context)

    async def items(
        self,
        extract: Callable[[PageT], Iterable[Any]] | None = None,
        context: CallContext | None = None,
    ) -> AsyncIterator[Any]:
        """Iterate items across the remaining pages.

        Args:
            extract: Items of a page; defaults to ``page.items``
            context: Shared by every page fetch
        """
        extract = extract or (lambda page: page.items)
        while self.more():
            page = await self.next_page(context)
            for item in extract(page):
                yield item
