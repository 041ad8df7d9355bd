from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

import httpx

from prerender.request import IncomingRequest

HookResult = Union[Optional[httpx.Response], Awaitable[Optional[httpx.Response]]]


class ExtensionEvent:
    """
    Payload handed to the pre-fetch and post-fetch hooks.

    ``outbound_request`` and ``response`` are only set for the post-fetch
    hook. A hook replaces the outcome by assigning ``event.response``,
    calling ``set_response`` or returning a response.
    """

    def __init__(
        self,
        request: IncomingRequest,
        outbound_request: Optional[httpx.Request] = None,
        response: Optional[httpx.Response] = None,
    ):
        self._request = request
        self.outbound_request = outbound_request
        self._original_response = response
        self._response = response

    @property
    def request(self) -> IncomingRequest:
        return self._request

    @property
    def response(self) -> Optional[httpx.Response]:
        return self._response

    @response.setter
    def response(self, response: Optional[httpx.Response]) -> None:
        self._response = response

    def set_response(self, response: httpx.Response) -> None:
        self.response = response

    @property
    def has_new_response(self) -> bool:
        return self._response is not None and self._response is not self._original_response

    def __repr__(self) -> str:
        return (
            f"ExtensionEvent(request={self._request!r}, "
            f"outbound_request={self.outbound_request!r}, response={self._response!r})"
        )


class PrerenderHooks:
    """
    Extension points around the fetch from the rendering service.

    Subclass and override either method; both may be plain or ``async``.
    A cache would return a stored response from ``on_pre_fetch`` and store
    ``event.response`` in ``on_post_fetch``.
    """

    def on_pre_fetch(self, event: ExtensionEvent) -> HookResult:
        return None

    def on_post_fetch(self, event: ExtensionEvent) -> HookResult:
        return None


class CallbackHooks(PrerenderHooks):
    """PrerenderHooks built from plain callables."""

    def __init__(
        self,
        pre: Optional[Callable[[ExtensionEvent], HookResult]] = None,
        post: Optional[Callable[[ExtensionEvent], HookResult]] = None,
    ):
        self._pre = pre
        self._post = post

    def on_pre_fetch(self, event: ExtensionEvent) -> HookResult:
        return self._pre(event) if self._pre else None

    def on_post_fetch(self, event: ExtensionEvent) -> HookResult:
        return self._post(event) if self._post else None


@dataclass(frozen=True)
class ShortCircuited:
    """The pre-fetch hook supplied the response; nothing was fetched."""

    response: httpx.Response
    tag: str = field(default="short_circuited", init=False)


@dataclass(frozen=True)
class Forwarded:
    """The response came from the rendering service (possibly replaced post-fetch)."""

    response: httpx.Response
    tag: str = field(default="forwarded", init=False)


@dataclass(frozen=True)
class PassThrough:
    """The request is not for the rendering service."""

    tag: str = field(default="pass_through", init=False)


ForwardOutcome = Union[ShortCircuited, Forwarded, PassThrough]
