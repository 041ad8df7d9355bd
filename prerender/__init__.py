from .classifier import should_forward
from .crawler import is_crawler
from .errors import HookFailure, InvalidPatternError, PrerenderError, TransportFailure
from .events import (
    CallbackHooks,
    ExtensionEvent,
    ForwardOutcome,
    Forwarded,
    PassThrough,
    PrerenderHooks,
    ShortCircuited,
)
from .middleware import PrerenderMiddleware
from .options import PrerenderOptions
from .pipeline import PrerenderPipeline
from .request import IncomingRequest, StarletteIncomingRequest
from .uri_policy import has_ignored_extension, is_blacklisted, is_whitelisted

__all__ = [
    "should_forward",
    "is_crawler",
    "has_ignored_extension",
    "is_whitelisted",
    "is_blacklisted",
    "PrerenderOptions",
    "PrerenderPipeline",
    "PrerenderMiddleware",
    "PrerenderHooks",
    "CallbackHooks",
    "ExtensionEvent",
    "ForwardOutcome",
    "ShortCircuited",
    "Forwarded",
    "PassThrough",
    "IncomingRequest",
    "StarletteIncomingRequest",
    "PrerenderError",
    "InvalidPatternError",
    "TransportFailure",
    "HookFailure",
]
