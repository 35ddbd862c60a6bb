"""Local publish/subscribe emitter with capped listener buckets."""

from .config_loader import load_options
from .errors import EmitterTypeError
from .listeners import Bucket, Listener
from .options import EmitterOptions, LimitOptions, check_options
from .registry import EventRegistry, UnityEmitter
from .rejections import LoggingRejectionObserver, RejectionObserver, watch_loop

__all__ = [
    "EventRegistry",
    "UnityEmitter",
    "EmitterOptions",
    "LimitOptions",
    "check_options",
    "load_options",
    "EmitterTypeError",
    "Bucket",
    "Listener",
    "LoggingRejectionObserver",
    "RejectionObserver",
    "watch_loop",
]
