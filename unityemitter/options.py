"""Emitter options: limits and rejection capture."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from unityemitter.errors import EmitterTypeError

DEFAULT_STORE = 5
DEFAULT_STORAGE = 11


@dataclass(slots=True)
class LimitOptions:
    """Soft limits for listener storage.

    ``store`` caps how many listeners share one bucket before a new bucket is
    opened; ``storage`` is the number of distinct event names tolerated before
    the leak advisory is logged. ``ignore`` turns both off.
    """

    ignore: bool = False
    store: Union[int, float] = DEFAULT_STORE
    storage: Union[int, float] = DEFAULT_STORAGE

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "LimitOptions":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise EmitterTypeError("options.limits", "object")
        payload = {key: data[key] for key in ("ignore", "store", "storage") if data.get(key) is not None}
        return cls(**payload)


@dataclass(slots=True)
class EmitterOptions:
    """Top level emitter configuration."""

    rejections: bool = False
    limits: LimitOptions = field(default_factory=LimitOptions)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EmitterOptions":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise EmitterTypeError("options", "object")
        rejections = data.get("rejections")
        limits = data.get("limits")
        if limits is not None and not isinstance(limits, (Mapping, LimitOptions)):
            raise EmitterTypeError("options.limits", "object")
        if not isinstance(limits, LimitOptions):
            limits = LimitOptions.from_dict(limits)
        return cls(rejections=False if rejections is None else rejections, limits=limits)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_options(options: Union[EmitterOptions, Mapping[str, Any], None] = None) -> EmitterOptions:
    """Fill missing fields from defaults and type-check every option.

    Raises :class:`EmitterTypeError` naming the first offending field.
    """

    if isinstance(options, EmitterOptions):
        normalized = options
        if normalized.limits is None:
            normalized.limits = LimitOptions()
        elif isinstance(normalized.limits, Mapping):
            normalized.limits = LimitOptions.from_dict(normalized.limits)
    elif options is None or isinstance(options, Mapping):
        normalized = EmitterOptions.from_dict(options)
    else:
        raise EmitterTypeError("options", "object")

    if normalized.rejections is None:
        normalized.rejections = False
    if not isinstance(normalized.rejections, bool):
        raise EmitterTypeError("options.rejections", "boolean")
    if not isinstance(normalized.limits, LimitOptions):
        raise EmitterTypeError("options.limits", "object")

    limits = normalized.limits
    if limits.ignore is None:
        limits.ignore = False
    if limits.store is None:
        limits.store = DEFAULT_STORE
    if limits.storage is None:
        limits.storage = DEFAULT_STORAGE
    if not isinstance(limits.ignore, bool):
        raise EmitterTypeError("options.limits.ignore", "boolean")
    if not _is_number(limits.storage):
        raise EmitterTypeError("options.limits.storage", "number")
    if not _is_number(limits.store):
        raise EmitterTypeError("options.limits.store", "number")
    return normalized


__all__ = ["DEFAULT_STORE", "DEFAULT_STORAGE", "LimitOptions", "EmitterOptions", "check_options"]
