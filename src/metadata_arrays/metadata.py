from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Tuple


class MetadataStore(Mapping):
    """An ordered, fixed-key, immutable mapping from ``str`` keys to arbitrary metadata values.

    The key set is fixed when the store is built. Stores are never mutated in place, so one store can be referenced by
    any number of ``MetadataArray`` instances derived from one another. Use :meth:`replace` or ``|`` to build a new
    store with changed entries.

    Accepted inputs: another ``MetadataStore``, any ``Mapping``, a namedtuple, a dataclass instance, an iterable of
    ``(key, value)`` pairs and/or keyword arguments (keywords win on collision).
    """

    __slots__ = ("_data", "_fields")

    def __init__(self, data: Any = (), /, **kwargs: Any):
        items = dict(_canonical_items(data))
        items.update(kwargs)
        _check_keys(items)
        object.__setattr__(self, "_data", items)
        object.__setattr__(self, "_fields", tuple(items))

    @classmethod
    def coerce(cls, md: Any = None, /, **kwargs: Any) -> MetadataStore:
        """Canonicalize ``md`` (or ``kwargs``) into a store, reusing ``md`` when it already is one of ``cls``."""
        if md is not None and kwargs:
            raise TypeError("Metadata may be provided either positionally or as keyword arguments, not both.")
        if isinstance(md, cls):
            return md
        return cls(md if md is not None else (), **kwargs)

    @property
    def fields(self) -> Tuple[str, ...]:
        return self._fields

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def replace(self, **changes: Any) -> MetadataStore:
        """Return a new store with ``changes`` applied, new keys are appended in order."""
        return type(self)(self._data, **changes)

    def __or__(self, other: Any) -> MetadataStore:
        if not isinstance(other, Mapping):
            return NotImplemented
        return type(self)({**self._data, **dict(other)})

    def __ror__(self, other: Any) -> MetadataStore:
        if not isinstance(other, Mapping):
            return NotImplemented
        return type(self)({**dict(other), **self._data})

    def __reduce__(self):
        return (type(self), (self._data,))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._data.items())
        return f"{type(self).__name__}({inner})"


def _canonical_items(data: Any) -> Iterable[Tuple[Any, Any]]:
    if isinstance(data, MetadataStore):
        return data._data.items()
    if isinstance(data, Mapping):
        return data.items()
    if isinstance(data, tuple) and hasattr(data, "_asdict"):  # namedtuple
        return data._asdict().items()
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return ((f.name, getattr(data, f.name)) for f in dataclasses.fields(data))
    if isinstance(data, (str, bytes)) or not isinstance(data, Iterable):
        raise TypeError(f"Cannot build metadata from an object of type {type(data).__name__}")
    return _unique_pairs(data)


def _unique_pairs(pairs: Iterable[Any]) -> Iterator[Tuple[Any, Any]]:
    seen = set()
    for pair in pairs:
        try:
            key, value = pair
        except (TypeError, ValueError) as e:
            raise TypeError(f"Metadata entries must be (key, value) pairs, received {pair!r}") from e
        if key in seen:
            raise ValueError(f"Duplicate metadata key {key!r}")
        seen.add(key)
        yield key, value


def _check_keys(items: Mapping) -> None:
    bad = [k for k in items if not isinstance(k, str)]
    if bad:
        raise TypeError(f"Metadata keys must be strings, received {bad!r}")


__all__ = ["MetadataStore"]
