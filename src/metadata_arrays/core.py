"""``MetadataArray``: an array-like container carrying an immutable bundle of named metadata.

The wrapper owns a parent container (``numpy.ndarray``, ``torch.Tensor``, ``list``, ``tuple``, ``range`` or any other
container registered with :mod:`metadata_arrays.traits`) and a :class:`~metadata_arrays.metadata.MetadataStore`.
Structural queries forward to the parent unchanged. Indexing a single element returns the bare element, any other
indexing re-wraps the result with the same store. Elementwise operations (numpy ufuncs, python operators, torch
functions) are resolved by :mod:`metadata_arrays.broadcast` and return bare results.

.. code-block:: python

    >>> v = ["John", "John", "Jane", "Louise"]
    >>> mdv = MetadataArray(v, groups={"John": "Treatment", "Louise": "Placebo", "Jane": "Placebo"})
    >>> metadata(mdv, "groups")["John"]
    'Treatment'
    >>> mdv[0]
    'John'
    >>> mdv[0:2].parent
    ['John', 'John']
"""
from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

import numpy as np
import torch
from numpy.lib.mixins import NDArrayOperatorsMixin

from metadata_arrays import traits
from metadata_arrays.config import get_config
from metadata_arrays.metadata import MetadataStore
from metadata_arrays.protocol import is_array_container
from metadata_arrays.utils import (
    MetadataUnsupportedError, MissingMetadataKeyError, IncompatibleConversionError, rank_zero_debug, rank_zero_warn,
    rank_zero_deprecation, _resolve_torch_dtype, shadowed_key_msg, dropmeta_deprecation_msg, metadata_summary)


_MISSING = object()
# provenance tag returned by `metadata(..., style=True)`
DEFAULT_METADATA_STYLE = "default"


class MetadataArray(NDArrayOperatorsMixin):
    """Wrap ``parent`` with immutable ``metadata`` without copying or altering the parent.

    Args:
        parent: The container to wrap, it is owned (not copied) by the wrapper.
        metadata: A :class:`MetadataStore` (reused as-is), a mapping, a namedtuple, a dataclass instance or an iterable
            of ``(key, value)`` pairs. May be omitted in favour of keyword arguments.
        **kwargs: Metadata given as keyword arguments.

    Metadata values are read with :func:`metadata` or as attributes (``mdv.groups``). Keys that collide with wrapper
    attributes (``shape``, ``parent``, ...) or start with ``_`` are only reachable through :func:`metadata`.
    """

    __slots__ = ("_parent", "_metadata")

    _is_forwarding_wrapper = True

    def __init__(self, parent: Any, metadata: Any = None, /, **kwargs: Any):
        if not is_array_container(parent):
            raise TypeError(
                f"`MetadataArray` requires an array-like parent container, received {type(parent).__name__}"
            )
        store = MetadataStore.coerce(metadata, **kwargs)
        object.__setattr__(self, "_parent", parent)
        object.__setattr__(self, "_metadata", store)
        if get_config().warn_shadowed_keys:
            _warn_shadowed_keys(store)

    @classmethod
    def _from_parts(cls, parent: Any, store: MetadataStore) -> MetadataArray:
        # internal constructor used by derived wrappers, the store is shared as-is
        obj = cls.__new__(cls)
        object.__setattr__(obj, "_parent", parent)
        object.__setattr__(obj, "_metadata", store)
        return obj

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"`{type(self).__name__}` attributes and metadata are read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"`{type(self).__name__}` attributes and metadata are read-only")

    def __reduce__(self):
        return (type(self)._from_parts, (self._parent, self._metadata))

    ############################################################################
    # Ownership and type-level introspection
    ############################################################################

    @property
    def parent(self) -> Any:
        return self._parent

    @property
    def metadata_store(self) -> MetadataStore:
        return self._metadata

    @property
    def array_type(self) -> MetadataArrayType:
        return MetadataArrayType.of(self)

    @property
    def dtype(self) -> Any:
        return traits.element_type_of(self._parent)

    @property
    def ndim(self) -> int:
        return traits.ndim_of(self._parent)

    ############################################################################
    # Structural queries, forwarded unchanged
    ############################################################################

    @property
    def shape(self) -> Tuple[int, ...]:
        return traits.shape_of(self._parent)

    @property
    def size(self) -> int:
        return traits.size_of(self._parent)

    @property
    def strides(self) -> Tuple[int, ...]:
        return traits.strides_of(self._parent)

    @property
    def axes(self) -> Tuple[range, ...]:
        return tuple(range(n) for n in self.shape)

    def __len__(self) -> int:
        return len(self._parent)

    def __iter__(self):
        return iter(self._parent)

    def __contains__(self, value: Any) -> bool:
        return value in self._parent

    def first(self) -> Any:
        return traits.first_of(self._parent)

    def last(self) -> Any:
        return traits.last_of(self._parent)

    def step(self) -> Any:
        step = getattr(self._parent, "step", None)
        if step is None:
            raise TypeError(f"{type(self._parent).__name__} parent has no step")
        return step

    def firstindex(self) -> int:
        return 0

    def lastindex(self) -> int:
        return self.size - 1

    def isempty(self) -> bool:
        return self.size == 0

    def keys(self):
        """Enumerate the valid indices of the parent."""
        return traits.indices_of(self._parent)

    def data_ptr(self) -> int:
        return traits.data_ptr_of(self._parent)

    def data_ids(self) -> Tuple[int, ...]:
        """Identities of the parent's storage followed by the identity of the metadata store."""
        return traits.data_ids(self._parent) + traits.data_ids(self._metadata)

    def __array__(self, dtype: Any = None, copy: Optional[bool] = None) -> np.ndarray:
        if copy:
            return np.array(self._parent, dtype=dtype, copy=True)
        if copy is False:
            # raises `ValueError` when the parent cannot be viewed without a copy
            return np.asarray(self._parent, dtype=dtype, copy=False)
        return np.asarray(self._parent, dtype=dtype)

    ############################################################################
    # Indexing
    ############################################################################

    def __getitem__(self, key: Any) -> Any:
        key = _strip_key(key)
        if _is_element_index(key, self.ndim):
            return self._parent[key]
        result = self._parent[key]
        if traits.is_container_result(result):
            return type(self)._from_parts(result, self._metadata)
        return result

    def __setitem__(self, key: Any, value: Any) -> None:
        self._parent[_strip_key(key)] = drop_metadata(value)

    ############################################################################
    # Allocation-style derivation, the store is shared with the derived wrapper
    ############################################################################

    def similar(self, dtype: Any = None, shape: Optional[traits.ShapeLike] = None) -> MetadataArray:
        """A new wrapper over an uninitialized container allocated the way the parent allocates."""
        return type(self)._from_parts(traits.similar(self._parent, dtype, shape), self._metadata)

    def reshape(self, *shape: Any) -> MetadataArray:
        if len(shape) == 1 and not isinstance(shape[0], Integral):
            shape = shape[0]
        return type(self)._from_parts(traits.reshape(self._parent, traits.normalize_shape(shape)), self._metadata)

    def copy(self) -> MetadataArray:
        return type(self)._from_parts(traits.copy_container(self._parent), self._metadata)

    ############################################################################
    # Named metadata access
    ############################################################################

    def __getattr__(self, name: str) -> Any:
        # only reached when regular attribute lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        store = object.__getattribute__(self, "_metadata")
        try:
            return store[name]
        except KeyError:
            raise MissingMetadataKeyError(name, store.fields) from None

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self._metadata.fields))

    ############################################################################
    # Elementwise operations
    ############################################################################

    def __array_ufunc__(self, ufunc: np.ufunc, method: str, *inputs: Any, **kwargs: Any) -> Any:
        from metadata_arrays.broadcast import apply_ufunc_method, broadcast

        out = kwargs.pop("out", None)
        if method == "__call__" and out is None:
            return broadcast(ufunc, *inputs, **kwargs)
        return apply_ufunc_method(ufunc, method, inputs, out, kwargs)

    @classmethod
    def __torch_function__(cls, func: Callable, types: Tuple[type, ...], args: tuple = (),
                           kwargs: Optional[Dict[str, Any]] = None) -> Any:
        from metadata_arrays.broadcast import as_tensor_operands

        kwargs = kwargs or {}
        return func(*as_tensor_operands(args), **_strip_tree(kwargs))

    def __repr__(self) -> str:
        summary = metadata_summary(self._metadata, max_keys=get_config().repr_max_keys)
        return f"{type(self).__name__}({self._parent!r}, {summary})"


_WRAPPER_ATTRIBUTES = frozenset(dir(MetadataArray))


def _warn_shadowed_keys(store: MetadataStore) -> None:
    shadowed = [k for k in store.fields if k in _WRAPPER_ATTRIBUTES or k.startswith("_")]
    if shadowed:
        rank_zero_warn(shadowed_key_msg.format(keys=shadowed))


def _is_int(key: Any) -> bool:
    return isinstance(key, Integral) and not isinstance(key, bool)


def _is_element_index(key: Any, ndim: int) -> bool:
    """Whether ``key`` addresses a single element, i.e. it is exactly ``ndim`` integer indices."""
    if isinstance(key, tuple):
        return len(key) == ndim and all(_is_int(k) for k in key)
    return ndim == 1 and _is_int(key)


def _strip_key(key: Any) -> Any:
    if isinstance(key, tuple):
        return tuple(drop_metadata(k) for k in key)
    return drop_metadata(key)


def _strip_tree(obj: Any) -> Any:
    if isinstance(obj, MetadataArray):
        return obj.parent
    if isinstance(obj, (list, tuple)) and not hasattr(obj, "_fields"):
        return type(obj)(_strip_tree(o) for o in obj)
    if isinstance(obj, dict):
        return {k: _strip_tree(v) for k, v in obj.items()}
    return obj


################################################################################
# Type-level description and generic conversion
################################################################################

@dataclass(frozen=True)
class MetadataArrayType:
    """The type parameters of a ``MetadataArray``: parent container type, metadata type, element type and ndim.

    ``None`` leaves a parameter unconstrained. Instances act as typed constructors and support ``isinstance``:

    .. code-block:: python

        >>> vec = MetadataArrayType(ndim=1)
        >>> isinstance(vec([1, 2, 3], units="m"), vec)
        True
    """

    parent_type: Optional[type] = None
    metadata_type: type = MetadataStore
    dtype: Any = None
    ndim: Optional[int] = None

    def __post_init__(self):
        if not (isinstance(self.metadata_type, type) and issubclass(self.metadata_type, MetadataStore)):
            raise TypeError(f"`metadata_type` must be a `MetadataStore` subclass, received {self.metadata_type!r}")
        if self.parent_type is not None and not isinstance(self.parent_type, type):
            raise TypeError(f"`parent_type` must be a type, received {self.parent_type!r}")

    @classmethod
    def of(cls, mda: MetadataArray) -> MetadataArrayType:
        return cls(parent_type=type(mda.parent), metadata_type=type(mda.metadata_store), dtype=mda.dtype,
                   ndim=mda.ndim)

    def matches(self, obj: Any) -> bool:
        if not isinstance(obj, MetadataArray):
            return False
        if self.parent_type is not None and not isinstance(obj.parent, self.parent_type):
            return False
        if not isinstance(obj.metadata_store, self.metadata_type):
            return False
        if self.ndim is not None and obj.ndim != self.ndim:
            return False
        return self.dtype is None or _dtype_equal(obj.dtype, self.dtype)

    def __instancecheck__(self, instance: Any) -> bool:
        return self.matches(instance)

    def __call__(self, parent: Any, metadata: Any = None, /, **kwargs: Any) -> MetadataArray:
        return convert(self, MetadataArray(parent, metadata, **kwargs))


MetadataVector = MetadataArrayType(ndim=1)
MetadataMatrix = MetadataArrayType(ndim=2)


def _dtype_equal(actual: Any, expected: Any) -> bool:
    if isinstance(actual, torch.dtype):
        return actual == _resolve_torch_dtype(expected)
    if isinstance(actual, np.dtype):
        try:
            return actual == np.dtype(expected)
        except TypeError:
            return False
    return actual == expected


_CONTAINER_CONVERTERS: Dict[type, Callable[[Any, Any], Any]] = {}


def register_container_converter(container_type: type, fn: Optional[Callable[[Any, Any], Any]] = None):
    """Register ``fn(container, dtype) -> container_type`` as the converter used by :func:`convert`.

    Usable as a decorator: ``@register_container_converter(MyContainer)``.
    """
    if fn is None:
        def decorator(f: Callable[[Any, Any], Any]) -> Callable[[Any, Any], Any]:
            _CONTAINER_CONVERTERS[container_type] = f
            return f
        return decorator
    _CONTAINER_CONVERTERS[container_type] = fn
    return fn


@register_container_converter(np.ndarray)
def _to_ndarray(container: Any, dtype: Any) -> np.ndarray:
    if isinstance(container, torch.Tensor):
        container = container.detach().cpu().numpy()
    return np.asarray(container, dtype=dtype)


@register_container_converter(torch.Tensor)
def _to_tensor(container: Any, dtype: Any) -> torch.Tensor:
    torch_dtype = None
    if dtype is not None and (torch_dtype := _resolve_torch_dtype(dtype)) is None:
        raise TypeError(f"{dtype!r} is not a torch dtype")
    if isinstance(container, (list, tuple, range)):
        container = np.asarray(container)
    return torch.as_tensor(container, dtype=torch_dtype)


@register_container_converter(list)
def _to_list(container: Any, dtype: Any) -> list:
    items = container.tolist() if hasattr(container, "tolist") else list(container)
    if dtype is not None:
        items = [dtype(item) for item in items]
    return items


@register_container_converter(tuple)
def _to_tuple(container: Any, dtype: Any) -> tuple:
    return tuple(_to_list(container, dtype))


def _lookup_converter(container_type: type) -> Callable[[Any, Any], Any]:
    for klass in container_type.__mro__:
        if klass in _CONTAINER_CONVERTERS:
            return _CONTAINER_CONVERTERS[klass]
    raise IncompatibleConversionError(f"No container converter registered for {container_type.__name__}")


def _convert_parent(target: MetadataArrayType, mda: MetadataArray) -> Any:
    parent = mda.parent
    if (target.parent_type is None or isinstance(parent, target.parent_type)) and (
            target.dtype is None or _dtype_equal(mda.dtype, target.dtype)):
        return parent
    container_type = target.parent_type or type(parent)
    converter = _lookup_converter(container_type)
    try:
        return converter(parent, target.dtype)
    except (TypeError, ValueError, RuntimeError, OverflowError) as e:
        raise IncompatibleConversionError(
            f"Cannot convert a {type(parent).__name__} parent to {container_type.__name__}"
            f"{'' if target.dtype is None else f' with dtype {target.dtype}'}: {e}"
        ) from e


def convert(target: Any, mda: Any) -> MetadataArray:
    """Convert ``mda`` to the wrapper type described by ``target``.

    ``mda`` itself is returned when it already matches ``target``. Otherwise the parent is converted with the container
    converter registered for ``target.parent_type`` and the metadata with ``target.metadata_type``, one generic path for
    every (container type, metadata type) pair.

    Args:
        target: A :class:`MetadataArrayType`, or ``MetadataArray`` (or a subclass) meaning any wrapper of that class.
        mda: The wrapper to convert.

    Raises:
        IncompatibleConversionError: If the parent or metadata cannot be represented by the target.
    """
    if isinstance(target, type) and issubclass(target, MetadataArray):
        if isinstance(mda, target):
            return mda
        raise IncompatibleConversionError(f"Cannot convert {type(mda).__name__} to {target.__name__}")
    if not isinstance(target, MetadataArrayType):
        raise IncompatibleConversionError(f"Conversion target must be a `MetadataArrayType`, received {target!r}")
    if not isinstance(mda, MetadataArray):
        raise IncompatibleConversionError(
            f"Only `MetadataArray` values can be converted, received {type(mda).__name__}"
        )
    if target.matches(mda):
        return mda
    parent = _convert_parent(target, mda)
    try:
        store = target.metadata_type.coerce(mda.metadata_store)
    except (TypeError, ValueError, KeyError) as e:
        raise IncompatibleConversionError(f"Cannot convert metadata to {target.metadata_type.__name__}: {e}") from e
    if target.ndim is not None and traits.ndim_of(parent) != target.ndim:
        raise IncompatibleConversionError(
            f"Cannot convert a {traits.ndim_of(parent)}-dimensional parent to a {target.ndim}-dimensional wrapper"
        )
    rank_zero_debug(f"Converted {type(mda.parent).__name__} `MetadataArray` to {target}")
    return MetadataArray._from_parts(parent, store)


################################################################################
# Functional metadata interface
################################################################################

class MetadataSupport(NamedTuple):
    read: bool
    write: bool


def _with_style(value: Any, style: bool) -> Any:
    return (value, DEFAULT_METADATA_STYLE) if style else value


def metadata(obj: Any, key: Any = _MISSING, default: Any = _MISSING, *, style: bool = False) -> Any:
    """Read the metadata value stored under ``key``.

    Args:
        obj: The object to read metadata from.
        key: The metadata key, if omitted the whole :class:`MetadataStore` is returned.
        default: Returned (instead of raising) when ``key`` is absent or ``obj`` carries no metadata.
        style: Return a ``(value, "default")`` pair tagging the provenance of the value.

    Raises:
        MissingMetadataKeyError: If ``key`` is absent and no ``default`` was given.
        MetadataUnsupportedError: If ``obj`` carries no metadata and no ``default`` was given.
    """
    if not isinstance(obj, MetadataArray):
        if default is not _MISSING:
            return _with_style(default, style)
        raise MetadataUnsupportedError(f"Objects of type {type(obj).__name__} do not support metadata")
    store = obj.metadata_store
    if key is _MISSING:
        return store
    if default is _MISSING:
        try:
            value = store[key]
        except KeyError:
            raise MissingMetadataKeyError(key, store.fields) from None
    else:
        value = store.get(key, default)
    return _with_style(value, style)


def metadata_keys(obj: Any) -> Tuple[str, ...]:
    if isinstance(obj, MetadataArray):
        return obj.metadata_store.fields
    return ()


def has_metadata(obj: Any, key: Any) -> bool:
    return isinstance(obj, MetadataArray) and key in obj.metadata_store


def metadata_support(obj: Any) -> MetadataSupport:
    """The metadata operations supported by ``obj`` (an instance, a class or a ``MetadataArrayType``)."""
    if isinstance(obj, MetadataArrayType) or isinstance(obj, MetadataArray) or (
            isinstance(obj, type) and issubclass(obj, MetadataArray)):
        return MetadataSupport(read=True, write=False)
    return MetadataSupport(read=False, write=False)


def drop_metadata(obj: Any) -> Any:
    """The parent of a ``MetadataArray``, any other value is returned unchanged."""
    if isinstance(obj, MetadataArray):
        return obj.parent
    return obj


def dropmeta(obj: Any) -> Any:
    rank_zero_deprecation(dropmeta_deprecation_msg)
    return drop_metadata(obj)


def parent(obj: Any) -> Any:
    """The exact container owned by a ``MetadataArray``, the identity for other values."""
    return drop_metadata(obj)


unwrap = parent


################################################################################
# Type-level traits
################################################################################

def _container_type(obj: Any) -> type:
    if isinstance(obj, MetadataArray):
        return type(obj.parent)
    if isinstance(obj, MetadataArrayType):
        if obj.parent_type is None:
            raise TypeError("The parent type of an unconstrained `MetadataArrayType` is unknown")
        return obj.parent_type
    return obj if isinstance(obj, type) else type(obj)


def parent_type(obj: Any) -> type:
    return _container_type(obj)


def element_type(obj: Any) -> Any:
    if isinstance(obj, MetadataArrayType):
        return obj.dtype
    return traits.element_type_of(drop_metadata(obj))


def is_forwarding_wrapper(obj: Any) -> bool:
    if isinstance(obj, MetadataArrayType):
        return True
    klass = obj if isinstance(obj, type) else type(obj)
    return bool(getattr(klass, "_is_forwarding_wrapper", False))


def can_setindex(obj: Any) -> bool:
    return traits.can_setindex(_container_type(obj))


def can_change_size(obj: Any) -> bool:
    return traits.can_change_size(_container_type(obj))


def similar(obj: Any, dtype: Any = None, shape: Optional[traits.ShapeLike] = None) -> Any:
    if isinstance(obj, MetadataArray):
        return obj.similar(dtype, shape)
    return traits.similar(obj, dtype, shape)


@traits.data_ids.register
def _(obj: MetadataArray) -> Tuple[int, ...]:
    return obj.data_ids()


data_ids = traits.data_ids
might_alias = traits.might_alias
