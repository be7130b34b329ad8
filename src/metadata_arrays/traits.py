"""Container traits: the per-container-type operations a ``MetadataArray`` forwards to.

Each trait is a ``functools.singledispatch`` function so third-party containers can be supported by registering an
implementation, e.g. ``shape_of.register(MyContainer)(lambda c: c.dims)``.

``numpy.ndarray`` and ``torch.Tensor`` are handled natively; python ``list``, ``tuple`` and ``range`` are treated as
one-dimensional sequences (nested lists are elements, not extra dimensions).
"""
from __future__ import annotations

import copy as _copy
import math
from collections.abc import MutableSequence, Sequence
from functools import singledispatch
from typing import Any, Iterable, Optional, Tuple, Union

import numpy as np
import torch

from metadata_arrays.utils import _TORCH_GREATER_EQUAL_2_0, _resolve_torch_dtype

Shape = Tuple[int, ...]
ShapeLike = Union[int, Iterable[int]]


def normalize_shape(shape: ShapeLike) -> Shape:
    if isinstance(shape, (int, np.integer)):
        return (int(shape),)
    return tuple(int(s) for s in shape)


################################################################################
# Shape and element type
################################################################################

@singledispatch
def shape_of(container: Any) -> Shape:
    shape = getattr(container, "shape", None)
    if shape is not None:
        return tuple(shape)
    return (len(container),)


def ndim_of(container: Any) -> int:
    return len(shape_of(container))


def size_of(container: Any) -> int:
    return math.prod(shape_of(container))


@singledispatch
def element_type_of(container: Any) -> Any:
    dtype = getattr(container, "dtype", None)
    if dtype is not None:
        return dtype
    return _common_type(container)


@element_type_of.register
def _(container: range) -> Any:
    return int


def _common_type(items: Iterable[Any]) -> type:
    types = {type(item) for item in items}
    if len(types) == 1:
        return types.pop()
    if types and types <= {int, float}:
        return float
    return object


@singledispatch
def strides_of(container: Any) -> Shape:
    """Element (not byte) strides of ``container``."""
    if isinstance(container, Sequence):
        return (1,)
    raise TypeError(f"{type(container).__name__} does not expose strides")


@strides_of.register
def _(container: np.ndarray) -> Shape:
    return tuple(s // container.itemsize for s in container.strides)


@strides_of.register
def _(container: torch.Tensor) -> Shape:
    return tuple(container.stride())


################################################################################
# Linear element access
################################################################################

@singledispatch
def first_of(container: Any) -> Any:
    return container[0]


@first_of.register
def _(container: np.ndarray) -> Any:
    return container.flat[0]


@first_of.register
def _(container: torch.Tensor) -> Any:
    return container.reshape(-1)[0]


@singledispatch
def last_of(container: Any) -> Any:
    return container[-1]


@last_of.register
def _(container: np.ndarray) -> Any:
    return container.flat[-1]


@last_of.register
def _(container: torch.Tensor) -> Any:
    return container.reshape(-1)[-1]


def indices_of(container: Any) -> Iterable[Any]:
    """Enumerate the valid indices of ``container``, integers for 1-dim containers and index tuples otherwise."""
    shape = shape_of(container)
    if len(shape) == 1:
        return range(shape[0])
    return np.ndindex(*shape)


@singledispatch
def data_ptr_of(container: Any) -> int:
    raise TypeError(f"{type(container).__name__} does not expose a storage pointer")


@data_ptr_of.register
def _(container: np.ndarray) -> int:
    return container.__array_interface__["data"][0]


@data_ptr_of.register
def _(container: torch.Tensor) -> int:
    return container.data_ptr()


################################################################################
# Storage identity
################################################################################

@singledispatch
def data_ids(obj: Any) -> Tuple[int, ...]:
    """Identities of the memory ``obj`` logically touches, used to detect aliasing between values."""
    return (id(obj),)


@data_ids.register
def _(obj: np.ndarray) -> Tuple[int, ...]:
    # views share the identity of the object owning the buffer
    root = obj
    while isinstance(root, np.ndarray) and root.base is not None:
        root = root.base
    return (id(root),)


@data_ids.register
def _(obj: torch.Tensor) -> Tuple[int, ...]:
    if _TORCH_GREATER_EQUAL_2_0:
        return (obj.untyped_storage().data_ptr(),)
    return (obj.storage().data_ptr(),)


def might_alias(a: Any, b: Any) -> bool:
    """Whether ``a`` and ``b`` may share memory, scalars never alias."""
    if _is_scalar(a) or _is_scalar(b):
        return False
    return not set(data_ids(a)).isdisjoint(data_ids(b))


def _is_scalar(obj: Any) -> bool:
    return isinstance(obj, (int, float, complex, bool, str, bytes, np.generic)) or obj is None


################################################################################
# Capabilities, queried on container types
################################################################################

def can_setindex(container_type: type) -> bool:
    """Whether instances of ``container_type`` support indexed assignment."""
    if container_type in (tuple, range, str, bytes):
        return False
    if issubclass(container_type, (np.ndarray, torch.Tensor, MutableSequence)):
        return True
    return hasattr(container_type, "__setitem__")


def can_change_size(container_type: type) -> bool:
    """Whether instances of ``container_type`` can grow or shrink in place."""
    return issubclass(container_type, MutableSequence)


################################################################################
# Allocation, reshaping and copying
################################################################################

@singledispatch
def similar(container: Any, dtype: Any = None, shape: Optional[ShapeLike] = None) -> Any:
    """Allocate an uninitialized container like ``container``, optionally with another ``dtype`` and ``shape``.

    Python sequences allocate a list of ``None`` (immutable sequences cannot be filled later, so they allocate lists
    too). Multi-dimensional shapes requested from a sequence allocate a numpy array.
    """
    shape = normalize_shape(shape) if shape is not None else shape_of(container)
    if len(shape) == 1:
        return [None] * shape[0]
    return np.empty(shape, dtype=dtype if dtype is not None else object)


@similar.register
def _(container: np.ndarray, dtype: Any = None, shape: Optional[ShapeLike] = None) -> np.ndarray:
    shape = normalize_shape(shape) if shape is not None else None
    return np.empty_like(container, dtype=dtype, shape=shape)


@similar.register
def _(container: torch.Tensor, dtype: Any = None, shape: Optional[ShapeLike] = None) -> torch.Tensor:
    shape = normalize_shape(shape) if shape is not None else tuple(container.shape)
    if dtype is None:
        dtype = container.dtype
    elif (resolved := _resolve_torch_dtype(dtype)) is None:
        raise TypeError(f"Cannot allocate a torch tensor with dtype {dtype!r}")
    else:
        dtype = resolved
    return torch.empty(shape, dtype=dtype, device=container.device)


@singledispatch
def reshape(container: Any, shape: Shape) -> Any:
    if shape == (len(container),):
        return container
    return np.reshape(np.asarray(container), shape)


@reshape.register
def _(container: np.ndarray, shape: Shape) -> np.ndarray:
    return container.reshape(shape)


@reshape.register
def _(container: torch.Tensor, shape: Shape) -> torch.Tensor:
    return container.reshape(shape)


@singledispatch
def copy_container(container: Any) -> Any:
    return _copy.copy(container)


@copy_container.register
def _(container: np.ndarray) -> np.ndarray:
    return container.copy()


@copy_container.register
def _(container: torch.Tensor) -> torch.Tensor:
    return container.clone()


def is_container_result(obj: Any) -> bool:
    """Whether an indexing result is itself a container (and so is re-wrapped) rather than a scalar element."""
    return isinstance(obj, (np.ndarray, torch.Tensor, list, tuple, range))

