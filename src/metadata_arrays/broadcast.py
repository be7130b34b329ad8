"""Style dispatch and execution engines for elementwise operations.

:func:`broadcast` resolves the combined style of its operands (see :mod:`metadata_arrays.styles`) and hands the
operation to the engine registered for that style with :func:`materialize`. When any operand is a ``MetadataArray``
the resolved style is tagged: the operands are stripped of metadata and the inner, untagged style executes.

Results never carry metadata, whichever operands were wrapped.
"""
from __future__ import annotations

from functools import singledispatch
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np
import torch

from metadata_arrays.config import get_config
from metadata_arrays.core import MetadataArray, _strip_tree, drop_metadata
from metadata_arrays.styles import (
    ArrayStyle, BroadcastStyle, DefaultArrayStyle, MetadataArrayStyle, TensorStyle, TupleStyle, Unknown,
    combine_styles, inner_style, result_style_of)
from metadata_arrays.utils import UndecidableStyleError, rank_zero_debug, vectorize_fallback_msg


################################################################################
# Operand styles
################################################################################

@singledispatch
def broadcast_style(obj: Any) -> BroadcastStyle:
    """The broadcast style of a single operand, scalars and unregistered objects are 0-dim dense operands.

    Register styles for additional container types with ``broadcast_style.register``.
    """
    return DefaultArrayStyle(0)


@broadcast_style.register
def _(obj: np.ndarray) -> BroadcastStyle:
    return DefaultArrayStyle(obj.ndim)


@broadcast_style.register
def _(obj: np.ma.MaskedArray) -> BroadcastStyle:
    return ArrayStyle(obj.ndim, kind=np.ma.MaskedArray)


@broadcast_style.register
def _(obj: torch.Tensor) -> BroadcastStyle:
    return TensorStyle(obj.ndim, device=str(obj.device))


@broadcast_style.register(list)
@broadcast_style.register(range)
def _(obj: Any) -> BroadcastStyle:
    return DefaultArrayStyle(1)


@broadcast_style.register
def _(obj: tuple) -> BroadcastStyle:
    return TupleStyle()


@broadcast_style.register
def _(obj: MetadataArray) -> BroadcastStyle:
    return MetadataArrayStyle(broadcast_style(obj.parent))


def result_style(*args: Any) -> BroadcastStyle:
    """The combined style of ``args``, possibly :class:`~metadata_arrays.styles.Unknown`."""
    return result_style_of(*(broadcast_style(arg) for arg in args))


def resolve_style(*args: Any) -> BroadcastStyle:
    """The combined style of ``args``.

    Raises:
        UndecidableStyleError: naming the first pair of styles that cannot be combined.
    """
    result: BroadcastStyle = DefaultArrayStyle(0)
    for arg in args:
        style = broadcast_style(arg)
        combined = combine_styles(result, style)
        if isinstance(combined, Unknown):
            raise UndecidableStyleError(result, style)
        result = combined
    return result


################################################################################
# Execution
################################################################################

def _func_name(func: Callable) -> str:
    return getattr(func, "__name__", type(func).__name__)


def broadcast(func: Callable, *args: Any, **kwargs: Any) -> Any:
    """Apply ``func`` elementwise over ``args`` with the engine of their combined style.

    Raises:
        UndecidableStyleError: If the operand styles cannot be combined, ``func`` is never called.
    """
    style = resolve_style(*args)
    rank_zero_debug(f"Broadcasting `{_func_name(func)}` over {len(args)} operand(s) with {style}")
    return materialize(style, func, args, kwargs)


@singledispatch
def materialize(style: BroadcastStyle, func: Callable, args: Sequence[Any],
                kwargs: Optional[Dict[str, Any]] = None) -> Any:
    """Execute ``func`` over ``args`` with the engine of ``style``."""
    raise TypeError(f"No broadcast engine registered for {style!r}")


@materialize.register
def _(style: Unknown, func: Callable, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> Any:
    raise UndecidableStyleError(style, msg=f"Refusing to execute `{_func_name(func)}` with an undecidable style")


@materialize.register
def _(style: MetadataArrayStyle, func: Callable, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> Any:
    # TODO: combine operand metadata into the result once a merge policy for conflicting keys is settled
    return materialize(style.inner, func, tuple(drop_metadata(a) for a in args), kwargs)


@materialize.register
def _(style: DefaultArrayStyle, func: Callable, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> Any:
    kwargs = kwargs or {}
    if isinstance(func, np.ufunc):
        return func(*args, **kwargs)
    if style.ndim == 0:
        return func(*args, **kwargs)
    return _vectorized(func)(*args, **kwargs)


@materialize.register
def _(style: ArrayStyle, func: Callable, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> Any:
    kwargs = kwargs or {}
    result = func(*args, **kwargs) if isinstance(func, np.ufunc) else _vectorized(func)(*args, **kwargs)
    if style.kind is not None and not isinstance(result, style.kind):
        result = style.kind(result)
    return result


@materialize.register
def _(style: TupleStyle, func: Callable, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> tuple:
    kwargs = kwargs or {}
    lengths = {len(a) for a in args if isinstance(a, tuple) and len(a) != 1}
    if len(lengths) > 1:
        raise ValueError(f"Tuples of lengths {sorted(lengths)} cannot be broadcast together")
    n = lengths.pop() if lengths else 1

    def _at(arg: Any, i: int) -> Any:
        if isinstance(arg, tuple):
            return arg[0] if len(arg) == 1 else arg[i]
        return arg

    return tuple(func(*(_at(a, i) for a in args), **kwargs) for i in range(n))


@materialize.register
def _(style: TensorStyle, func: Callable, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None) -> Any:
    kwargs = kwargs or {}
    device = torch.device(style.device)
    operands = tuple(a if isinstance(a, torch.Tensor) else _as_tensor(a, device) for a in args)
    if isinstance(func, np.ufunc):
        func = torch_equivalent(func)
    return func(*operands, **kwargs)


def _as_tensor(obj: Any, device: torch.device) -> torch.Tensor:
    if isinstance(obj, (list, tuple, range)):
        obj = np.asarray(obj)
    return torch.as_tensor(obj, device=device)


def _vectorized(func: Callable) -> Callable:
    if not get_config().vectorize_callables:
        raise TypeError(
            f"`{_func_name(func)}` is not a numpy ufunc and `vectorize_callables` is disabled, "
            "enable it or pass a ufunc"
        )
    rank_zero_debug(vectorize_fallback_msg.format(func=_func_name(func)))
    return np.vectorize(func)


# numpy ufunc names whose torch counterpart is named differently
_UFUNC_TO_TORCH = {
    "equal": "eq",
    "not_equal": "ne",
    "power": "pow",
    "invert": "bitwise_not",
    "left_shift": "bitwise_left_shift",
    "right_shift": "bitwise_right_shift",
    "conjugate": "conj",
    "absolute": "abs",
}


def torch_equivalent(ufunc: np.ufunc) -> Callable:
    """The torch function computing the same elementwise operation as ``ufunc``."""
    name = _UFUNC_TO_TORCH.get(ufunc.__name__, ufunc.__name__)
    fn = getattr(torch, name, None)
    if fn is None or not callable(fn):
        raise TypeError(f"numpy ufunc `{ufunc.__name__}` has no torch equivalent")
    return fn


################################################################################
# ufunc methods and `out=` calls
################################################################################

# numpy ufunc methods with a torch counterpart, keyed by (method, ufunc name)
_UFUNC_METHOD_TO_TORCH = {
    ("reduce", "add"): "sum",
    ("reduce", "multiply"): "prod",
    ("reduce", "maximum"): "amax",
    ("reduce", "minimum"): "amin",
    ("reduce", "logical_and"): "all",
    ("reduce", "logical_or"): "any",
    ("accumulate", "add"): "cumsum",
    ("accumulate", "multiply"): "cumprod",
}


def apply_ufunc_method(ufunc: np.ufunc, method: str, inputs: Sequence[Any], out: Optional[tuple] = None,
                       kwargs: Optional[Dict[str, Any]] = None) -> Any:
    """Run ``ufunc.<method>`` over ``inputs`` (and ``out`` operands) with the engine of their combined style.

    ``out`` operands take part in style resolution and are written in place, wrapped ``out`` operands are returned
    with their metadata intact.

    Raises:
        UndecidableStyleError: If the operand styles cannot be combined, nothing is computed.
    """
    style = resolve_style(*inputs, *(out or ()))
    inner = inner_style(style)
    rank_zero_debug(f"Applying `{ufunc.__name__}.{method}` over {len(inputs)} operand(s) with {style}")
    kwargs = dict(kwargs or {})
    if out is not None:
        kwargs["out"] = tuple(drop_metadata(o) for o in out)
    args = tuple(drop_metadata(x) for x in inputs)
    if isinstance(inner, TensorStyle):
        result = _torch_ufunc_method(inner, ufunc, method, args, kwargs)
    else:
        result = getattr(ufunc, method)(*args, **kwargs)
    if out is not None:
        return out[0] if len(out) == 1 else out
    return result


def _torch_ufunc_method(style: TensorStyle, ufunc: np.ufunc, method: str, args: Sequence[Any],
                        kwargs: Dict[str, Any]) -> Any:
    device = torch.device(style.device)
    operands = tuple(a if isinstance(a, torch.Tensor) else _as_tensor(a, device) for a in args)
    out = kwargs.pop("out", None)
    if out is not None:
        if len(out) != 1:
            raise TypeError(f"torch execution of `{ufunc.__name__}` supports a single `out` operand")
        kwargs["out"] = out[0]
    if method == "__call__":
        return torch_equivalent(ufunc)(*operands, **kwargs)
    name = _UFUNC_METHOD_TO_TORCH.get((method, ufunc.__name__))
    if name is None:
        raise TypeError(f"numpy ufunc method `{ufunc.__name__}.{method}` has no torch equivalent")
    (tensor,) = operands
    axis = kwargs.pop("axis", 0)
    keepdims = kwargs.pop("keepdims", False)
    if axis is None:
        ndim = tensor.ndim
        flat = getattr(torch, name)(tensor.reshape(-1), 0, **kwargs)
        return flat.reshape([1] * ndim) if keepdims else flat
    if method == "reduce":
        return getattr(torch, name)(tensor, axis, keepdim=keepdims, **kwargs)
    return getattr(torch, name)(tensor, axis, **kwargs)


def as_tensor_operands(args: Sequence[Any]) -> tuple:
    """Strip wrappers from torch function arguments.

    When the arguments resolve to a tensor style, wrapped non-tensor parents are converted to tensors on the resolved
    device so torch receives the same operands the tensor engine would.
    """
    stripped = _strip_tree(tuple(args))
    style = result_style(*args)
    inner = inner_style(style)
    if not isinstance(inner, TensorStyle):
        return stripped
    device = torch.device(inner.device)
    return tuple(
        _as_tensor(s, device) if isinstance(a, MetadataArray) and not isinstance(s, torch.Tensor) else s
        for a, s in zip(args, stripped)
    )
