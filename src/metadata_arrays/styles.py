"""Broadcast styles and the pairwise style combinator.

A broadcast style names the execution strategy ("engine") an elementwise operation over a given operand should use.
Styles form a small closed set of frozen dataclasses; :func:`combine_styles` folds two of them into the style that
governs an operation over both operands, or :class:`Unknown` when no common strategy exists.

``MetadataArrayStyle`` is the one tagged variant: it wraps the style of a ``MetadataArray``'s parent and always wins
over untagged styles, deferring the actual engine choice to the combination of the inner styles.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class BroadcastStyle:
    """Base class of all broadcast styles."""

    __slots__ = ()


@dataclass(frozen=True)
class Unknown(BroadcastStyle):
    """No valid combined execution style exists."""


@dataclass(frozen=True)
class AbstractArrayStyle(BroadcastStyle):
    ndim: int = 0


@dataclass(frozen=True)
class DefaultArrayStyle(AbstractArrayStyle):
    """Dense numpy execution, used for ``np.ndarray``, ``list`` and scalar operands."""


@dataclass(frozen=True)
class ArrayStyle(AbstractArrayStyle):
    """A container kind with its own execution rules (e.g. ``numpy.ma.MaskedArray``).

    The result of an operation governed by this style is an instance of ``kind``.
    """

    kind: Any = None


@dataclass(frozen=True)
class TensorStyle(AbstractArrayStyle):
    """Torch execution on ``device``."""

    device: str = "cpu"


@dataclass(frozen=True)
class TupleStyle(BroadcastStyle):
    """Elementwise execution over python tuples, producing a tuple."""


@dataclass(frozen=True)
class MetadataArrayStyle(BroadcastStyle):
    """The tagged style of a ``MetadataArray``, wrapping the style of its parent."""

    inner: BroadcastStyle

    @property
    def ndim(self) -> int:
        return _style_ndim(self.inner)


UNKNOWN = Unknown()


def is_tagged(style: BroadcastStyle) -> bool:
    return isinstance(style, MetadataArrayStyle)


def inner_style(style: BroadcastStyle) -> BroadcastStyle:
    """The style a tagged style defers to, untagged styles are their own inner style."""
    return style.inner if isinstance(style, MetadataArrayStyle) else style


def _style_ndim(style: BroadcastStyle) -> int:
    return style.ndim if isinstance(style, AbstractArrayStyle) else 1


def combine_styles(a: BroadcastStyle, b: BroadcastStyle) -> BroadcastStyle:
    """Combine the styles of two operands of an elementwise operation.

    The combinator is symmetric: ``combine_styles(a, b) == combine_styles(b, a)`` for every pair of styles.

    - ``Unknown`` with anything is ``Unknown``.
    - If either side is tagged, the result is tagged and wraps the combination of the inner styles, unless that
      combination is ``Unknown``, in which case the result is ``Unknown``.
    - Untagged styles are combined by :func:`_combine_untagged`.
    """
    if isinstance(a, Unknown) or isinstance(b, Unknown):
        return UNKNOWN
    if is_tagged(a) or is_tagged(b):
        combined = combine_styles(inner_style(a), inner_style(b))
        if isinstance(combined, Unknown):
            return UNKNOWN
        return MetadataArrayStyle(combined)
    return _combine_untagged(a, b)


def _combine_untagged(a: BroadcastStyle, b: BroadcastStyle) -> BroadcastStyle:
    # order the pair so each rule below is written once
    a, b = sorted((a, b), key=_precedence)
    ndim = max(_style_ndim(a), _style_ndim(b))
    if isinstance(a, DefaultArrayStyle) and isinstance(b, DefaultArrayStyle):
        return DefaultArrayStyle(ndim)
    if isinstance(a, TupleStyle) and isinstance(b, TupleStyle):
        return a
    if isinstance(a, DefaultArrayStyle) and isinstance(b, TupleStyle):
        # a 0-dim operand keeps tuple execution, anything with dimensions promotes to dense execution
        return b if a.ndim == 0 else DefaultArrayStyle(a.ndim)
    if isinstance(b, ArrayStyle):
        if isinstance(a, ArrayStyle):
            return ArrayStyle(ndim, kind=a.kind) if a.kind is b.kind else UNKNOWN
        if isinstance(a, (DefaultArrayStyle, TupleStyle)):
            return ArrayStyle(ndim, kind=b.kind)
        return UNKNOWN
    if isinstance(b, TensorStyle):
        if isinstance(a, TensorStyle):
            return _combine_tensor_styles(a, b, ndim)
        if isinstance(a, (DefaultArrayStyle, TupleStyle)):
            return TensorStyle(ndim, device=b.device)
        return UNKNOWN
    return UNKNOWN


def _combine_tensor_styles(a: TensorStyle, b: TensorStyle, ndim: int) -> BroadcastStyle:
    if a.device == b.device:
        return TensorStyle(ndim, device=a.device)
    # torch allows 0-dim cpu tensors to participate in operations on any device
    if a.ndim == 0 and a.device == "cpu":
        return TensorStyle(ndim, device=b.device)
    if b.ndim == 0 and b.device == "cpu":
        return TensorStyle(ndim, device=a.device)
    return UNKNOWN


_PRECEDENCE = {DefaultArrayStyle: 0, TupleStyle: 1, ArrayStyle: 2, TensorStyle: 3}


def _precedence(style: BroadcastStyle) -> int:
    try:
        return _PRECEDENCE[type(style)]
    except KeyError:
        raise TypeError(f"Unsupported broadcast style {style!r}") from None


def result_style_of(*styles: BroadcastStyle) -> BroadcastStyle:
    """Fold :func:`combine_styles` over ``styles``, starting from the 0-dim dense style."""
    result: BroadcastStyle = DefaultArrayStyle(0)
    for style in styles:
        result = combine_styles(result, style)
    return result
