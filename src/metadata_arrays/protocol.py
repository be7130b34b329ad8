from __future__ import annotations  # see PEP 749, no longer needed when 3.13 reaches EOL
from collections.abc import Mapping
from typing import Any, Iterator, Protocol, runtime_checkable


################################################################################
# Protocols for the containers a `MetadataArray` may own
################################################################################

@runtime_checkable
class ArrayContainer(Protocol):
    """The minimal container contract a ``MetadataArray`` parent must satisfy.

    ``numpy.ndarray``, ``torch.Tensor``, ``list``, ``tuple`` and ``range`` all conform.
    """

    def __len__(self) -> int: ...

    def __getitem__(self, key: Any) -> Any: ...

    def __iter__(self) -> Iterator[Any]: ...


def is_array_container(obj: Any) -> bool:
    """Whether ``obj`` may be owned by a ``MetadataArray``.

    Strings, bytes and mappings satisfy the structural protocol but are not array-like.
    """
    if isinstance(obj, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(obj, ArrayContainer)
