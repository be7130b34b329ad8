from __future__ import annotations

from typing import Any, Dict, Mapping
import os

import numpy as np
import torch


def summarize_tensor(t: torch.Tensor) -> str:
    return f"Tensor(shape={tuple(t.shape)}, dtype={getattr(t, 'dtype', None)}, device={getattr(t, 'device', None)})"


def summarize_ndarray(a: np.ndarray) -> str:
    return f"{type(a).__name__}(shape={a.shape}, dtype={a.dtype})"


def summarize_primitive(obj: Any, max_len: int = 20) -> str:
    s = repr(obj)
    if len(s) > max_len:
        return s[: max_len - 3] + "..."
    return s


def summarize_container(obj: Any) -> str:
    try:
        return f"{obj.__class__.__name__}(len={len(obj)})"
    except TypeError:
        return obj.__class__.__name__


def summarize_dict_keys(d: Mapping, max_keys: int = 8) -> Dict:
    keys = list(d.keys())
    return {"len": len(keys), "keys": keys[:max_keys]}


def summarize_obj(obj: Any) -> Any:
    """Return a small, printable summary for `obj`.

    Rules:
    - torch.Tensor -> shape/dtype/device string
    - np.ndarray -> shape/dtype string
    - dict -> {len:int, keys:[...first keys...]}
    - list/tuple/set -> ClassName(len=N)
    - str -> truncated primitive
    - path-like (os.PathLike / pathlib.Path) -> string path
    - objects with __class__ -> class name
    """
    if obj is None:
        return None
    if isinstance(obj, torch.Tensor):
        return summarize_tensor(obj)
    if isinstance(obj, np.ndarray):
        return summarize_ndarray(obj)
    # primitive numeric/bool types should return as-is
    if isinstance(obj, (int, float, bool, np.generic)):
        return obj
    # bytes-like
    if isinstance(obj, (bytes, bytearray)):
        return repr(obj)[:20]
    # path-like
    if hasattr(obj, "__fspath__"):
        return os.fspath(obj)
    if isinstance(obj, Mapping):
        return summarize_dict_keys(obj)
    if isinstance(obj, (list, tuple, set, frozenset)):
        return summarize_container(obj)
    if isinstance(obj, str):
        return summarize_primitive(obj)
    # show as ClassName(...) to indicate a stateful/custom object
    return f"{obj.__class__.__name__}(...)"


def metadata_summary(md: Mapping[str, Any], max_keys: int = 8) -> str:
    """Compact single-line metadata summary like ``groups={'len': 3, ...}, units='m'`` used in reprs."""
    parts = []
    for k, v in list(md.items())[:max_keys]:
        summ = summarize_obj(v)
        parts.append(f"{k}={summ}")
    if len(md) > max_keys:
        parts.append(f"...({len(md) - max_keys} more)")
    return ", ".join(parts)
