from typing import Any, Union, Optional, Callable
import importlib
from functools import lru_cache
from importlib.metadata import version as _dist_version, PackageNotFoundError
from importlib.util import find_spec
import operator

from packaging.version import InvalidVersion, Version

# Lazy import torch to improve import performance
_torch = None


def _get_torch():
    """Get torch module, importing it lazily."""
    global _torch
    if _torch is None:
        import torch

        _torch = torch
    return _torch


def _resolve_torch_dtype(dtype: Union[Any, str]) -> Optional[Any]:  # Use Any instead of torch.dtype
    torch = _get_torch()
    if isinstance(dtype, torch.dtype):
        return dtype
    elif isinstance(dtype, str):
        return _str_to_torch_dtype(dtype)


def _str_to_torch_dtype(str_dtype: str) -> Optional[Any]:  # Use Any instead of torch.dtype
    torch = _get_torch()
    if hasattr(torch, str_dtype):
        return getattr(torch, str_dtype)
    elif hasattr(torch, str_dtype.split(".")[-1]):
        return getattr(torch, str_dtype.split(".")[-1])


################################################################################
# `lightning-utilities` compatible import helper functions
# largely copied from https://bit.ly/lightning_utils definitions
################################################################################


@lru_cache()
def package_available(package_name: str) -> bool:
    """Check if a package is available in your environment.

    >>> package_available('os')
    True
    >>> package_available('bla')
    False
    """
    try:
        return find_spec(package_name) is not None
    except ModuleNotFoundError:
        return False


def compare_version(package: str, op: Callable, version: str, use_base_version: bool = False) -> bool:
    """Compare package version with some requirements.

    >>> compare_version("numpy", operator.ge, "0.1")
    True
    >>> compare_version("does_not_exist", operator.ge, "0.0")
    False
    """
    if not package_available(package):
        return False
    try:
        pkg = importlib.import_module(package)
    except ImportError:
        return False
    try:
        if hasattr(pkg, "__version__"):
            pkg_version = Version(pkg.__version__)
        else:
            pkg_version = Version(_dist_version(package))
    except (PackageNotFoundError, InvalidVersion):
        return False
    if use_base_version:
        pkg_version = Version(pkg_version.base_version)
    return op(pkg_version, Version(version))


################################################################################
# metadata_arrays installation environment probes
################################################################################

_TORCH_GREATER_EQUAL_2_0 = compare_version("torch", operator.ge, "2.0.0", use_base_version=True)
