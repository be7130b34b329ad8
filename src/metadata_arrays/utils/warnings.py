import warnings
from typing import Optional, Union, Type
from pathlib import Path


_default_format_warning = warnings.formatwarning

shadowed_key_msg = (
    "Metadata key(s) {keys} shadow `MetadataArray` attributes or are private and will only be reachable via "
    "`metadata(obj, key)`, not attribute access."
)
vectorize_fallback_msg = "`{func}` is not a numpy ufunc, broadcasting it with `np.vectorize` (a python-level loop)."
dropmeta_deprecation_msg = "`dropmeta` is deprecated, use `drop_metadata` instead."


def _is_path_in_metadata_arrays(path: Path) -> bool:
    """Naive check whether the path looks like a path from the metadata_arrays package."""
    return "metadata_arrays" in str(path.absolute())

# adapted from lightning.fabric.utilities.warnings
def _custom_format_warning(
    message: Union[Warning, str], category: Type[Warning], filename: str, lineno: int, line: Optional[str] = None
) -> str:
    """Custom formatting that avoids an extra line in case warnings are emitted from the `rank_zero`-functions."""
    if _is_path_in_metadata_arrays(Path(filename)):
        # The warning originates from the metadata_arrays package
        return f"{filename}:{lineno}: {message}\n"
    return _default_format_warning(message, category, filename, lineno, line)

warnings.formatwarning = _custom_format_warning
