from metadata_arrays.utils.exceptions import (
    MisconfigurationException, MetadataArrayError, MissingMetadataKeyError, MetadataUnsupportedError,
    UndecidableStyleError, IncompatibleConversionError)
from metadata_arrays.utils.import_utils import (
    package_available, compare_version, _TORCH_GREATER_EQUAL_2_0, _resolve_torch_dtype)
from metadata_arrays.utils.logging import (rank_zero_only, rank_zero_debug, rank_zero_info, rank_zero_warn,
                                           rank_zero_deprecation, _get_rank)
from metadata_arrays.utils.warnings import shadowed_key_msg, vectorize_fallback_msg, dropmeta_deprecation_msg
from metadata_arrays.utils.repr_helpers import summarize_obj, metadata_summary

__all__ = [
    # exceptions
    "MisconfigurationException",
    "MetadataArrayError",
    "MissingMetadataKeyError",
    "MetadataUnsupportedError",
    "UndecidableStyleError",
    "IncompatibleConversionError",

    # import_utils
    "package_available",
    "compare_version",
    "_TORCH_GREATER_EQUAL_2_0",
    "_resolve_torch_dtype",

    # logging
    "rank_zero_only",
    "rank_zero_debug",
    "rank_zero_info",
    "rank_zero_warn",
    "rank_zero_deprecation",
    "_get_rank",

    # warnings
    "shadowed_key_msg",
    "vectorize_fallback_msg",
    "dropmeta_deprecation_msg",

    # repr_helpers
    "summarize_obj",
    "metadata_summary",
]
