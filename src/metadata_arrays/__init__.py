"""
metadata_arrays
=====================

Array-like containers carrying an immutable, named bundle of metadata that survives slicing, reshaping and
allocation while numpy, torch and python code keep treating the wrapper as the container it owns.
"""
from metadata_arrays.__about__ import __version__ as version  # noqa: E402
from metadata_arrays.utils import (
    MisconfigurationException,
    MetadataArrayError,
    MissingMetadataKeyError,
    MetadataUnsupportedError,
    UndecidableStyleError,
    IncompatibleConversionError,
)
from metadata_arrays.config import MetadataArrayConfig, get_config, set_config, config_context
from metadata_arrays.metadata import MetadataStore
from metadata_arrays.styles import (
    BroadcastStyle,
    AbstractArrayStyle,
    DefaultArrayStyle,
    ArrayStyle,
    TensorStyle,
    TupleStyle,
    MetadataArrayStyle,
    Unknown,
    combine_styles,
)
from metadata_arrays.core import (
    MetadataArray,
    MetadataArrayType,
    MetadataVector,
    MetadataMatrix,
    MetadataSupport,
    convert,
    register_container_converter,
    metadata,
    metadata_keys,
    metadata_support,
    has_metadata,
    drop_metadata,
    dropmeta,
    parent,
    unwrap,
    parent_type,
    element_type,
    is_forwarding_wrapper,
    can_setindex,
    can_change_size,
    similar,
    data_ids,
    might_alias,
)
from metadata_arrays.broadcast import broadcast, broadcast_style, result_style, resolve_style, materialize

__all__ = [
    "version",
    # errors
    "MisconfigurationException",
    "MetadataArrayError",
    "MissingMetadataKeyError",
    "MetadataUnsupportedError",
    "UndecidableStyleError",
    "IncompatibleConversionError",
    # config
    "MetadataArrayConfig",
    "get_config",
    "set_config",
    "config_context",
    # metadata store
    "MetadataStore",
    # styles
    "BroadcastStyle",
    "AbstractArrayStyle",
    "DefaultArrayStyle",
    "ArrayStyle",
    "TensorStyle",
    "TupleStyle",
    "MetadataArrayStyle",
    "Unknown",
    "combine_styles",
    # wrapper core and forwarding protocol
    "MetadataArray",
    "MetadataArrayType",
    "MetadataVector",
    "MetadataMatrix",
    "MetadataSupport",
    "convert",
    "register_container_converter",
    "metadata",
    "metadata_keys",
    "metadata_support",
    "has_metadata",
    "drop_metadata",
    "dropmeta",
    "parent",
    "unwrap",
    "parent_type",
    "element_type",
    "is_forwarding_wrapper",
    "can_setindex",
    "can_change_size",
    "similar",
    "data_ids",
    "might_alias",
    # broadcast
    "broadcast",
    "broadcast_style",
    "result_style",
    "resolve_style",
    "materialize",
]
