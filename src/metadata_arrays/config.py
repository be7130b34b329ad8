# see https://peps.python.org/pep-0749, no longer needed when 3.13 reaches EOL
from __future__ import annotations
import os
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from pprint import pformat
from typing import Any, Iterator

from metadata_arrays.utils import MisconfigurationException

# environment variable prefix used by `MetadataArrayConfig.from_env`
ENV_PREFIX = "MDA_"
_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


@dataclass(kw_only=True, frozen=True)
class MetadataArrayConfig:
    # warn at construction when a metadata key is shadowed by a `MetadataArray` attribute or is private
    warn_shadowed_keys: bool = True
    # allow plain python callables in the dense broadcast engine via `np.vectorize`
    vectorize_callables: bool = True
    # number of metadata entries summarized in `MetadataArray.__repr__`
    repr_max_keys: int = 8

    def __post_init__(self):
        for f in fields(self):
            val = getattr(self, f.name)
            expected = bool if f.type in ("bool", bool) else int
            if not isinstance(val, expected) or (expected is int and isinstance(val, bool)):
                raise MisconfigurationException(
                    f"`{f.name}` must be of type {expected.__name__}, received {type(val).__name__}: {val!r}"
                )
        if self.repr_max_keys < 0:
            raise MisconfigurationException(f"`repr_max_keys` must be non-negative, received {self.repr_max_keys}")

    @classmethod
    def from_env(cls, environ: dict | None = None, **overrides: Any) -> MetadataArrayConfig:
        """Build a config from ``MDA_<FIELD>`` environment variables, explicit ``overrides`` take precedence."""
        environ = os.environ if environ is None else environ
        env_cfg: dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            if f.type in ("bool", bool):
                env_cfg[f.name] = _parse_bool(f.name, raw)
            else:
                try:
                    env_cfg[f.name] = int(raw)
                except ValueError as e:
                    raise MisconfigurationException(f"Invalid integer for {ENV_PREFIX}{f.name.upper()}: {raw!r}") from e
        env_cfg.update(overrides)
        return cls(**env_cfg)

    def __repr__(self):
        return f"MetadataArrayConfig: {os.linesep}{pformat(self.__dict__)}"


def _parse_bool(name: str, raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise MisconfigurationException(f"Invalid boolean for {ENV_PREFIX}{name.upper()}: {raw!r}")


_config = MetadataArrayConfig.from_env()


def get_config() -> MetadataArrayConfig:
    return _config


def set_config(cfg: MetadataArrayConfig) -> MetadataArrayConfig:
    """Install ``cfg`` as the process-global configuration, returning the previous one."""
    global _config
    if not isinstance(cfg, MetadataArrayConfig):
        raise MisconfigurationException(f"Expected a `MetadataArrayConfig`, received {type(cfg).__name__}")
    prev, _config = _config, cfg
    return prev


@contextmanager
def config_context(**overrides: Any) -> Iterator[MetadataArrayConfig]:
    """Temporarily override global configuration fields.

    Not thread-safe, the global configuration is swapped for the duration of the block.
    """
    prev = set_config(replace(get_config(), **overrides))
    try:
        yield get_config()
    finally:
        set_config(prev)
