from .loader import load_config
from .models import (
    IngestConfig,
    KVConfig,
    LimitsConfig,
    NamespaceConfig,
    PkgKVConfig,
)

__all__ = [
    "IngestConfig",
    "KVConfig",
    "LimitsConfig",
    "NamespaceConfig",
    "PkgKVConfig",
    "load_config",
]
