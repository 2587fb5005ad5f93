"""Crypto facility configuration.

One YAML file carries the cache root, the primary artifact location, the
auxiliary library manifest and the remote instance settings. Components
receive the parsed CryptoConfig at construction and never read ambient
settings themselves.
"""

from .load_crypto_config import (  # noqa: F401
    AemLibsSettings,
    CryptoConfig,
    RemoteSettings,
    ToolPaths,
    load_crypto_config,
    parse_crypto_config,
    resolve_config_path,
)
