"""Secret decryption facility for Adobe CQ/AEM instances.

Prepares the vendor crypto libraries and the Decrypt helper on local disk,
manages the lifetime of fetched master keys, and decrypts or encrypts
protected values.
"""

from __future__ import annotations

from .config import CryptoConfig, load_crypto_config
from .facility import CryptoFacility, build_facility

__all__ = [
    "__version__",
    "CryptoConfig",
    "CryptoFacility",
    "build_facility",
    "load_crypto_config",
]
__version__ = "0.1.0"
