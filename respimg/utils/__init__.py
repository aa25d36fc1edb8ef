"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Atomic I/O (fs)
    - Content hashing for cache keys (hashing)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (picture, scripts).

Convenience imports:
    from respimg.utils import fs, hashing, validators
    from respimg.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import hashing
from . import logging_config
from . import validators

from .logging_config import get_logger, push_context, setup_logging
from .validators import ConfigurationError

__all__ = [
    # Modules
    'fs',
    'hashing',
    'logging_config',
    'validators',
    # Direct exports
    'ConfigurationError',
    'setup_logging',
    'get_logger',
    'push_context',
]
