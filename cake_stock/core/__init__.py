"""
Core module exports.
"""
from .enums import (
    ScanEventType,
    Channel,
    CacheKey,
    ErrorKind,
)

from .exceptions import (
    BaseServiceError,
    ValidationError,
    NotFoundError,
    DuplicateKeyError,
    DependencyError,
)

from .utils import (
    utc_now,
    longest_prefix_match,
)
