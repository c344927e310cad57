"""Validation of feature collections before spatial operations.

Validators report problems as a list of ValidationError records rather
than raising, so callers can decide whether to abort, repair or continue.
"""

from areal.validation.errors import ValidationError
from areal.validation.geometry import CollectionValidator

__all__ = [
    "CollectionValidator",
    "ValidationError",
]
