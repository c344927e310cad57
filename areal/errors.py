"""Error taxonomy for spatial operations.

Every domain error inherits from ``ArealError`` and carries a
machine-readable ``code`` next to the human-readable message.

- ``InvalidReference``   - empty or malformed reference set where one is required.
- ``CrsMismatch``        - collections in different coordinate reference systems.
- ``DegenerateGeometry`` - zero-area polygon used as an interpolation source.

An operation that legitimately produces no rows returns an empty
FeatureCollection; that is not an error.
"""

from typing import Any


class ArealError(Exception):
    """Base exception for all spatial-operation errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. ``"CRS_MISMATCH"``).
    """

    default_code: str = "AREAL_ERROR"

    def __init__(self, message: str = "", *, code: str = "") -> None:
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def to_error_dict(self) -> dict[str, Any]:
        """Return a structured error payload suitable for logging."""
        return {"code": self.code, "message": self.message}


class InvalidReference(ArealError):
    """Reference collection is empty or malformed where one is required."""

    default_code = "INVALID_REFERENCE"


class CrsMismatch(ArealError):
    """Collections participating in one operation use different CRS."""

    default_code = "CRS_MISMATCH"

    def __init__(self, left_crs: Any, right_crs: Any, message: str = "") -> None:
        self.left_crs = left_crs
        self.right_crs = right_crs
        super().__init__(
            message or f"CRS mismatch: {_crs_label(left_crs)} != {_crs_label(right_crs)}"
        )

    def to_error_dict(self) -> dict[str, Any]:
        payload = super().to_error_dict()
        payload["left_crs"] = _crs_label(self.left_crs)
        payload["right_crs"] = _crs_label(self.right_crs)
        return payload


class DegenerateGeometry(ArealError):
    """Polygon with (near) zero area where a positive area is required."""

    default_code = "DEGENERATE_GEOMETRY"

    def __init__(self, positions: list[int], message: str = "") -> None:
        self.positions = list(positions)
        super().__init__(
            message
            or f"Found {len(self.positions)} degenerate source polygon(s) at positions "
            f"{self.positions[:10]}"
        )

    def to_error_dict(self) -> dict[str, Any]:
        payload = super().to_error_dict()
        payload["positions"] = self.positions
        return payload


def _crs_label(crs: Any) -> str:
    if crs is None:
        return "None"
    to_string = getattr(crs, "to_string", None)
    return to_string() if callable(to_string) else str(crs)
