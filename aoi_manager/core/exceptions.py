"""Unified AOI manager exception taxonomy.

Provides a shared base exception hierarchy for the geometry kernel, the
boundary layer store, the location resolver, the collaborator adapters and
the map session. Every domain exception inherits from ``AOIManagerError``
and carries structured context fields that enable consistent degradation
decisions and diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   - bad input geometry, coordinates or decisions, never retryable.
- ``TransientError``    - temporary failures (layer fetch, geocoding), retryable.
- ``PermanentError``    - unrecoverable failures (file conversion rejected).
- ``ContractError``     - payload drift from an external collaborator, never retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and user notification.
"""

from __future__ import annotations


class AOIManagerError(Exception):
    """Base exception for all AOI-manager errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"geometry"``, ``"layer_store"``, ``"conversion"``).
        code: Machine-readable error code (e.g. ``"LAYER_LOAD_FAILED"``).
        retryable: Whether the operation may succeed when repeated.
        correlation_id: Map-session correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(AOIManagerError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(AOIManagerError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(AOIManagerError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(AOIManagerError):
    """Payload or schema drift from an external collaborator. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Domain errors shared by several components
# ---------------------------------------------------------------------------


class InvalidGeometryError(ValidationError):
    """Raised for degenerate, unclosed-beyond-repair or zero-area geometry."""

    default_stage = "geometry"
    default_code = "GEOMETRY_INVALID"


class InvalidCoordinateError(ValidationError):
    """Raised when a coordinate is non-finite or outside WGS 84 bounds."""

    default_stage = "geometry"
    default_code = "COORDINATE_INVALID"
