"""
Custom exceptions for varlayer.

All varlayer exceptions inherit from VarLayerError for easy catching.
"""

from typing import Any


class VarLayerError(Exception):
    """Base exception for all varlayer errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(VarLayerError):
    """Raised when configuration is invalid or missing."""

    pass


class GeometryError(VarLayerError):
    """Raised when a mesh cannot be loaded or analysed."""

    pass


class ProfileError(VarLayerError):
    """Raised when a layer height profile violates its invariants."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.errors = errors or []


class TextureError(VarLayerError, IndexError):
    """Raised when a texture write falls outside the buffer."""

    def __init__(
        self,
        message: str,
        level: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.level = level
