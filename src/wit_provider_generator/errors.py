"""Errors raised while generating provider bindings."""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for failures that abort a generation without producing output."""

    pass


class InvocationError(GenerationError):
    """Raised when the generator input does not look like `<ProviderStruct>, <wit-bindgen args...>`."""

    pass


class BindgenError(GenerationError):
    """Raised when the binding generator failed or produced output that cannot be read."""

    pass


class ClassificationError(GenerationError):
    """Raised when the WIT namespace or package cannot be found in the binding output."""

    pass


class UnsupportedParameterShapeError(GenerationError):
    """Raised when a function parameter type cannot be converted to owned data."""

    pass


class DuplicateMethodError(GenerationError):
    """Raised when two collected functions would share a wire method or invocation record name."""

    pass
