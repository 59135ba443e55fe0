"""
Custom exception classes for the Render Relay service.
"""
from typing import Optional


class RenderRelayError(Exception):
    """
    Base class for all custom exceptions in the Render Relay service.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(RenderRelayError):
    """
    Raised for errors related to application configuration.
    This could include issues with loading, accessing, or validating configuration data.
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Component Related Exceptions ---
class ComponentError(RenderRelayError):
    """
    A general base class for errors originating from within a rendering strategy.

    Attributes:
        component_name (str): Name of the component where the error originated.
        reason (str): The component's own error message, without the component prefix.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name
        self.reason = message


class RendererError(ComponentError):
    """Raised for errors in the browser renderer (launch, navigation, timeouts, DOM serialization)."""
    def __init__(self, message: str):
        super().__init__(component_name="Renderer", message=message)


class RemoteServiceError(ComponentError):
    """Raised for errors from the remote scraping service (HTTP errors, timeouts, missing credentials)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(component_name="RemoteService", message=message)
        self.status_code = status_code


# --- Render Flow Exceptions ---
class RenderRequestError(RenderRelayError):
    """Raised when a render request is rejected before any strategy runs (e.g., missing URL)."""
    def __init__(self, message: str = "URL is required"):
        super().__init__(message)


class RenderFailure(RenderRelayError):
    """
    Raised when no rendering strategy produced HTML for a request.

    Attributes:
        primary_error (Optional[str]): Error message of the browser attempt,
            or None if the browser was never tried (forced fallback).
        fallback_error (Optional[str]): Error message of the remote service attempt.
    """
    def __init__(self, message: str, primary_error: Optional[str] = None, fallback_error: Optional[str] = None):
        super().__init__(message)
        self.primary_error = primary_error
        self.fallback_error = fallback_error

    @property
    def is_aggregate(self) -> bool:
        """True when both the browser and the remote service failed."""
        return self.primary_error is not None
