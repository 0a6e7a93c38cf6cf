"""Failure taxonomy shared by capture, the registry and both exporters."""
from typing import Optional


class ReportEngineError(Exception):
    """Base error. ``user_message`` is safe to show in the UI."""

    user_message = "Report export failed."

    def __init__(self, message: str = "", *, user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class CaptureUnavailable(ReportEngineError):
    user_message = "This view is not available for capture right now."


class DuplicateArtifact(ReportEngineError):
    user_message = "This view is already in the report."


class RegistryFull(ReportEngineError):
    user_message = "The report is full. Remove an item before adding another."


class EmptyReport(ReportEngineError):
    user_message = "Add at least one view to the report before exporting."


class RemoteUnavailable(ReportEngineError):
    """Remote renderer failed; recovered through the local fallback."""

    user_message = "The rendering service is unavailable."

    def __init__(self, message: str = "", *, status: Optional[int] = None, client_fallback: bool = False):
        super().__init__(message)
        self.status = status
        self.client_fallback = client_fallback


class FallbackFailed(ReportEngineError):
    user_message = "The PDF could not be generated. Please try again."
