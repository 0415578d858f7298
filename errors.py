"""Exception types raised by the export pipeline."""


class AssetExportError(Exception):
    """Base exception for export and cleanup failures."""

    error_code = "EXPORT_FAILED"

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


class NotFoundError(AssetExportError):
    """Requested asset or collection does not exist."""

    error_code = "NOT_FOUND"


class EmptyResultError(NotFoundError):
    """Nothing exportable was resolved from the request."""

    error_code = "EMPTY_RESULT"


class UnavailableError(AssetExportError):
    """Asset catalog cannot be read or written."""

    error_code = "UNAVAILABLE"


class UnsupportedFormatError(AssetExportError):
    """Target image format is not one we can encode."""

    error_code = "UNSUPPORTED_FORMAT"


class InvalidRequestError(AssetExportError):
    """Request fields are missing, conflicting or out of range."""

    error_code = "INVALID_REQUEST"


class SinkFailureError(AssetExportError):
    """Output sink rejected a write; the archive stream is broken."""

    error_code = "SINK_FAILURE"


def error_response(error: Exception) -> dict:
    """Convert an exception into the tool error dict."""
    if isinstance(error, AssetExportError):
        response = {"error": str(error), "error_code": error.error_code}
        if error.details:
            response["details"] = error.details
        return response
    return {"error": str(error), "error_code": AssetExportError.error_code}
