"""
Domain Errors
Exceptions raised by the editor, record form, composition engine and store
"""


class CVStudioError(Exception):
    """Base error carrying a user-facing message"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(CVStudioError):
    """Rejected input; the operation made no state change"""

    status_code = 400


class NotFoundError(CVStudioError):
    status_code = 404


class TransientServiceError(CVStudioError):
    """External service failed (rate limit, network, unclear image); safe to retry"""

    status_code = 503


class TemplateStoreError(CVStudioError):
    """Persisting or loading a template failed"""

    status_code = 502


class CompositionError(CVStudioError):
    """Rendering a document failed unexpectedly"""

    status_code = 500
