"""Typed rejections raised by the submission pipeline."""

from __future__ import annotations


class SubmissionError(Exception):
    """Base class for every pipeline rejection.

    Each subclass maps to one HTTP status and one machine-readable code so the
    public form renderer can show kind-specific copy.
    """

    status_code = 400
    code = "submission_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    default_message = "Submission rejected"

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": self.message}


class NotFound(SubmissionError):
    status_code = 404
    code = "not_found"
    default_message = "Form not found"


class AuthenticationRequired(SubmissionError):
    status_code = 401
    code = "authentication_required"
    default_message = "Sign in with Google to submit this form"


class AccessDenied(SubmissionError):
    status_code = 403
    code = "access_denied"
    default_message = "Your account is not allowed to submit this form"


class InvalidCredentials(SubmissionError):
    status_code = 401
    code = "invalid_password"
    default_message = "Incorrect password"


class FormClosed(SubmissionError):
    status_code = 409
    code = "form_closed"
    default_message = "This form is no longer accepting responses"


class FormExpired(SubmissionError):
    status_code = 410
    code = "form_expired"
    default_message = "This form has expired"


class MalformedInput(SubmissionError):
    status_code = 400
    code = "malformed_input"
    default_message = "Malformed file entry"

    def __init__(self, message: str | None = None, index: int | None = None):
        super().__init__(message)
        self.index = index


class MissingFiles(SubmissionError):
    status_code = 400
    code = "missing_files"
    default_message = "No files were submitted"


class InternalError(SubmissionError):
    status_code = 500
    code = "internal_error"
    default_message = "Failed to submit form"

    def __init__(self, message: str | None = None, stored: int = 0):
        super().__init__(message)
        self.stored = stored

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.stored:
            body["stored"] = self.stored
        return body
