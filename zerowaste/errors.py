# zerowaste/errors.py
"""Typed errors raised by the guards and services.

Every error carries a short ``code`` tag and the HTTP status the API layer
answers with, so translating them into responses is a single handler.
"""


class LifecycleError(Exception):
    code = "error"
    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        payload = {"error": self.message, "code": self.code}
        payload.update(self.details)
        return payload


class NotFound(LifecycleError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found."


class Forbidden(LifecycleError):
    code = "forbidden"
    status_code = 403
    default_message = "You are not allowed to perform this action."


class VerificationRequired(LifecycleError):
    code = "verification_required"
    status_code = 403
    default_message = "NGO verification required. Please wait for admin approval."


class ClaimConflict(LifecycleError):
    code = "claim_conflict"
    status_code = 400
    default_message = "This listing has already been claimed."


class InvalidTransition(LifecycleError):
    code = "invalid_transition"
    status_code = 400

    def __init__(self, current, requested, allowed):
        allowed = list(allowed)
        message = (
            f"Invalid status transition from '{current}' to '{requested}'. "
            f"Allowed transitions: {', '.join(allowed) or 'none'}"
        )
        super().__init__(message, currentStatus=current, requestedStatus=requested, allowed=allowed)
        self.current = current
        self.requested = requested
        self.allowed = allowed


class InvalidParticipants(LifecycleError):
    code = "invalid_participants"
    status_code = 403
    default_message = "Sender and receiver must be the listing's provider and its claiming NGO."


class DuplicateEmail(LifecycleError):
    code = "duplicate_email"
    status_code = 400
    default_message = "User already exists."


class InvalidCredentials(LifecycleError):
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid credentials."


class ValidationFailed(LifecycleError):
    code = "validation_failed"
    status_code = 400
    default_message = "Invalid request data."

    def __init__(self, errors, message=None):
        super().__init__(message, fields=errors)
        self.errors = errors
