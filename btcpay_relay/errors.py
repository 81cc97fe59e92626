from typing import Any, Dict, List, Optional


class RelayError(Exception):
    """Base class for errors raised inside the relay."""


class ValidationError(RelayError):
    def __init__(self, field_errors: Dict[str, List[str]], form_errors: Optional[List[str]] = None):
        super().__init__("Invalid payload")
        self.field_errors = field_errors
        self.form_errors = form_errors or []

    def details(self) -> Dict[str, Any]:
        return {"field_errors": self.field_errors, "form_errors": self.form_errors}


class AuthError(RelayError):
    status_code = 401


class MissingSignatureError(AuthError):
    status_code = 400

    def __init__(self):
        super().__init__("Missing signature")


class InvalidSignatureError(AuthError):
    def __init__(self):
        super().__init__("Invalid signature")


class UpstreamError(RelayError):
    """BTCPay call failed. Carries whatever the processor sent back."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self):
        parts = [self.args[0]]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.body:
            parts.append(f"body={self.body[:500]}")
        return " ".join(parts)


class CallbackError(RelayError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class InternalError(RelayError):
    pass
