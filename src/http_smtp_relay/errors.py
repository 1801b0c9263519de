"""Exception hierarchy shared by the assembler, SMTP driver and entry points."""

from __future__ import annotations

import aiosmtplib


class RelayError(RuntimeError):
    """Base class for failures reported back to the HTTP caller."""

    code = "relay_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ValidationError(RelayError):
    """Raised when the request and configured defaults cannot form a valid mail."""

    code = "missing_fields"


class TransportError(RelayError):
    """Raised when any step of the SMTP session fails.

    Attributes:
        step: Session step that failed (``dial``, ``starttls``, ``mail``,
            ``rcpt``, ``data`` or ``quit``).
        smtp_code: Reply code returned by the relay, or None when the failure
            happened below the SMTP layer (DNS, socket, TLS handshake).
    """

    code = "transport_error"

    def __init__(self, message: str, *, step: str, smtp_code: int | None = None):
        super().__init__(message)
        self.step = step
        self.smtp_code = smtp_code

    @classmethod
    def from_exception(cls, step: str, exc: BaseException) -> "TransportError":
        """Wrap an ``aiosmtplib``/socket exception raised during ``step``."""
        smtp_code = None
        if isinstance(exc, aiosmtplib.SMTPRecipientsRefused):
            refused = exc.recipients
            detail = "; ".join(f"{r.recipient}: {r.code} {r.message}" for r in refused)
            smtp_code = refused[0].code if refused else None
        elif isinstance(exc, aiosmtplib.SMTPRecipientRefused):
            smtp_code = exc.code
            detail = f"{exc.recipient}: {exc.code} {exc.message}"
        elif isinstance(exc, aiosmtplib.SMTPResponseException):
            smtp_code = exc.code
            detail = f"{exc.code} {exc.message}"
        else:
            detail = str(exc) or exc.__class__.__name__
        return cls(f"smtp {step} failed: {detail}", step=step, smtp_code=smtp_code)


class ConfigurationError(RelayError):
    """Raised when the startup configuration is missing or malformed."""

    code = "invalid_configuration"

