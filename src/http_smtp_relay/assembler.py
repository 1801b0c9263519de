"""Request-to-mail mapping.

Each mail field is resolved independently:

1. the value supplied by the request (form field, or for the body a
   non-empty raw POST payload, which beats ``msg``);
2. the configured default;
3. for the sender only, the configured ``forced_from`` replaces whatever the
   first two steps produced.

A body that happens to contain ``Subject: `` is relayed as-is and does not
affect the Subject header.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .config import RelayConfig
from .errors import ValidationError
from .logger import get_logger
from .models import Mail

logger = get_logger("MailAssembler")

MISSING_FIELDS_MESSAGE = "missing fields in mail. Set appropriate parameters: to, from"

FormFields = Mapping[str, Sequence[str]]


def _first(fields: FormFields, name: str) -> str:
    values = fields.get(name) or ()
    return values[0] if values else ""


def _field_or_default(fields: FormFields, name: str, default: str) -> str:
    return _first(fields, name) or default


def _recipients(fields: FormFields, config: RelayConfig) -> list[str]:
    supplied = [addr.strip() for addr in fields.get("to") or () if addr.strip()]
    if supplied:
        return supplied
    return config.default_recipients


def _check_header_value(name: str, value: str) -> None:
    if "\r" in value or "\n" in value:
        raise ValidationError(f"invalid line break in field '{name}'", code="invalid_field")


def _check_address(name: str, value: str) -> None:
    _check_header_value(name, value)
    # Envelope commands are ASCII only
    if not value.isascii():
        raise ValidationError(f"non-ASCII address in field '{name}'", code="invalid_field")


def assemble(fields: FormFields, raw_body: str, config: RelayConfig) -> Mail:
    """Build the :class:`Mail` for one request.

    Args:
        fields: Form values keyed by name (``from``, ``to``, ``subject``,
            ``msg``); ``to`` may carry several values.
        raw_body: Raw POST payload, empty when there is none.
        config: Startup configuration holding defaults and the locked sender.

    Returns:
        The validated mail.

    Raises:
        ValidationError: If no sender or no recipient can be resolved, or a
            header value contains a line break, or an address is not ASCII.
    """
    from_addr = _field_or_default(fields, "from", config.default_from).strip()
    to = _recipients(fields, config)
    subject = _field_or_default(fields, "subject", config.default_subject)
    body = _field_or_default(fields, "msg", config.default_body)

    if raw_body:
        logger.debug("Using mail body from POST.")
        body = raw_body

    if config.forced_from:
        from_addr = config.forced_from

    if not to or not from_addr:
        raise ValidationError(MISSING_FIELDS_MESSAGE)

    _check_address("from", from_addr)
    for addr in to:
        _check_address("to", addr)
    _check_header_value("subject", subject)

    return Mail(from_addr=from_addr, to=to, subject=subject, body=body)
