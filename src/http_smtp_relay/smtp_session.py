# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP session driver.

One call to :func:`send` opens a connection to the relay, runs the fixed
command sequence and closes it again. Nothing is shared between calls.

Session sequence:
    1. connect to the relay (implicit TLS when the port is 465 and TLS is not skipped)
    2. STARTTLS, unless TLS is skipped or already implicit
    3. ``MAIL FROM`` with the sender
    4. ``RCPT TO`` once per recipient, in order
    5. ``DATA`` with the message, closed by the end-of-data marker
    6. ``QUIT``

The first step that fails aborts the session: the connection is closed
without RSET or QUIT and a :class:`~http_smtp_relay.errors.TransportError`
naming the step is raised.

Example:
    Sending an assembled mail::

        await send(
            "smtp.example.com:587",
            mail.from_addr,
            mail.to,
            mail.wire(),
            skip_tls=False,
        )
"""

from __future__ import annotations

import re
from collections.abc import Sequence

import aiosmtplib

from .config import RelayConfig, parse_relay_address
from .errors import TransportError
from .logger import get_logger
from .models import END_OF_DATA, Mail

logger = get_logger("SmtpSession")

SMTPS_PORT = 465

_STUFFED_DOT = re.compile(rb"^\.", re.MULTILINE)
_WIRE_TERMINATOR = ("\r\n" + END_OF_DATA).encode("ascii")


def _message_content(wire_data: bytes) -> bytes:
    """Strip the DATA framing from ``wire_data``.

    ``SMTP.data`` dot-stuffs the message and appends the end-of-data marker
    itself, so it must receive the plain CRLF message.
    """
    if wire_data.endswith(_WIRE_TERMINATOR):
        wire_data = wire_data[: -len(END_OF_DATA)]
    return _STUFFED_DOT.sub(b"", wire_data)


async def send(
    relay_address: str,
    from_addr: str,
    to: Sequence[str],
    wire_data: bytes,
    *,
    skip_tls: bool = False,
    timeout: float | None = None,
) -> None:
    """Deliver ``wire_data`` to ``to`` through the relay at ``relay_address``.

    Args:
        relay_address: Relay as ``host:port``.
        from_addr: Envelope sender for ``MAIL FROM``.
        to: Envelope recipients for ``RCPT TO``, in order.
        wire_data: Complete DATA payload ending in ``CRLF.CRLF``
            (see :meth:`Mail.wire`).
        skip_tls: Use plain SMTP without STARTTLS.
        timeout: Per-command timeout in seconds, None to wait forever.

    Raises:
        TransportError: If connecting, TLS negotiation or any command fails.
    """
    host, port = parse_relay_address(relay_address)
    implicit_tls = not skip_tls and port == SMTPS_PORT

    # Port 465: direct TLS; other ports: STARTTLS after connecting unless skipped
    smtp = aiosmtplib.SMTP(
        hostname=host,
        port=port,
        start_tls=False,
        use_tls=implicit_tls,
        timeout=timeout,
    )

    step = "dial"
    try:
        await smtp.connect()

        if not skip_tls and not implicit_tls:
            step = "starttls"
            await smtp.starttls()

        step = "mail"
        await smtp.mail(from_addr)

        step = "rcpt"
        for addr in to:
            await smtp.rcpt(addr)

        step = "data"
        await smtp.data(_message_content(wire_data))

        step = "quit"
        await smtp.quit()
    except (aiosmtplib.SMTPException, OSError, UnicodeError) as exc:
        smtp.close()
        logger.warning("SMTP %s failed against %s: %s", step, relay_address, exc)
        raise TransportError.from_exception(step, exc) from exc

    logger.debug("Session with %s completed for %d recipient(s)", relay_address, len(to))


async def deliver(config: RelayConfig, mail: Mail) -> None:
    """Send ``mail`` through the configured relay."""
    await send(
        config.smtp_server,
        mail.from_addr,
        mail.to,
        mail.wire(),
        skip_tls=config.skip_tls,
        timeout=config.smtp_timeout,
    )
    logger.info("Delivered mail from %s to %s", mail.from_addr, ",".join(mail.to))
