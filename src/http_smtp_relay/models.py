# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic model for the mail relayed by a single request.

The :class:`Mail` value is built by :func:`http_smtp_relay.assembler.assemble`,
rendered twice (once for the SMTP DATA phase, once for the HTTP response) and
discarded when the request ends.

Rendering layout, where ``LSEP`` is the line separator::

    From: <from>LSEP
    To: <to,to,...>LSEP
    [Subject: <subject>LSEP]
    LSEP
    <body>LSEP

Example:
    >>> mail = Mail(from_addr="me@x.com", to=["a@x.com"], subject="Hi", body="Hello")
    >>> mail.display()
    'From: me@x.com\\nTo: a@x.com\\nSubject: Hi\\n\\nHello\\n'
"""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

LF = "\n"
CRLF = "\r\n"
END_OF_DATA = "." + CRLF

_LEADING_DOT = re.compile(r"^\.", re.MULTILINE)
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class Mail(BaseModel):
    """A message ready to be handed to the SMTP session.

    Attributes:
        from_addr: Envelope and header sender (``from`` when serialized).
        to: Recipients in the order RCPT TO is issued.
        subject: Subject line; empty means no Subject header.
        body: Message text, possibly empty.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_addr: Annotated[str, Field(alias="from", min_length=1)]
    to: Annotated[list[str], Field(min_length=1)]
    subject: str = ""
    body: str = ""

    @field_validator("to")
    @classmethod
    def recipients_not_blank(cls, v: list[str]) -> list[str]:
        """Reject blank entries in the recipient list."""
        if any(not addr.strip() for addr in v):
            raise ValueError("recipient addresses must not be blank")
        return v

    def render(self, lsep: str = LF) -> str:
        """Render the message using ``lsep`` between lines.

        Line breaks inside the body are rewritten to ``lsep`` as well, so the
        CRLF rendering never carries a bare LF.
        """
        lines = [f"From: {self.from_addr}", f"To: {','.join(self.to)}"]
        if self.subject:
            lines.append(f"Subject: {self.subject}")
        lines.append("")
        lines.extend(_LINE_BREAK.split(self.body))
        return lsep.join(lines) + lsep

    def display(self) -> str:
        """Human readable form echoed back to the HTTP caller."""
        return self.render(LF)

    def wire(self) -> bytes:
        """Complete DATA payload: CRLF lines, dot-stuffed, ending in ``CRLF.CRLF``."""
        text = _LEADING_DOT.sub("..", self.render(CRLF))
        return (text + END_OF_DATA).encode("utf-8")
