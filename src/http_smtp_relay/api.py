"""FastAPI application factory for the relay.

The application exposes a single handler answering GET and POST on every
path. Mail fields are read from the query string and, for form-encoded
POSTs, from the form body:

- ``from``: sender
- ``to``: recipient, repeatable
- ``subject``: subject line
- ``msg``: body text

Any other POST payload, including a form-encoded one that carries none of
these fields, is used verbatim as the mail body and wins over ``msg``.
Successful deliveries answer ``200 text/plain`` with the message as it was
composed; validation and SMTP failures answer ``400 text/plain`` with the
error text.

Example:
    Creating and running the application::

        from http_smtp_relay.api import create_app
        from http_smtp_relay.config import load_settings

        config = load_settings()
        app = create_app(config)

        uvicorn.run(app, host=config.host, port=config.port)

    Sending a mail::

        curl 'http://localhost:8080/?to=a@x.com&to=b@x.com&subject=Hi' -d 'Hello'
"""

from collections.abc import Awaitable, Callable
from typing import AsyncContextManager, Dict, List, Optional, Tuple
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from .assembler import assemble
from .config import RelayConfig
from .errors import TransportError, ValidationError
from .models import Mail
from .prometheus import RelayMetrics
from .smtp_session import deliver

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
MAIL_FIELDS = ("from", "to", "subject", "msg")
REDACTED_TRANSPORT_MESSAGE = "mail delivery failed"

Sender = Callable[[RelayConfig, Mail], Awaitable[None]]


async def read_mail_fields(request: Request) -> Tuple[Dict[str, List[str]], str]:
    """Collect form fields and the raw POST body of ``request``.

    Query string values come first, form-body values are appended after them.
    A form-encoded body that carries none of the mail fields, such as the
    payload of ``curl -d 'Hello'``, is used as the raw body instead. The raw
    body is empty for GET and for form POSTs that do carry mail fields.
    """
    fields: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        fields.setdefault(key, []).append(value)

    if request.method != "POST":
        return fields, ""

    payload = await request.body()
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        # Uploaded files carry no mail field
        form_fields = [(key, value) for key, value in form.multi_items() if isinstance(value, str)]
        if any(key in MAIL_FIELDS for key, _ in form_fields):
            for key, value in form_fields:
                fields.setdefault(key, []).append(value)
            return fields, ""
        if content_type == "multipart/form-data":
            return fields, ""

    if payload:
        logger.info("Got mail message body from POST.")
    return fields, payload.decode("utf-8", errors="replace")


def create_app(
    config: RelayConfig,
    sender: Optional[Sender] = None,
    metrics: Optional[RelayMetrics] = None,
    lifespan: Callable[[FastAPI], AsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Startup configuration; never modified by request handling.
    sender:
        Coroutine delivering an assembled mail. Defaults to
        :func:`http_smtp_relay.smtp_session.deliver`.
    metrics:
        Metrics collector. A fresh :class:`RelayMetrics` is created when
        omitted.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn or any ASGI
        server.
    """
    send_mail = sender or deliver
    relay_metrics = metrics or RelayMetrics()

    # Interactive docs would shadow relay paths
    api = FastAPI(
        title="HTTP SMTP Relay",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    api.state.config = config
    api.state.metrics = relay_metrics

    if config.metrics_path:
        @api.get(config.metrics_path)
        async def metrics_endpoint():
            """Expose Prometheus metrics collected by the relay."""
            return Response(
                content=relay_metrics.generate_latest(),
                media_type="text/plain; version=0.0.4",
            )

    @api.api_route("/{path:path}", methods=["GET", "POST"], response_class=PlainTextResponse)
    async def relay(request: Request, path: str):
        """Assemble a mail from the request and hand it to the SMTP relay."""
        client = request.client.host if request.client else "-"
        logger.info("%s | %s %s", client, request.method, request.url)

        fields, raw_body = await read_mail_fields(request)
        try:
            mail = assemble(fields, raw_body, config)
            await send_mail(config, mail)
        except ValidationError as exc:
            relay_metrics.inc_error("validation")
            logger.info("Rejected request from %s: %s", client, exc)
            return PlainTextResponse(str(exc), status_code=400)
        except TransportError as exc:
            relay_metrics.inc_error("transport")
            logger.warning("got error from mail send-method: %s", exc)
            detail = REDACTED_TRANSPORT_MESSAGE if config.redact_errors else str(exc)
            return PlainTextResponse(detail, status_code=400)

        relay_metrics.inc_sent(len(mail.to))
        return PlainTextResponse(mail.display())

    return api
