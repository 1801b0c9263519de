"""HTTP-to-SMTP relay microservice.

This package turns an HTTP request carrying mail fields into an SMTP
delivery against a single configured relay:

- Request-to-mail assembly with configurable defaults and a locked sender
- A fixed MAIL/RCPT/DATA/QUIT session with STARTTLS or implicit TLS
- FastAPI application answering GET and POST on any path
- Click CLI to serve, send a single message, or inspect configuration
- Prometheus counters for sent mail and failures

Example:
    Creating the application from the environment::

        from http_smtp_relay.api import create_app
        from http_smtp_relay.config import load_settings

        app = create_app(load_settings())
"""

__version__ = "0.1.0"
