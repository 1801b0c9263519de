# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the relay.

All metrics use the ``hsr_`` prefix (http-smtp-relay).

Metrics exposed:
    - ``hsr_sent_total``: Counter of mails accepted by the relay.
    - ``hsr_recipients_total``: Counter of recipients of accepted mails.
    - ``hsr_errors_total``: Counter of failed requests, labeled by ``kind``
      (``validation`` or ``transport``).

Metrics are served only when ``metrics_path`` is configured, e.g.::

    GET /metrics
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class RelayMetrics:
    """Prometheus metrics collector for relayed mail.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
        sent: Counter of mails accepted by the relay.
        recipients: Counter of recipients of accepted mails.
        errors: Counter of failed requests by kind.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. A private one is
                created when omitted so several apps can coexist in tests.
        """
        self.registry = registry or CollectorRegistry()
        self.sent = Counter(
            "hsr_sent_total",
            "Total mails accepted by the SMTP relay",
            registry=self.registry,
        )
        self.recipients = Counter(
            "hsr_recipients_total",
            "Total recipients of accepted mails",
            registry=self.registry,
        )
        self.errors = Counter(
            "hsr_errors_total",
            "Total failed relay requests",
            ["kind"],
            registry=self.registry,
        )

    def inc_sent(self, recipient_count: int) -> None:
        """Record one delivered mail with ``recipient_count`` recipients."""
        self.sent.inc()
        self.recipients.inc(recipient_count)

    def inc_error(self, kind: str) -> None:
        """Record a failed request of the given ``kind``."""
        self.errors.labels(kind=kind).inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
