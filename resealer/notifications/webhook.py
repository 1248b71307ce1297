"""Generic JSON webhook for the end-of-run summary.

The payload mirrors ``report_payload`` so consumers can parse it without
resealer-specific knowledge. Delivery failures are logged and reported as
``False``; they never change the run's exit code.
"""

from __future__ import annotations

from datetime import UTC, datetime

import httpx
import structlog

from resealer.models.outcomes import RunReport
from resealer.report.reporter import report_payload

_log = structlog.get_logger(component="notifications.webhook")


class SummaryWebhook:
    """Delivers the run summary by POSTing a JSON payload to a configurable URL.

    Args:
        url:     Full endpoint URL (must be HTTPS in production).
        headers: Optional extra headers (e.g. Authorization).
        timeout: HTTP request timeout in seconds. Defaults to 10.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport

    async def send(self, report: RunReport, cluster: str = "") -> bool:
        """POST *report* as JSON. Returns True on a 2xx response."""
        payload = {
            **report_payload(report),
            "cluster": cluster,
            "sent_at": datetime.now(tz=UTC).isoformat(),
        }
        request_headers = {
            "Content-Type": "application/json",
            **self._headers,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=payload, headers=request_headers)
                if response.is_success:
                    _log.info("summary_webhook_sent", exit_code=report.exit_code)
                    return True
                _log.warning(
                    "summary_webhook_non_2xx_response",
                    status_code=response.status_code,
                    body=response.text[:200],
                )
                return False
        except httpx.TimeoutException:
            _log.warning("summary_webhook_timeout", url=self._url)
            return False
        except httpx.HTTPError as exc:
            _log.warning("summary_webhook_http_error", error=str(exc))
            return False
