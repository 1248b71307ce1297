"""Run-summary notifications.

Exports:
    SummaryWebhook -- POSTs the RunReport as JSON to a configured endpoint.
"""

from resealer.notifications.webhook import SummaryWebhook

__all__ = ["SummaryWebhook"]
