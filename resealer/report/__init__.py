"""Outcome aggregation and the run summary."""

from resealer.report.reporter import Reporter, render_summary, report_payload

__all__ = ["Reporter", "render_summary", "report_payload"]
