"""Run orchestration: worker pool and cancellation."""

from resealer.orchestrator.pool import Orchestrator

__all__ = ["Orchestrator"]
