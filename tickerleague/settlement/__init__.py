"""Idempotent weekly settlement."""

from .engine import SettlementEngine, SettlementOutcome, SettlementStatus, week_status

__all__ = ["SettlementEngine", "SettlementOutcome", "SettlementStatus", "week_status"]
