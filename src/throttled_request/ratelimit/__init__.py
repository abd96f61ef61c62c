"""Completion-time based rate accounting."""

from throttled_request.ratelimit.ledger import CompletionLedger

__all__ = ["CompletionLedger"]
