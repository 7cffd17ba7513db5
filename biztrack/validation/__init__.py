"""Validation package."""

from biztrack.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
