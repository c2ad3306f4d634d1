from finco.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
