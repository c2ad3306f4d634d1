"""
FinCo - Personal Finance Co-pilot

A personal-finance dashboard over a simulated UPI wallet: transactions,
bills, savings goals, a staking vault and an AI advisor.

DESIGN PRINCIPLES:
1. One ledger value per session, replaced by pure reducers
2. Every dashboard number is derived, never stored
3. The advisor narrates; it never changes the ledger
4. Every action must be auditable
"""

__version__ = "1.0.0"
__author__ = "FinCo Team"
