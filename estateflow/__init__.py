"""
EstateFlow Ledger - Source Package

Bookkeeping core for card-based expenses shared across investors
and rental properties.

DESIGN PRINCIPLES:
1. Every mutation is written through to storage before returning
2. Bad persisted state never stops the app (discard and reseed)
3. Statement matches are suggested, never auto-committed
4. Every ledger change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "EstateFlow Team"
