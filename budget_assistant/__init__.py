"""
Budget Assistant - Source Package

A chat-driven personal budgeting assistant: the user describes income
and expenses in free text, the assistant records them and replies with
real-time feedback on the monthly budget.

DESIGN PRINCIPLES:
1. AI extracts → Human classifies → Ledger commits
2. Aggregates are always recomputed, never cached
3. External services may fail; the chat never does
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Assistant Team"
