"""
Expense Calendar - Source Package

Calendar reminders for a personal finance application: payment reminders,
upcoming bills, budget limits and recurring expenses, expanded into concrete
occurrences for any time window.

DESIGN PRINCIPLES:
1. Expansion is pure and deterministic
2. Every instant is UTC at the boundary
3. Recurring series are never expanded without a bound
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Calendar Team"
