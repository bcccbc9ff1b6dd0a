"""
Finboard - Source Package

The computational core of a personal/business finance dashboard:
recurring-payment projection, a challenge-gated savings-goal ledger,
and typed wrappers around generative-AI prompt templates.

DESIGN PRINCIPLES:
1. The view layer owns the collections, the core owns the rules
2. Fail early, fail visibly
3. No partial mutations - every operation returns a new value
4. Every user action is auditable
5. Clock, randomness and audit sink are injected, never global
"""

__version__ = "1.0.0"
__author__ = "Finboard Team"
