"""Savings goals: challenge catalog, ledger and automations."""

from finboard.savings.automation import round_up_amount, surplus_allocation
from finboard.savings.challenges import (
    DEFAULT_CHALLENGES,
    draw_challenge,
    propose_challenge,
    tier_for_amount,
)
from finboard.savings.ledger import SavingsLedger

__all__ = [
    "DEFAULT_CHALLENGES",
    "SavingsLedger",
    "draw_challenge",
    "propose_challenge",
    "round_up_amount",
    "surplus_allocation",
    "tier_for_amount",
]
