"""
Withdrawal Challenges

Taking money out of a savings goal costs a small behavioral task. The
bigger the withdrawal, the harder the task:

    |amount| <= 50          easy
    50 < |amount| <= 200    medium
    |amount| > 200          hard

Thresholds come from SavingsSettings; the texts are the dashboard's
fixed German catalog.
"""

import random
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from finboard.errors import InternalError
from finboard.models.savings import ChallengeTier
from finboard.money import Amount, to_decimal


DEFAULT_CHALLENGES: Mapping[ChallengeTier, tuple[str, ...]] = {
    ChallengeTier.EASY: (
        "Mache einen 15-minütigen Spaziergang.",
        "Trinke heute 2 Liter Wasser.",
        "Lies 10 Seiten in einem Buch.",
        "Rufe einen Freund oder Verwandten an.",
        "Räume ein Zimmer in deiner Wohnung auf.",
    ),
    ChallengeTier.MEDIUM: (
        "Koche heute Abend ein gesundes Abendessen.",
        "Mache ein 30-minütiges Workout.",
        "Lerne 5 neue Vokabeln in einer Fremdsprache.",
        "Verzichte heute auf Social Media.",
        "Spende 5€ an eine gemeinnützige Organisation.",
    ),
    ChallengeTier.HARD: (
        "Mache 100 Liegestütze über den Tag verteilt.",
        "Stehe eine Stunde früher auf als sonst.",
        "Verzichte eine Woche lang auf Zucker.",
        "Fange ein neues Hobby an und übe es für eine Stunde.",
        "Melde dich für einen Freiwilligendienst an.",
    ),
}

EASY_MAX = Decimal("50")
MEDIUM_MAX = Decimal("200")

ChallengeCatalog = Mapping[ChallengeTier, Sequence[str]]


def tier_for_amount(
    amount: Amount,
    easy_max: Decimal = EASY_MAX,
    medium_max: Decimal = MEDIUM_MAX,
) -> ChallengeTier:
    """Difficulty tier for a withdrawal of `amount` (sign is ignored)."""
    magnitude = abs(to_decimal(amount))
    if magnitude <= easy_max:
        return ChallengeTier.EASY
    if magnitude <= medium_max:
        return ChallengeTier.MEDIUM
    return ChallengeTier.HARD


def draw_challenge(
    tier: ChallengeTier,
    rng: random.Random,
    catalog: ChallengeCatalog = DEFAULT_CHALLENGES,
) -> str:
    """
    Pick one challenge uniformly at random from the tier's pool.

    Raises:
        InternalError: if the catalog has no challenge for this tier.
    """
    pool = catalog.get(tier) or ()
    if not pool:
        raise InternalError(f"No challenge available for tier '{tier.value}'")
    return rng.choice(list(pool))


def propose_challenge(
    amount: Amount,
    rng: random.Random,
    catalog: ChallengeCatalog = DEFAULT_CHALLENGES,
    easy_max: Decimal = EASY_MAX,
    medium_max: Decimal = MEDIUM_MAX,
) -> Optional[tuple[ChallengeTier, str]]:
    """
    Preview the challenge for an amount the user is still typing.

    Returns None for deposits (non-negative amounts), which need no challenge.
    """
    if to_decimal(amount) >= 0:
        return None
    tier = tier_for_amount(amount, easy_max, medium_max)
    return tier, draw_challenge(tier, rng, catalog)
