"""
core/split_calculator.py — turns an expense amount and a split policy into
per-participant owed amounts.

    compute(amount, policy, participants, explicit_splits=None) -> list[dict]

Each entry is {"member_key", "owed_amount", "owed_percentage"}, returned in
participant order and covering exactly the participants.

Guarantee: sum(owed_amount) == amount, to the cent, for every policy.

Policies:
  equal       amount / N rounded half-up; the rounding residual is handed out
              one cent at a time starting with the first participant
              (100.00 / 3 → 33.34, 33.33, 33.33). Percentages are split the
              same way against 100.
  percentage  explicit_splits maps participant → percentage in [0, 100].
              The percentages must total 100 within ±0.01. Each share is
              amount * pct / 100 rounded half-up, then reconciled as above.
  custom      explicit_splits maps participant → amount (≥ 0, two places).
              The amounts must total `amount` within ±0.01. They are kept as
              given; the residual of up to one cent the tolerance allows is
              absorbed by the first participant with a non-zero share, so
              the stored total is exact.

Every rejected input raises ValidationError (422). Pure function: no I/O and
no mutation of the arguments.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from backend.app.core.money import (
    CENT,
    HUNDRED,
    has_at_most_two_places,
    round_money,
    sum_money,
    to_decimal,
)
from backend.app.errors import ErrorCode, ValidationError
from backend.app.models.expense import SplitPolicy

# Allowed gap between the caller's total and the target (percentages or amount).
TOLERANCE = Decimal("0.01")

_PERCENT_PLACES = Decimal("0.0001")


def compute(
        amount,
        policy,
        participants: Sequence,
        explicit_splits: Mapping | None = None,
) -> list[dict]:
    amount = _validate_amount(amount)
    policy = _validate_policy(policy)
    participants = _validate_participants(participants)

    if policy is SplitPolicy.EQUAL:
        return _equal(amount, participants)

    given = _match_explicit(participants, explicit_splits)
    if policy is SplitPolicy.PERCENTAGE:
        return _percentage(amount, participants, given)
    return _custom(amount, participants, given)


# ── Validation ─────────────────────────────────────────────────────────────

def _validate_amount(amount) -> Decimal:
    value = to_decimal(amount)
    if value is None or value <= 0:
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            "Amount must be a positive number.",
            field="amount",
        )
    if not has_at_most_two_places(value):
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT_PRECISION,
            "Amount must have at most 2 decimal places.",
            field="amount",
        )
    return round_money(value)


def _validate_policy(policy) -> SplitPolicy:
    try:
        return SplitPolicy(policy)
    except ValueError:
        raise ValidationError(
            ErrorCode.INVALID_SPLIT_POLICY,
            f"Unknown split policy {policy!r}. "
            f"Use one of: {', '.join(p.value for p in SplitPolicy)}.",
            field="split_policy",
        ) from None


def _validate_participants(participants: Sequence) -> list:
    participants = list(participants or [])
    if not participants:
        raise ValidationError(
            ErrorCode.NO_PARTICIPANTS,
            "An expense needs at least one participant.",
            field="splits",
        )
    if len(set(participants)) != len(participants):
        raise ValidationError(
            ErrorCode.DUPLICATE_PARTICIPANT,
            "The same participant appears more than once.",
            field="splits",
        )
    return participants


def _match_explicit(participants: list, explicit_splits: Mapping | None) -> dict:
    """Checks that explicit values exist for exactly the participants."""
    if not explicit_splits or set(explicit_splits) != set(participants):
        raise ValidationError(
            ErrorCode.SPLITS_DO_NOT_MATCH,
            "Split values must be given for exactly the expense participants.",
            field="splits",
        )
    return dict(explicit_splits)


# ── Policies ───────────────────────────────────────────────────────────────

def _equal(amount: Decimal, participants: list) -> list[dict]:
    count = Decimal(len(participants))
    shares = _reconcile([round_money(amount / count)] * len(participants), amount)
    percentages = _reconcile([round_money(HUNDRED / count)] * len(participants), HUNDRED)
    return _entries(participants, shares, percentages)


def _percentage(amount: Decimal, participants: list, given: dict) -> list[dict]:
    percentages = []
    for participant in participants:
        pct = to_decimal(given[participant])
        if pct is None or pct < 0 or pct > HUNDRED:
            raise ValidationError(
                ErrorCode.PERCENTAGE_OUT_OF_RANGE,
                "Each percentage must be between 0 and 100.",
                field="splits",
            )
        percentages.append(pct)

    total = sum(percentages, Decimal("0"))
    if abs(total - HUNDRED) > TOLERANCE:
        raise ValidationError(
            ErrorCode.PERCENTAGE_SUM_MISMATCH,
            f"Percentages must add up to 100 (got {total}).",
            field="splits",
        )

    shares = _reconcile(
        [round_money(amount * pct / HUNDRED) for pct in percentages],
        amount,
        eligible=[pct > 0 for pct in percentages],
    )
    return _entries(
        participants,
        shares,
        [pct.quantize(_PERCENT_PLACES) for pct in percentages],
    )


def _custom(amount: Decimal, participants: list, given: dict) -> list[dict]:
    shares = []
    for participant in participants:
        share = to_decimal(given[participant])
        if share is None or share < 0:
            raise ValidationError(
                ErrorCode.INVALID_AMOUNT,
                "Each split amount must be zero or more.",
                field="splits",
            )
        if not has_at_most_two_places(share):
            raise ValidationError(
                ErrorCode.INVALID_AMOUNT_PRECISION,
                "Split amounts must have at most 2 decimal places.",
                field="splits",
            )
        shares.append(round_money(share))

    total = sum_money(shares)
    if abs(total - amount) > TOLERANCE:
        raise ValidationError(
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Split amounts add up to {total}, expected {amount}.",
            field="splits",
        )

    shares = _reconcile(shares, amount, eligible=[share > 0 for share in shares])
    percentages = [
        (share * HUNDRED / amount).quantize(_PERCENT_PLACES) for share in shares
    ]
    return _entries(participants, shares, percentages)


# ── Helpers ────────────────────────────────────────────────────────────────

def _reconcile(
        shares: list[Decimal],
        target: Decimal,
        eligible: list[bool] | None = None,
) -> list[Decimal]:
    """
    Spreads the residual cents over the shares so they add up to `target`.

    The result is the same as dealing one cent at a time, cycling from the
    first position: each position gets residual // n cents and the first
    residual % n get one more. Only positions flagged in `eligible` are
    adjusted (all of them when none is flagged). Cents are never taken from
    a zero share, so a negative residual may need several rounds.
    """
    shares = list(shares)
    if eligible is None or not any(eligible):
        eligible = [True] * len(shares)
    positions = [i for i, ok in enumerate(eligible) if ok]

    cents = int((target - sum_money(shares)) / CENT)
    if cents >= 0:
        per_share, extra = divmod(cents, len(positions))
        for rank, position in enumerate(positions):
            shares[position] += CENT * (per_share + (rank < extra))
        return shares

    owed = -cents
    while owed:
        donors = [p for p in positions if shares[p] >= CENT]
        per_share, extra = divmod(owed, len(donors))
        for rank, position in enumerate(donors):
            take = min(per_share + (rank < extra), int(shares[position] / CENT))
            shares[position] -= CENT * take
            owed -= take
    return shares


def _entries(participants: list, shares: list[Decimal], percentages: list[Decimal]) -> list[dict]:
    return [
        {
            "member_key":      participant,
            "owed_amount":     share,
            "owed_percentage": percentage,
        }
        for participant, share, percentage in zip(participants, shares, percentages)
    ]
