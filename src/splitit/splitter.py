"""Split calculator: allocate an entry total between participants.

All arithmetic happens in integer cents so shares always add back up to the
total. Rounding residuals are assigned deterministically:

- equal mode gives the leftover cents to the *first* participant
- percent and shares modes force the *last* participant's share to
  ``total - sum(previous shares)``
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import (
    EmptyParticipantsError,
    InvalidAmountError,
    NegativeInputError,
    PercentOutOfRangeError,
    SplitError,
    SumMismatchError,
    UnknownSplitModeError,
    ZeroSharesError,
)
from .models import Split, SplitMode, SplitResult

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MONEY_EPSILON = Decimal("0.01")  # One cent
PERCENT_EPSILON = Decimal("0.5")  # User-entered percentages round coarsely

Number = Decimal | int | float | str


def to_decimal(value: Number) -> Decimal:
    """
    Convert a user-supplied number to Decimal.

    Floats go through ``str`` so ``0.1`` stays ``0.1`` instead of its binary
    expansion.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(amount: Decimal) -> int:
    """
    Convert Decimal currency units to integer cents.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount as Decimal

    Returns:
        Amount in cents (integer)
    """
    cents = amount * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    return (Decimal(cents) / 100).quantize(CENT)


def splits_total(splits: Iterable[Split]) -> Decimal:
    """Sum the amounts of a list of splits."""
    return sum((split.amount for split in splits), Decimal("0"))


def compute_splits(
    total_amount: Number,
    participant_ids: Iterable[str],
    mode: SplitMode | str = SplitMode.EQUAL,
    mode_inputs: Mapping[str, Number] | None = None,
) -> SplitResult:
    """
    Split a total between participants according to an allocation mode.

    Args:
        total_amount: Positive amount to allocate
        participant_ids: Participants in display order; order decides who
            absorbs rounding residuals
        mode: One of equal, exact, percent, shares
        mode_inputs: Per-participant amount, percentage or weight. Ignored in
            equal mode; a participant without an input counts as 0.

    Returns:
        SplitResult carrying either the splits or the typed SplitError
    """
    try:
        splits = _compute(total_amount, participant_ids, mode, mode_inputs or {})
    except SplitError as e:
        logger.debug(f"Split rejected: {e}")
        return SplitResult(error=e)
    return SplitResult(splits=splits)


def _compute(
    total_amount: Number,
    participant_ids: Iterable[str],
    mode: SplitMode | str,
    mode_inputs: Mapping[str, Number],
) -> list[Split]:
    ids = list(dict.fromkeys(participant_ids))
    if not ids:
        raise EmptyParticipantsError()

    total = to_decimal(total_amount)
    if total <= 0:
        raise InvalidAmountError(total)

    try:
        split_mode = SplitMode(mode)
    except ValueError:
        raise UnknownSplitModeError(str(mode)) from None

    if split_mode is SplitMode.EQUAL:
        return _split_equal(to_cents(total), ids)

    inputs = _read_inputs(ids, mode_inputs)

    if split_mode is SplitMode.EXACT:
        return _split_exact(total, inputs)

    if split_mode is SplitMode.PERCENT:
        total_percent = sum(inputs.values(), Decimal("0"))
        if abs(total_percent - 100) > PERCENT_EPSILON:
            raise PercentOutOfRangeError(total_percent)
        return _split_weighted(to_cents(total), inputs, total_percent)

    total_weight = sum(inputs.values(), Decimal("0"))
    if total_weight <= 0:
        raise ZeroSharesError()
    return _split_weighted(to_cents(total), inputs, total_weight)


def _read_inputs(
    ids: list[str], mode_inputs: Mapping[str, Number]
) -> dict[str, Decimal]:
    """Resolve one non-negative input per participant, keeping participant order."""
    inputs = {}
    for pid in ids:
        value = to_decimal(mode_inputs.get(pid, 0))
        if value < 0:
            raise NegativeInputError(pid, value)
        inputs[pid] = value
    return inputs


def _split_equal(total_cents: int, ids: list[str]) -> list[Split]:
    # Truncate every share to the cent; the first participant takes the rest
    basic = total_cents // len(ids)
    remainder = total_cents - basic * len(ids)

    if remainder:
        logger.debug(f"Equal split: {remainder} leftover cents to {ids[0]}")

    splits = []
    for idx, pid in enumerate(ids):
        cents = basic + remainder if idx == 0 else basic
        splits.append(Split(person_id=pid, amount=from_cents(cents)))
    return splits


def _split_exact(total: Decimal, inputs: dict[str, Decimal]) -> list[Split]:
    actual = sum(inputs.values(), Decimal("0"))
    if abs(actual - total) > MONEY_EPSILON:
        raise SumMismatchError(
            expected=total.quantize(CENT), actual=actual.quantize(CENT)
        )

    return [Split(person_id=pid, amount=amount) for pid, amount in inputs.items()]


def _split_weighted(
    total_cents: int, weights: dict[str, Decimal], total_weight: Decimal
) -> list[Split]:
    """Allocate proportionally to weights; the last participant absorbs the residual."""
    splits = []
    assigned = 0
    last = len(weights) - 1

    for idx, (pid, weight) in enumerate(weights.items()):
        if idx == last:
            cents = total_cents - assigned
            logger.debug(f"Weighted split: {pid} takes the remaining {cents} cents")
        else:
            share = Decimal(total_cents) * weight / total_weight
            cents = int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        assigned += cents
        splits.append(Split(person_id=pid, amount=from_cents(cents)))

    return splits

