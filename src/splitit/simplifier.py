"""Greedy debt simplification.

Matches the largest remaining debtor against the largest remaining creditor
until everyone is within a cent of zero. This is a heuristic: it does not
guarantee the minimum number of transfers.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from .models import SuggestedTransfer
from .splitter import MONEY_EPSILON, Number, to_decimal

logger = logging.getLogger(__name__)


def simplify(balances: Mapping[str, Number]) -> list[SuggestedTransfer]:
    """
    Compute transfers that settle a set of net balances.

    net > 0 is a creditor, net < 0 is a debtor; anyone within one cent of
    zero is already settled and left out. Both sides are sorted by magnitude,
    largest first, with a stable sort so ties keep the input order.

    Args:
        balances: Mapping of person id to signed net balance

    Returns:
        Ordered list of suggested transfers (debtor -> creditor)
    """
    creditors: list[list] = []
    debtors: list[list] = []
    for pid, value in balances.items():
        amount = to_decimal(value)
        if amount > MONEY_EPSILON:
            creditors.append([pid, amount])
        elif amount < -MONEY_EPSILON:
            debtors.append([pid, -amount])

    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]
        pay = min(debtor[1], creditor[1])
        if pay <= MONEY_EPSILON:
            break

        transfers.append(
            SuggestedTransfer(from_id=debtor[0], to_id=creditor[0], amount=pay)
        )
        logger.debug(f"Suggest {debtor[0]} -> {creditor[0]}: {pay}")

        debtor[1] -= pay
        creditor[1] -= pay
        if debtor[1] <= MONEY_EPSILON:
            i += 1
        if creditor[1] <= MONEY_EPSILON:
            j += 1

    return transfers


def apply_transfers(
    balances: Mapping[str, Number], transfers: Iterable[SuggestedTransfer]
) -> dict[str, Decimal]:
    """
    Return the balances left after every transfer is paid.

    Paying moves the debtor up and the creditor down, mirroring how a
    settlement entry is aggregated.
    """
    result = {pid: to_decimal(value) for pid, value in balances.items()}
    for transfer in transfers:
        result[transfer.from_id] = result.get(transfer.from_id, Decimal("0")) + (
            transfer.amount
        )
        result[transfer.to_id] = result.get(transfer.to_id, Decimal("0")) - (
            transfer.amount
        )
    return result
