"""Pydantic domain models for SplitIt."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import SplitError

# ============================================================================
# People & Groups
# ============================================================================


class Person(BaseModel):
    """Someone who pays for or takes part in expenses."""

    id: str
    name: str
    contact: str | None = None
    notes: str | None = None
    is_you: bool = False  # At most one person is the primary user


class Group(BaseModel):
    """A named set of people whose shared entries are balanced together."""

    id: str
    name: str
    description: str | None = None
    member_ids: list[str] = Field(default_factory=list)


# ============================================================================
# Ledger Models
# ============================================================================


class SplitMode(str, Enum):
    """How an entry total is allocated between participants."""

    EQUAL = "equal"
    EXACT = "exact"
    PERCENT = "percent"
    SHARES = "shares"


EntryKind = Literal["expense", "settlement"]


class Split(BaseModel):
    """One participant's share of a ledger entry."""

    person_id: str
    amount: Decimal


class LedgerEntry(BaseModel):
    """A recorded monetary event: a shared expense or a direct settlement.

    For an ``expense`` the payer fronted the money and every split is what that
    participant consumed. For a ``settlement`` the payer handed each split
    amount directly to the split's person.
    """

    id: str
    description: str
    amount: Decimal = Field(gt=0)
    date: date
    payer_id: str
    splits: list[Split] = Field(default_factory=list)
    group_id: str | None = None
    category: str = "Other"
    notes: str = ""
    kind: EntryKind = "expense"
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("group_id")
    @classmethod
    def _blank_group_is_none(cls, value: str | None) -> str | None:
        return value or None

    def involves(self, person_id: str) -> bool:
        """True if the person paid for or takes part in this entry."""
        if self.payer_id == person_id:
            return True
        return any(split.person_id == person_id for split in self.splits)


class SuggestedTransfer(BaseModel):
    """A proposed payment that reduces outstanding debt between two people."""

    from_id: str
    to_id: str
    amount: Decimal


class SplitResult(BaseModel):
    """Outcome of splitting an amount: either splits or a typed error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    splits: list[Split] | None = None
    error: SplitError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> list[Split]:
        """Return the splits, raising the carried error if splitting failed."""
        if self.error is not None:
            raise self.error
        return self.splits or []


# ============================================================================
# Persisted State
# ============================================================================


class AppSettings(BaseModel):
    """User-facing display settings."""

    currency_symbol: str = "₹"
    theme: Literal["light", "dark"] = "light"


class LedgerState(BaseModel):
    """A complete snapshot of everything the ledger stores."""

    people: list[Person] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    entries: list[LedgerEntry] = Field(default_factory=list)
    settings: AppSettings = Field(default_factory=AppSettings)

    def person_ids(self) -> list[str]:
        return [person.id for person in self.people]


class EntryFilter(BaseModel):
    """Criteria for listing ledger entries."""

    group_id: str | None = None
    person_id: str | None = None
    category: str | None = None
    search: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    sort_by: Literal["date-desc", "date-asc", "amount-desc", "amount-asc"] = (
        "date-desc"
    )
