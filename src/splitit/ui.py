"""Interactive UI components for picking people and settling up."""

import logging
from collections import Counter
from collections.abc import Mapping
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Person, SuggestedTransfer

logger = logging.getLogger(__name__)


class PersonCompleter(Completer):
    """Fuzzy search completer for people.

    People who share a name are shown as ``Name (id)`` so each completion
    resolves to exactly one person.
    """

    def __init__(self, people: list[Person]):
        """Initialize the completer with available people."""
        self.people = people
        counts = Counter(person.name for person in people)
        self.labels = {
            person.id: (
                f"{person.name} ({person.id})"
                if counts[person.name] > 1
                else person.name
            )
            for person in people
        }
        self.name_to_id = {label: pid for pid, label in self.labels.items()}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for person in self.people:
            label = self.labels[person.id]
            if not query or fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                    display_meta="you" if person.is_you else person.contact or "",
                )


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="al" matches "Alice"
        query="bb" matches "Bobby"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


def select_person_interactive(people: list[Person], label: str) -> str | None:
    """
    Interactive person selection with fuzzy search.

    Args:
        people: People to choose from
        label: What the person is being chosen for, e.g. "Payer"

    Returns:
        Selected person id, or None to skip
    """
    if not people:
        print("\n⚠️  No people yet. Add someone with `splitit person add` first.")
        return None

    completer = PersonCompleter(people)
    session: PromptSession[str] = PromptSession(completer=completer)
    default_text = next((completer.labels[p.id] for p in people if p.is_you), "")

    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    try:
        while True:
            result = session.prompt(
                f"{label}: ",
                default=default_text,
                complete_while_typing=True,
            )

            if not result:
                return None

            person_id = completer.name_to_id.get(result)
            if person_id:
                logger.info(f"User selected {label.lower()}: {result}")
                return person_id

            print("❌ Unknown person. Please select from the list or press Tab.")
            default_text = ""

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def select_transfer_interactive(
    transfers: list[SuggestedTransfer],
    names: Mapping[str, str],
    currency_symbol: str,
) -> int | None:
    """
    Interactive suggested-transfer selection.

    Args:
        transfers: Suggested transfers, in the order they were computed
        names: Person id to display name
        currency_symbol: Symbol to show in front of amounts

    Returns:
        Index of the selected transfer (0-based), or None to cancel
    """
    if not transfers:
        print("\n✓ Everyone is settled up")
        return None

    print("\n💸 Suggested settlements:")
    print("Pick the payment that has been made to record it\n")

    for idx, transfer in enumerate(transfers):
        from_name = names.get(transfer.from_id, f"{transfer.from_id} (deleted)")
        to_name = names.get(transfer.to_id, f"{transfer.to_id} (deleted)")
        amount = f"{currency_symbol}{transfer.amount:.2f}"
        print(f"  [{idx + 1}] {from_name} → {to_name}: {amount}")

    try:
        max_selection = len(transfers)
        response = (
            input(f"\nSelect settlement [1-{max_selection}, or q to quit]: ")
            .strip()
            .lower()
        )

        if response in ("q", "quit", ""):
            return None

        selection = int(response) - 1

        if 0 <= selection < len(transfers):
            return selection
        else:
            print("❌ Invalid selection")
            return None

    except (ValueError, KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None


def confirm(message: str, default: bool = False) -> bool:
    """Simple yes/no confirmation."""
    hint = "[Y/n]" if default else "[y/N]"
    try:
        response = input(f"{message} {hint} ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        return False

    if not response:
        return default
    return response in ("y", "yes")
