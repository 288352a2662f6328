from __future__ import annotations

import copy
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field


Document = Dict[str, Any]

RECORD_COLLECTIONS = (
    "transactions",
    "investments",
    "cards",
    "debts",
    "subscriptions",
    "reminders",
)
CATEGORY_DOMAINS = ("income", "expense", "investment")

# Sequences added after the first release; older documents may lack them
LATE_COLLECTIONS = ("subscriptions", "reminders")

DEFAULT_REMINDER_DAYS = 7
MIN_REMINDER_DAYS = 1
MAX_REMINDER_DAYS = 30


class Category(BaseModel):
    """A named, colored bucket that records reference by `id`."""

    id: str
    name: str
    color: str = Field(..., description="CSS hex color, e.g. #22c55e")


class Preferences(BaseModel):
    """
    User-facing preferences kept in their own local slots.

    Fields
    - reminder_days: lookahead window for upcoming reminders (1-30 days).
    - theme: UI theme name.
    """

    reminder_days: int = Field(
        default=DEFAULT_REMINDER_DAYS,
        ge=MIN_REMINDER_DAYS,
        le=MAX_REMINDER_DAYS,
        description="Reminder lookahead window in days",
    )
    theme: Literal["dark", "light"] = "dark"


_DEFAULT_CATEGORIES: Dict[str, List[Category]] = {
    "income": [
        Category(id="salary", name="Salary", color="#22c55e"),
        Category(id="freelance", name="Freelance", color="#3b82f6"),
        Category(id="investment-returns", name="Investment Returns", color="#8b5cf6"),
        Category(id="other-income", name="Other Income", color="#f59e0b"),
    ],
    "expense": [
        Category(id="food", name="Food & Dining", color="#ef4444"),
        Category(id="transportation", name="Transportation", color="#06b6d4"),
        Category(id="entertainment", name="Entertainment", color="#ec4899"),
        Category(id="utilities", name="Utilities", color="#84cc16"),
        Category(id="shopping", name="Shopping", color="#f97316"),
        Category(id="healthcare", name="Healthcare", color="#6366f1"),
        Category(id="education", name="Education", color="#8b5cf6"),
        Category(id="other-expense", name="Other Expenses", color="#6b7280"),
    ],
    "investment": [
        Category(id="stocks", name="Stocks", color="#22c55e"),
        Category(id="bonds", name="Bonds", color="#3b82f6"),
        Category(id="crypto", name="Cryptocurrency", color="#f59e0b"),
        Category(id="real-estate", name="Real Estate", color="#8b5cf6"),
        Category(id="mutual-funds", name="Mutual Funds", color="#06b6d4"),
        Category(id="other", name="Other", color="#6b7280"),
    ],
}


def default_document() -> Document:
    """Fresh State Document: empty record sequences plus the built-in categories."""
    doc: Document = {name: [] for name in RECORD_COLLECTIONS}
    doc["categories"] = {
        domain: [c.model_dump() for c in cats] for domain, cats in _DEFAULT_CATEGORIES.items()
    }
    return doc


def shallow_merge(base: Mapping[str, Any], loaded: Mapping[str, Any]) -> Document:
    """Overlay `loaded` onto `base` by whole top-level fields.

    Key presence decides: an empty sequence in `loaded` still replaces the
    base value.
    """
    return {**base, **loaded}


def ensure_late_collections(doc: Document) -> Document:
    for name in LATE_COLLECTIONS:
        if not doc.get(name):
            doc[name] = []
    return doc


def has_records(doc: Mapping[str, Any]) -> bool:
    return any(doc.get(name) for name in ("transactions", "investments", "cards"))


class StateHolder:
    """
    Owner of the live State Document for one application session.

    The coordinator and the UI layer share one holder by reference. Renderers
    should work from `snapshot()`; only the store's mutation paths touch
    `document` directly.
    """

    def __init__(self, document: Optional[Document] = None) -> None:
        self._document: Document = document if document is not None else default_document()

    @property
    def document(self) -> Document:
        return self._document

    def replace(self, document: Document) -> None:
        self._document = document

    def snapshot(self) -> Document:
        return copy.deepcopy(self._document)
