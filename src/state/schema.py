from __future__ import annotations

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Strict, ValidationError, field_validator


# A JSON array and nothing else (no tuple/str coercion)
JsonArray = Annotated[List[Any], Strict()]


class _CategoryShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    income: JsonArray
    expense: JsonArray
    investment: JsonArray


class _DocumentShape(BaseModel):
    """Top-level shape a document must have before it may replace live state.

    Only containers are checked; record contents are not.
    """

    model_config = ConfigDict(extra="allow")

    transactions: JsonArray
    investments: JsonArray
    cards: JsonArray
    debts: Optional[JsonArray] = None
    categories: _CategoryShape

    @field_validator("debts", mode="before")
    @classmethod
    def _falsy_debts_mean_absent(cls, v: Any) -> Any:
        # Older files may carry debts as null/false/0/"" instead of omitting it;
        # an empty object or list is still a value
        if v is None or v is False or v == "" or (type(v) in (int, float) and v == 0):
            return None
        return v


def is_valid(candidate: Any) -> bool:
    if not isinstance(candidate, dict):
        return False
    try:
        _DocumentShape.model_validate(candidate)
    except ValidationError:
        return False
    return True


__all__ = ["is_valid"]
