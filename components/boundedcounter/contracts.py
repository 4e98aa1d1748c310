from __future__ import annotations

import enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class CounterOutcome(str, enum.Enum):
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"


LIMIT_EXCEEDED = CounterOutcome.LIMIT_EXCEEDED

# Either the new counter value or LIMIT_EXCEEDED
IncrOutcome = Union[int, CounterOutcome]


class IncrRequest(BaseModel):
    key: str = Field(..., min_length=1, description="Counter key")
    limit: int = Field(..., description="Upper bound the counter must not exceed")
    delta: int = Field(1, description="Signed increment")


class IncrResult(BaseModel):
    key: str
    value: Optional[int] = None
    limited: bool = False

    @classmethod
    def from_outcome(cls, key: str, outcome: IncrOutcome) -> "IncrResult":
        if outcome is LIMIT_EXCEEDED:
            return cls(key=key, value=None, limited=True)
        return cls(key=key, value=int(outcome), limited=False)
