from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class Window(BaseModel):
    """Half-open UTC interval ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "Window":
        if self.start >= self.end:
            raise ValueError("Window start must be before its end.")
        return self


class StatGroup(BaseModel):
    """Entry count and summed amount of one category within a window."""

    model_config = ConfigDict(frozen=True)

    category_id: int
    alias: str
    name: str
    entry_count: int = Field(ge=0)
    amount_sum: int = Field(description="Sum of amounts in minor units.")


class Stat(BaseModel):
    model_config = ConfigDict(frozen=True)

    groups: list[StatGroup] = Field(default_factory=list)

    @computed_field
    @property
    def total_count(self) -> int:
        return sum(group.entry_count for group in self.groups)

    @computed_field
    @property
    def total_amount(self) -> int:
        return sum(group.amount_sum for group in self.groups)

    def __len__(self) -> int:
        return len(self.groups)
