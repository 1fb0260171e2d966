"""Domain types and aliases."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, TypedDict

import pandas as pd

Timestamp = datetime
ObservationDate = date | datetime | pd.Timestamp
Observation = tuple[ObservationDate, float]
SeriesPoints = list[Observation]

# JSON-serializable types (recursive)
if TYPE_CHECKING:
    JsonValue = str | int | float | bool | None | dict[str, "JsonValue"] | list["JsonValue"]
else:
    JsonValue = str | int | float | bool | None | dict | list


class ErrorDict(TypedDict, total=False):
    """Rendered calculation error."""

    kind: str
    message: str
    position: int
    argument_index: int
    function: str
