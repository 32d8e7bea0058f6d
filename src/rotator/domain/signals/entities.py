from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ConditionType(str, Enum):
    GATE = "gate"
    POSITION_MODIFIER = "position_modifier"


class Operator(str, Enum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    NEQ = "neq"


class GateAction(str, Enum):
    SKIP_TRADING = "skip_trading"
    ALLOW_TRADING = "allow_trading"


@dataclass(frozen=True, slots=True)
class SignalCondition:
    """A rule over one external indicator.

    - gate: when satisfied, `action` decides whether this run trades at all.
    - position_modifier: when satisfied, investable capital is multiplied
      by `multiplier`.
    """

    source_id: str
    type: ConditionType
    operator: Operator
    threshold: float
    multiplier: float = 1.0
    action: GateAction | None = None


@dataclass(frozen=True, slots=True)
class SignalReading:
    source_id: str
    value: float
    fetched_at: datetime
    raw: Any = field(default=None, compare=False)
