""" Edge conditions: stored and carried, never evaluated here. """

import re
from dataclasses import dataclass
from typing import Optional, Tuple

OPERATORS = ("==", "!=", "<=", ">=", "<", ">")

# <reference-or-literal> <operator> <value>
_CONDITION = re.compile(
    r"^\s*(?P<left>.+?)\s*(?P<op>==|!=|<=|>=|<|>)\s*(?P<right>.+?)\s*$"
)


@dataclass(frozen=True)
class EdgeCondition:
    """A boolean expression gating traversal of an edge.

    The execution engine evaluates it; this object only keeps the text and
    can split it for display.
    """

    expression: str

    @classmethod
    def from_text(cls, text: Optional[str]) -> Optional["EdgeCondition"]:
        """Blank or ``None`` means unconditional."""
        if text is None or not str(text).strip():
            return None
        return cls(str(text).strip())

    @property
    def is_conditional(self) -> bool:
        return bool(self.expression.strip())

    def parts(self) -> Optional[Tuple[str, str, str]]:
        """``(left, operator, right)`` or ``None`` if the text has another shape."""
        match = _CONDITION.match(self.expression)
        if not match:
            return None
        return match.group("left"), match.group("op"), match.group("right")

    def __str__(self) -> str:
        return self.expression
