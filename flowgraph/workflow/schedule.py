""" Trigger policy attached to a workflow: once, fixed interval or cron. """

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ScheduleError


class ScheduleType(str, Enum):
    ONCE = "once"
    INTERVAL = "interval"
    CRON = "cron"


CRON_FIELDS = 5

_EVERY = re.compile(r"^every (\d+) minutes?$")
_CRON = re.compile(r"^cron: `(.+)`$")
_ONCE = re.compile(r"^once at (.+)$")
_DIGITS = re.compile(r"[0-9]+")


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant; a trailing ``Z`` is accepted as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ScheduleError(f"Not an ISO-8601 instant: {value!r}")


@dataclass(frozen=True)
class AutomationSchedule:
    """When a workflow fires. ``None`` in its place means manual only.

    ``value`` is always a string: an ISO instant for ``once``, a positive
    number of minutes for ``interval``, a five-field expression for ``cron``.
    Cron field ranges are the scheduler daemon's business.
    """

    type: ScheduleType
    value: str
    timezone: str = "UTC"

    def __post_init__(self):
        try:
            object.__setattr__(self, "type", ScheduleType(self.type))
        except ValueError:
            raise ScheduleError(f"Unknown schedule type: {self.type!r}")
        if not isinstance(self.value, str):
            raise ScheduleError(f"Schedule value must be a string, got {type(self.value).__name__}")
        object.__setattr__(self, "value", self.value.strip())

        if self.type is ScheduleType.ONCE:
            parse_instant(self.value)
        elif self.type is ScheduleType.INTERVAL:
            if not _DIGITS.fullmatch(self.value) or int(self.value) <= 0:
                raise ScheduleError(f"Interval must be a positive number of minutes: {self.value!r}")
        elif self.type is ScheduleType.CRON:
            fields = self.value.split()
            if len(fields) != CRON_FIELDS:
                raise ScheduleError(
                    f"Cron expression must have {CRON_FIELDS} fields, got {len(fields)}: {self.value!r}"
                )
            object.__setattr__(self, "value", " ".join(fields))

    @classmethod
    def once(cls, instant: datetime, timezone: str = "UTC") -> "AutomationSchedule":
        return cls(ScheduleType.ONCE, instant.isoformat(), timezone)

    @classmethod
    def every(cls, minutes: int, timezone: str = "UTC") -> "AutomationSchedule":
        return cls(ScheduleType.INTERVAL, str(minutes), timezone)

    @classmethod
    def cron(cls, expression: str, timezone: str = "UTC") -> "AutomationSchedule":
        return cls(ScheduleType.CRON, expression, timezone)

    @property
    def interval_minutes(self) -> Optional[int]:
        if self.type is ScheduleType.INTERVAL:
            return int(self.value)
        return None

    @property
    def instant(self) -> Optional[datetime]:
        if self.type is ScheduleType.ONCE:
            return parse_instant(self.value)
        return None

    def to_description(self) -> str:
        if self.type is ScheduleType.ONCE:
            return f"once at {self.value}"
        if self.type is ScheduleType.INTERVAL:
            minutes = int(self.value)
            return f"every {minutes} minute" if minutes == 1 else f"every {minutes} minutes"
        return f"cron: `{self.value}`"

    @classmethod
    def from_description(cls, text: str, timezone: str = "UTC") -> "AutomationSchedule":
        """Inverse of ``to_description``."""
        text = text.strip()
        match = _EVERY.match(text)
        if match:
            return cls(ScheduleType.INTERVAL, match.group(1), timezone)
        match = _CRON.match(text)
        if match:
            return cls(ScheduleType.CRON, match.group(1), timezone)
        match = _ONCE.match(text)
        if match:
            return cls(ScheduleType.ONCE, match.group(1), timezone)
        raise ScheduleError(f"Unrecognized schedule description: {text!r}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], default_timezone: str = "UTC") -> Optional["AutomationSchedule"]:
        if not data:
            return None
        value = data.get("value")
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        return cls(data.get("type"), value, data.get("timezone") or default_timezone)

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type.value, "value": self.value, "timezone": self.timezone}
