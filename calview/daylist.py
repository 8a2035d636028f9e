"""
Flattened day list: all-day events, reminders and timed events as one
scrollable sequence of rows.

Layout, in fixed order:

    [All Day header] all-day events [spacer]      if any all-day events
    [Reminders header] reminders [spacer]         if any reminders
    timed events                                  no header

A spacer closes a section only when a later section is present. Row layout is
never stored; every function here recomputes it from the day's events and
reminders, so `day_list_len` and `action_at` must stay in step with
`compose_day_rows`.
"""

from enum import Enum
from typing import List, NamedTuple, Optional, Sequence

from .models import CalendarEvent, Reminder


class ActionKind(Enum):
    NONE = 'none'
    EVENT = 'event'
    REMINDER = 'reminder'


class DayAction(NamedTuple):
    """What a day-list row stands for: nothing, day_events[i] or day_reminders[i]"""
    kind: ActionKind
    index: int = 0

    @property
    def is_actionable(self) -> bool:
        return self.kind is not ActionKind.NONE

    @classmethod
    def event(cls, index: int) -> 'DayAction':
        return cls(ActionKind.EVENT, index)

    @classmethod
    def reminder(cls, index: int) -> 'DayAction':
        return cls(ActionKind.REMINDER, index)


NO_ACTION = DayAction(ActionKind.NONE)

ROW_HEADER = 'header'
ROW_SPACER = 'spacer'
ROW_ITEM = 'item'

ALL_DAY_HEADER = "All Day"
REMINDERS_HEADER = "Reminders"


class DayRow(NamedTuple):
    kind: str
    action: DayAction = NO_ACTION
    label: str = ''


def _split_events(events: Sequence[CalendarEvent]):
    """Indices of all-day and timed events, each in list order"""
    all_day = [i for i, e in enumerate(events) if e.is_all_day]
    timed = [i for i, e in enumerate(events) if not e.is_all_day]
    return all_day, timed


def compose_day_rows(events: Sequence[CalendarEvent], reminders: Sequence[Reminder]) -> List[DayRow]:
    """Build the ordered rows the day view renders"""
    all_day, timed = _split_events(events)
    rows: List[DayRow] = []

    if all_day:
        rows.append(DayRow(ROW_HEADER, label=ALL_DAY_HEADER))
        rows.extend(DayRow(ROW_ITEM, DayAction.event(i)) for i in all_day)
        if reminders or timed:
            rows.append(DayRow(ROW_SPACER))

    if reminders:
        rows.append(DayRow(ROW_HEADER, label=REMINDERS_HEADER))
        rows.extend(DayRow(ROW_ITEM, DayAction.reminder(i)) for i in range(len(reminders)))
        if timed:
            rows.append(DayRow(ROW_SPACER))

    rows.extend(DayRow(ROW_ITEM, DayAction.event(i)) for i in timed)
    return rows


def day_list_len(events: Sequence[CalendarEvent], reminders: Sequence[Reminder]) -> int:
    """Total rows (headers + items + spacers), without building them"""
    all_day = sum(1 for e in events if e.is_all_day)
    timed = len(events) - all_day
    rems = len(reminders)

    length = 0
    if all_day:
        length += 1 + all_day  # header + items
        if rems or timed:
            length += 1  # spacer
    if rems:
        length += 1 + rems  # header + items
        if timed:
            length += 1  # spacer
    return length + timed


def action_at(events: Sequence[CalendarEvent], reminders: Sequence[Reminder], scroll: int) -> DayAction:
    """Resolve a row index to the event or reminder it shows"""
    if scroll < 0:
        return NO_ACTION

    all_day, timed = _split_events(events)
    rems = len(reminders)
    pos = 0

    # All-day section
    if all_day:
        if scroll == pos:
            return NO_ACTION  # header
        pos += 1
        if scroll < pos + len(all_day):
            return DayAction.event(all_day[scroll - pos])
        pos += len(all_day)
        if rems or timed:
            if scroll == pos:
                return NO_ACTION  # spacer
            pos += 1

    # Reminders section
    if rems:
        if scroll == pos:
            return NO_ACTION  # header
        pos += 1
        if scroll < pos + rems:
            return DayAction.reminder(scroll - pos)
        pos += rems
        if timed:
            if scroll == pos:
                return NO_ACTION  # spacer
            pos += 1

    # Timed events
    if scroll < pos + len(timed):
        return DayAction.event(timed[scroll - pos])

    return NO_ACTION


def first_actionable(events: Sequence[CalendarEvent], reminders: Sequence[Reminder]) -> int:
    """Index of the first item row, or 0 for a day with nothing on it"""
    for i in range(day_list_len(events, reminders)):
        if action_at(events, reminders, i).is_actionable:
            return i
    return 0


def scroll_down(events: Sequence[CalendarEvent], reminders: Sequence[Reminder], scroll: int) -> int:
    """Next item row below scroll, or scroll itself if there is none"""
    length = day_list_len(events, reminders)
    candidate = scroll + 1
    # Skip headers and spacers
    while candidate < length:
        if action_at(events, reminders, candidate).is_actionable:
            return candidate
        candidate += 1
    return scroll


def scroll_up(events: Sequence[CalendarEvent], reminders: Sequence[Reminder], scroll: int) -> int:
    """Previous item row above scroll, or scroll itself if there is none"""
    candidate = min(scroll, day_list_len(events, reminders)) - 1
    while candidate >= 0:
        if action_at(events, reminders, candidate).is_actionable:
            return candidate
        candidate -= 1
    return scroll


def item_for(action: DayAction, events: Sequence[CalendarEvent], reminders: Sequence[Reminder]):
    """The event or reminder an action points at, or None"""
    if action.kind is ActionKind.EVENT and 0 <= action.index < len(events):
        return events[action.index]
    if action.kind is ActionKind.REMINDER and 0 <= action.index < len(reminders):
        return reminders[action.index]
    return None


def row_count_label(events: Sequence[CalendarEvent], reminders: Sequence[Reminder]) -> Optional[str]:
    """'2 events, 1 reminder' style summary, or None for an empty day"""
    parts = []
    if events:
        n = len(events)
        parts.append(f"{n} event{'' if n == 1 else 's'}")
    if reminders:
        n = len(reminders)
        parts.append(f"{n} reminder{'' if n == 1 else 's'}")
    return ", ".join(parts) if parts else None
