"""
Calendar items as returned by the calendar MCP server

Events follow the Google Calendar JSON shape (start/end objects carrying either
dateTime or date); reminders follow the Google Tasks shape.
"""

from datetime import datetime, date, time
from typing import Dict, Optional

DEFAULT_COLOR = '#ffffff'


def parse_time(time_obj: Dict) -> Optional[datetime]:
    """Parse an event time object into an aware local datetime"""
    # Check for dateTime field with non-empty value
    if 'dateTime' in time_obj and time_obj['dateTime']:
        return datetime.fromisoformat(time_obj['dateTime'].replace('Z', '+00:00')).astimezone()
    # All-day events carry only a date; pin them to local midnight
    elif 'date' in time_obj and time_obj['date']:
        return datetime.fromisoformat(time_obj['date']).astimezone()
    return None


def parse_due(value) -> Optional[datetime]:
    """Parse a task due value (RFC 3339 timestamp or bare date)

    Task due dates are date-only: the server sends them as UTC midnight, so
    only the date part is kept and pinned to local midnight.
    """
    if not value:
        return None
    if isinstance(value, dict):
        return parse_time(value)
    due_day = date.fromisoformat(str(value)[:10])
    return datetime.combine(due_day, time()).astimezone()


class CalendarInfo:
    """Identity and display metadata for one calendar"""

    def __init__(self, calendar_data: Dict):
        self.id = calendar_data.get('id', '')
        self.title = calendar_data.get('summary') or calendar_data.get('title') or 'Untitled'
        self.color = calendar_data.get('backgroundColor') or calendar_data.get('color') or DEFAULT_COLOR
        self.source = calendar_data.get('source') or calendar_data.get('accessRole', '')

    def __repr__(self):
        return f"CalendarInfo({self.id!r}, {self.title!r})"


class CalendarEvent:
    """Represents a calendar event for one query scope"""

    def __init__(self, event_data: Dict):
        self.id = event_data.get('id', '')
        self.title = event_data.get('summary') or 'No Title'
        self.location = event_data.get('location') or None
        self.notes = event_data.get('description') or None

        start = event_data.get('start', {})
        end = event_data.get('end', {})

        # Determine if this is an all-day event
        self.is_all_day = bool(
            (start.get('date') and not start.get('dateTime')) or
            (end.get('date') and not end.get('dateTime'))
        )

        self.start = parse_time(start)
        self.end = parse_time(end) or self.start
        if self.start is None:
            self.start = self.end
        if self.start is None:
            raise ValueError(f"Event {self.id!r} has no start or end time")
        if self.end < self.start:
            self.end = self.start

        organizer = event_data.get('organizer', {})
        self.calendar_name = (
            event_data.get('calendarSummary')
            or organizer.get('displayName')
            or 'Unknown'
        )
        self.calendar_color = event_data.get('calendarColor') or DEFAULT_COLOR

    def get_time_str(self) -> str:
        """Get formatted time range, or 'All day'"""
        if self.is_all_day:
            return "All day"
        return f"{self.start.strftime('%H:%M')} - {self.end.strftime('%H:%M')}"

    def get_duration_minutes(self) -> int:
        """Get event duration in minutes"""
        if self.is_all_day:
            # Return 0 for all-day events to avoid showing huge durations
            return 0
        return int((self.end - self.start).total_seconds() / 60)

    def __repr__(self):
        return f"CalendarEvent({self.id!r}, {self.title!r}, {self.start.isoformat()})"


class Reminder:
    """A to-do item, optionally due on a date"""

    def __init__(self, reminder_data: Dict):
        self.id = reminder_data.get('id', '')
        self.title = reminder_data.get('title') or 'No Title'

        status = reminder_data.get('status')
        if status is not None:
            self.is_completed = status == 'completed'
        else:
            self.is_completed = bool(reminder_data.get('completed', False))

        self.due_date = parse_due(reminder_data.get('due'))
        self.calendar_name = (
            reminder_data.get('listTitle')
            or reminder_data.get('calendar_name')
            or 'Reminders'
        )
        self.calendar_color = reminder_data.get('color') or DEFAULT_COLOR
        try:
            self.priority = int(reminder_data.get('priority') or 0)
        except (TypeError, ValueError):
            self.priority = 0

    def due_on(self, day: date) -> bool:
        return self.due_date is not None and self.due_date.date() == day

    def priority_label(self) -> str:
        """High / Medium / Low, or empty when no priority is set"""
        if 1 <= self.priority <= 4:
            return "High"
        if self.priority == 5:
            return "Medium"
        if 6 <= self.priority <= 9:
            return "Low"
        return ""

    def __repr__(self):
        return f"Reminder({self.id!r}, {self.title!r}, completed={self.is_completed})"
