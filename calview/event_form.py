"""New-event form state and validation"""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

DATE_FORMAT = '%Y-%m-%d'
TIME_FORMAT = '%H:%M'


class FormField(Enum):
    TITLE = 'title'
    DATE = 'date'
    START_TIME = 'start_time'
    END_TIME = 'end_time'
    ALL_DAY = 'all_day'
    CALENDAR = 'calendar'

    def next(self) -> 'FormField':
        members = list(FormField)
        return members[(members.index(self) + 1) % len(members)]

    def prev(self) -> 'FormField':
        members = list(FormField)
        return members[(members.index(self) - 1) % len(members)]


TEXT_FIELDS = (FormField.TITLE, FormField.DATE, FormField.START_TIME, FormField.END_TIME)


class EventFormState:
    """Field buffers for the new-event popup"""

    def __init__(self, for_date: date):
        self.title = ""
        self.date = for_date.strftime(DATE_FORMAT)
        self.start_time = "09:00"
        self.end_time = "10:00"
        self.is_all_day = False
        self.calendar_index = 0
        self.active_field = FormField.TITLE

    def parsed_date(self) -> Optional[date]:
        try:
            return datetime.strptime(self.date, DATE_FORMAT).date()
        except ValueError:
            return None

    def parsed_start_time(self) -> Optional[time]:
        return _parse_time(self.start_time)

    def parsed_end_time(self) -> Optional[time]:
        return _parse_time(self.end_time)

    def input_char(self, c: str):
        """Append a typed character to the active text field"""
        if self.active_field in TEXT_FIELDS:
            attr = self.active_field.value
            setattr(self, attr, getattr(self, attr) + c)

    def backspace(self):
        if self.active_field in TEXT_FIELDS:
            attr = self.active_field.value
            setattr(self, attr, getattr(self, attr)[:-1])

    def toggle_all_day(self):
        self.is_all_day = not self.is_all_day

    def next_calendar(self, total: int):
        if total > 0:
            self.calendar_index = (self.calendar_index + 1) % total

    def validation_error(self) -> Optional[str]:
        """First problem with the form as entered, or None if it can be submitted"""
        if not self.title.strip():
            return "Title is required"
        if self.parsed_date() is None:
            return "Invalid date (use YYYY-MM-DD)"
        if self.is_all_day:
            return None

        start = self.parsed_start_time()
        end = self.parsed_end_time()
        if start is None or end is None:
            return "Invalid time (use HH:MM)"
        if end <= start:
            return "End time must be after start time"
        return None

    def is_valid(self) -> bool:
        return self.validation_error() is None


def _parse_time(value: str) -> Optional[time]:
    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except ValueError:
        return None
