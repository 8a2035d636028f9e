"""
View-state controller: selected date, view mode, cached items and the day-list
cursor.

Every data-source call happens synchronously from the input loop. Fetch
failures degrade to empty results; mutation failures leave the cached state
as it was and surface as a status message.
"""

import sys
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from . import dates, daylist
from .daylist import ActionKind, DayAction
from .event_form import EventFormState, FormField
from .models import CalendarEvent, CalendarInfo, Reminder
from .store import CalendarStore, DataSourceError


class ViewMode(Enum):
    MONTH = 'month'
    WEEK = 'week'
    DAY = 'day'


class InputMode(Enum):
    NORMAL = 'normal'
    FORM = 'form'


def reminder_sort_key(reminder: Reminder):
    """Calendar name, then due date with undated reminders last"""
    due = reminder.due_date
    return (reminder.calendar_name, due is None, due.timestamp() if due else 0.0)


class App:
    """Calendar browser state shared by the terminal front-end"""

    def __init__(self, store: CalendarStore, clock: Callable[[], date] = date.today, debug: bool = False,
                 start_date: Optional[date] = None):
        self.store = store
        self.clock = clock
        self.debug = debug

        self.running = True
        self.view_mode = ViewMode.MONTH
        self.input_mode = InputMode.NORMAL
        self.today = clock()
        self.selected_date = start_date or self.today
        self.access_granted = False

        self.calendars: List[CalendarInfo] = []
        self.month_events: List[CalendarEvent] = []
        self.week_events: List[CalendarEvent] = []
        self.day_events: List[CalendarEvent] = []
        self.days_with_events: Set[int] = set()
        self.days_with_reminders: Set[int] = set()

        # Session-wide reminders, and the ones due on the selected date
        self.reminders: List[Reminder] = []
        self.day_reminders: List[Reminder] = []

        # Row index into the flattened day list
        self.day_scroll = 0

        self.form_state: Optional[EventFormState] = None
        self.detail_item: Optional[DayAction] = None
        self.show_help = False
        self.status_message = ""

        # (year, month) that month_events was fetched for
        self._loaded_month: Optional[Tuple[int, int]] = None

    def debug_log(self, message: str):
        """Log debug message to stderr if debug mode is enabled"""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr, flush=True)

    def start(self):
        """Ask the data source for access and load the first month

        DataSourceError from the access check is not caught here: a broken
        connection is fatal to the session.
        """
        self.access_granted = self.store.request_access()
        if not self.access_granted:
            self.debug_log("Calendar access denied")
            return

        self.calendars = self._fetch("calendars", self.store.list_calendars)
        self.refresh_events()

    def _fetch(self, label: str, fetch, *args) -> list:
        """Run a query, treating any failure as an empty result"""
        try:
            return list(fetch(*args))
        except DataSourceError as e:
            self.debug_log(f"Fetching {label} failed: {e}")
            return []

    # ── Catalog ──

    def refresh_events(self):
        """Refetch month, week and day events plus reminders for the selected date"""
        year, month = self.selected_date.year, self.selected_date.month

        self.month_events = self._fetch("month events", self.store.events_for_month, year, month)
        self.week_events = self._fetch("week events", self.store.events_for_week, self.selected_date)
        self.day_events = self._fetch_day_events()
        self._loaded_month = (year, month)

        self.days_with_events = {
            ev.start.day for ev in self.month_events
            if (ev.start.year, ev.start.month) == (year, month)
        }

        self.refresh_reminders()
        self.day_reminders = self.filter_day_reminders()
        self.days_with_reminders = {
            rem.due_date.day for rem in self.reminders
            if rem.due_date is not None and (rem.due_date.year, rem.due_date.month) == (year, month)
        }

        # Set scroll to first actionable item after data loads
        self.day_scroll = self.first_actionable_scroll()
        self.debug_log(
            f"Refreshed {year}-{month:02d}: {len(self.month_events)} month events, "
            f"{len(self.day_events)} day events, {len(self.reminders)} reminders"
        )

    def _fetch_day_events(self) -> List[CalendarEvent]:
        events = self._fetch("day events", self.store.events_for_date, self.selected_date)
        # The day list relies on start order within each section
        events.sort(key=lambda e: e.start)
        return events

    def refresh_reminders(self):
        self.reminders = self._fetch("reminders", self.store.fetch_incomplete_reminders)
        self.reminders.sort(key=reminder_sort_key)

    def filter_day_reminders(self) -> List[Reminder]:
        """Reminders due on exactly the selected date, in session order"""
        return [r for r in self.reminders if r.due_on(self.selected_date)]

    def on_date_changed(self):
        """Reload what the new selected date needs

        Staying inside the loaded month only refetches the day and week;
        anything else (or an empty month) gets a full refresh.
        """
        current = (self.selected_date.year, self.selected_date.month)
        if current != self._loaded_month or not self.month_events:
            self.refresh_events()
            return

        self.day_events = self._fetch_day_events()
        self.week_events = self._fetch("week events", self.store.events_for_week, self.selected_date)
        self.day_reminders = self.filter_day_reminders()
        self.day_scroll = self.first_actionable_scroll()

    def refresh(self):
        """User-requested full reload"""
        if not self._can_navigate():
            return
        self.refresh_events()
        self.status_message = "Refreshed"

    # ── Navigation ──

    def _can_navigate(self) -> bool:
        return (
            self.access_granted
            and self.input_mode is InputMode.NORMAL
            and self.detail_item is None
        )

    def _move_to(self, new_date: date):
        if not self._can_navigate():
            return
        self.selected_date = new_date
        self.on_date_changed()

    def next_day(self):
        self._move_to(dates.next_day(self.selected_date))

    def prev_day(self):
        self._move_to(dates.prev_day(self.selected_date))

    def next_week(self):
        self._move_to(dates.next_week(self.selected_date))

    def prev_week(self):
        self._move_to(dates.prev_week(self.selected_date))

    def next_month(self):
        self._move_to(dates.next_month(self.selected_date))

    def prev_month(self):
        self._move_to(dates.prev_month(self.selected_date))

    def go_to_today(self):
        if not self._can_navigate():
            return
        self.today = self.clock()
        self._move_to(self.today)

    def week_start(self) -> date:
        return dates.week_start(self.selected_date)

    def set_view_mode(self, mode: ViewMode):
        self.view_mode = mode

    # ── Day list cursor ──

    def day_list_len(self) -> int:
        return daylist.day_list_len(self.day_events, self.day_reminders)

    def day_action_at(self, scroll: int) -> DayAction:
        return daylist.action_at(self.day_events, self.day_reminders, scroll)

    def day_action_at_scroll(self) -> DayAction:
        return self.day_action_at(self.day_scroll)

    def first_actionable_scroll(self) -> int:
        return daylist.first_actionable(self.day_events, self.day_reminders)

    def day_rows(self) -> List[daylist.DayRow]:
        return daylist.compose_day_rows(self.day_events, self.day_reminders)

    def scroll_day_down(self):
        if not self._can_navigate():
            return
        self.day_scroll = daylist.scroll_down(self.day_events, self.day_reminders, self.day_scroll)

    def scroll_day_up(self):
        if not self._can_navigate():
            return
        self.day_scroll = daylist.scroll_up(self.day_events, self.day_reminders, self.day_scroll)

    # ── Reminders ──

    def toggle_day_reminder(self):
        """Toggle completion of the reminder under the cursor"""
        if not self._can_navigate():
            return

        action = self.day_action_at_scroll()
        if action.kind is not ActionKind.REMINDER:
            return

        reminder = self.day_reminders[action.index]
        try:
            new_state = self.store.toggle_reminder(reminder.id)
        except DataSourceError as e:
            self.status_message = f"Error: {e}"
            return

        self.status_message = f"Reminder {'completed' if new_state else 'uncompleted'}"
        self.refresh_reminders()
        self.day_reminders = self.filter_day_reminders()

        # Keep the cursor on the same reminder if it is still listed
        for i, rem in enumerate(self.day_reminders):
            if rem.id == reminder.id:
                self.day_scroll = self._row_of(DayAction.reminder(i))
                break
        else:
            self.day_scroll = self.first_actionable_scroll()

    def _row_of(self, action: DayAction) -> int:
        for i in range(self.day_list_len()):
            if self.day_action_at(i) == action:
                return i
        return self.first_actionable_scroll()

    # ── Detail popup ──

    def show_detail(self):
        if not self._can_navigate():
            return
        action = self.day_action_at_scroll()
        if action.is_actionable:
            self.detail_item = action

    def close_detail(self):
        self.detail_item = None

    def detail(self):
        """The event or reminder shown in the detail popup, if any"""
        if self.detail_item is None:
            return None
        return daylist.item_for(self.detail_item, self.day_events, self.day_reminders)

    # ── Event form ──

    def open_event_form(self):
        if not self._can_navigate():
            return
        self.form_state = EventFormState(self.selected_date)
        self.input_mode = InputMode.FORM

    def close_event_form(self):
        self.form_state = None
        self.input_mode = InputMode.NORMAL

    def submit_event_form(self):
        """Validate the form, create the event, and reload on success"""
        form = self.form_state
        if form is None:
            return

        error = form.validation_error()
        if error:
            self.status_message = error
            return

        calendar_id = None
        if 0 <= form.calendar_index < len(self.calendars):
            calendar_id = self.calendars[form.calendar_index].id

        try:
            self.store.create_event(
                form.title,
                form.parsed_date(),
                None if form.is_all_day else form.parsed_start_time(),
                None if form.is_all_day else form.parsed_end_time(),
                form.is_all_day,
                calendar_id,
            )
        except DataSourceError as e:
            self.status_message = f"Error: {e}"
            return

        self.status_message = f"Created: {form.title}"
        self.close_event_form()
        self.refresh_events()

    def form_tab(self):
        if self.form_state:
            self.form_state.active_field = self.form_state.active_field.next()

    def form_backtab(self):
        if self.form_state:
            self.form_state.active_field = self.form_state.active_field.prev()

    def form_input_char(self, c: str):
        form = self.form_state
        if form is None:
            return
        if form.active_field is FormField.ALL_DAY:
            form.toggle_all_day()
        elif form.active_field is FormField.CALENDAR:
            form.next_calendar(len(self.calendars))
        else:
            form.input_char(c)

    def form_backspace(self):
        if self.form_state:
            self.form_state.backspace()

    # ── Event deletion ──

    def delete_selected_event(self):
        """Delete the event under the cursor; reminders and headers are ignored"""
        if not self._can_navigate():
            return

        action = self.day_action_at_scroll()
        if action.kind is not ActionKind.EVENT:
            return

        event = self.day_events[action.index]
        try:
            self.store.delete_event(event.id)
        except DataSourceError as e:
            self.status_message = f"Error: {e}"
            return

        self.status_message = f"Deleted: {event.title}"
        self.refresh_events()

    # ── Misc ──

    def toggle_help(self):
        self.show_help = not self.show_help

    def clear_status(self):
        self.status_message = ""

    def quit(self):
        self.running = False
