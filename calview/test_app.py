#!/usr/bin/env python3
"""
Test the view-state controller against an in-memory calendar store
This exercises navigation, refresh paths and mutations without a terminal
"""

import json
from datetime import date, time
from unittest.mock import MagicMock

import pytest

from calview import dates
from calview.app import App, InputMode, ViewMode, reminder_sort_key
from calview.daylist import ActionKind, DayAction
from calview.models import CalendarEvent, CalendarInfo, Reminder
from calview.store import REMINDER_TOOLS, REQUIRED_TOOLS, DataSourceError, MCPClient, MCPStore

TODAY = date(2024, 5, 6)  # a Monday


def timed_event(event_id, title, day, start, end):
    return CalendarEvent({
        'id': event_id,
        'summary': title,
        'start': {'dateTime': f'{day.isoformat()}T{start}:00'},
        'end': {'dateTime': f'{day.isoformat()}T{end}:00'},
        'calendarSummary': 'Work',
    })


def all_day_event(event_id, title, day):
    return CalendarEvent({
        'id': event_id,
        'summary': title,
        'start': {'date': day.isoformat()},
        'end': {'date': dates.next_day(day).isoformat()},
    })


class FakeStore:
    """In-memory calendar store that records calls and can be told to fail"""

    def __init__(self, events=(), reminders=(), calendars=(), access=True):
        self.events = list(events)
        self.reminders = list(reminders)
        self.calendars = list(calendars)
        self.access = access
        self.calls = []
        self.fail = set()
        self._next_id = 1

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise DataSourceError(f"{name} failed")

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    def request_access(self):
        self._record('request_access')
        return self.access

    def list_calendars(self):
        self._record('list_calendars')
        return list(self.calendars)

    def events_for_date(self, day):
        self._record('events_for_date', day)
        return [e for e in self.events if e.start.date() == day]

    def events_for_week(self, day):
        self._record('events_for_week', day)
        week = set(dates.week_days(day))
        return [e for e in self.events if e.start.date() in week]

    def events_for_month(self, year, month):
        self._record('events_for_month', year, month)
        return [e for e in self.events if (e.start.year, e.start.month) == (year, month)]

    def create_event(self, title, day, start_time, end_time, is_all_day, calendar_id=None):
        self._record('create_event', title, day, start_time, end_time, is_all_day, calendar_id)
        event_id = f'new{self._next_id}'
        self._next_id += 1
        if is_all_day:
            self.events.append(all_day_event(event_id, title, day))
        else:
            self.events.append(timed_event(event_id, title, day,
                                           start_time.strftime('%H:%M'), end_time.strftime('%H:%M')))

    def delete_event(self, event_id):
        self._record('delete_event', event_id)
        self.events = [e for e in self.events if e.id != event_id]

    def fetch_incomplete_reminders(self):
        self._record('fetch_incomplete_reminders')
        return list(self.reminders)

    def toggle_reminder(self, reminder_id):
        self._record('toggle_reminder', reminder_id)
        for reminder in self.reminders:
            if reminder.id == reminder_id:
                reminder.is_completed = not reminder.is_completed
                return reminder.is_completed
        raise DataSourceError(f"Unknown reminder: {reminder_id}")


def make_store(**kwargs):
    events = [
        all_day_event('conf', 'Conference', TODAY),
        timed_event('lunch', 'Lunch', TODAY, '12:00', '13:00'),
        timed_event('standup', 'Standup', TODAY, '09:00', '09:30'),
        timed_event('review', 'Review', date(2024, 5, 20), '14:00', '15:00'),
        timed_event('june', 'Planning', date(2024, 6, 3), '10:00', '11:00'),
    ]
    reminders = [
        Reminder({'id': 'rent', 'title': 'Pay rent', 'due': '2024-05-06', 'listTitle': 'Personal'}),
        Reminder({'id': 'someday', 'title': 'Someday', 'listTitle': 'Personal'}),
        Reminder({'id': 'mom', 'title': 'Call mom', 'due': '2024-05-06', 'listTitle': 'Family'}),
        Reminder({'id': 'dentist', 'title': 'Dentist', 'due': '2024-05-01', 'listTitle': 'Personal'}),
    ]
    calendars = [CalendarInfo({'id': 'work', 'summary': 'Work'}), CalendarInfo({'id': 'home', 'summary': 'Home'})]
    params = dict(events=events, reminders=reminders, calendars=calendars)
    params.update(kwargs)
    return FakeStore(**params)


def started_app(store=None, clock=lambda: TODAY):
    app = App(store or make_store(), clock=clock)
    app.start()
    return app


def move_to_row(app, row):
    while app.day_scroll < row:
        before = app.day_scroll
        app.scroll_day_down()
        assert app.day_scroll != before, f"Could not reach row {row}"
    assert app.day_scroll == row


def test_start_loads_catalog():
    print("\n" + "=" * 60)
    print("Testing initial load")
    print("=" * 60)

    app = started_app()
    assert app.access_granted
    assert [c.id for c in app.calendars] == ['work', 'home']
    assert {e.id for e in app.month_events} == {'conf', 'standup', 'lunch', 'review'}
    assert [e.id for e in app.day_events] == ['conf', 'standup', 'lunch'], "Day events are sorted by start"
    assert app.days_with_events == {6, 20}
    assert app.days_with_reminders == {1, 6}

    # Reminders: by calendar name, then due date, undated last
    assert [r.id for r in app.reminders] == ['mom', 'dentist', 'rent', 'someday']
    assert [r.id for r in app.day_reminders] == ['mom', 'rent']

    # All Day header, Conference, spacer, Reminders header, 2 reminders, spacer, 2 timed
    assert app.day_list_len() == 9
    assert app.day_scroll == 1, "Cursor starts on the first actionable row"
    assert app.day_action_at_scroll() == DayAction.event(0)
    print("✓ Catalog loaded")


def test_access_denied_makes_commands_inert():
    store = make_store(access=False)
    app = started_app(store)
    assert not app.access_granted
    assert store.calls == [('request_access',)], "Nothing is fetched without access"

    app.next_day()
    app.next_month()
    app.go_to_today()
    app.scroll_day_down()
    app.open_event_form()
    app.delete_selected_event()
    app.toggle_day_reminder()
    app.refresh()
    assert app.selected_date == TODAY
    assert app.form_state is None
    assert store.calls == [('request_access',)]

    app.toggle_help()
    assert app.show_help
    app.quit()
    assert not app.running


def test_connection_failure_propagates():
    store = make_store()
    store.fail.add('request_access')
    app = App(store, clock=lambda: TODAY)
    with pytest.raises(DataSourceError):
        app.start()


def test_same_month_navigation_uses_fast_path():
    print("\nTesting fast-path refresh...")
    store = make_store()
    app = started_app(store)
    month_fetches = store.count('events_for_month')
    reminder_fetches = store.count('fetch_incomplete_reminders')

    app.next_day()
    assert app.selected_date == date(2024, 5, 7)
    assert store.count('events_for_month') == month_fetches, "Same-month move must not refetch the month"
    assert store.count('fetch_incomplete_reminders') == reminder_fetches
    assert store.calls[-2:] == [('events_for_date', date(2024, 5, 7)), ('events_for_week', date(2024, 5, 7))]
    assert app.day_events == []
    assert app.day_reminders == []
    assert app.day_scroll == 0
    print("✓ Fast path verified")


def test_month_change_does_full_refresh():
    store = make_store()
    app = started_app(store)
    month_fetches = store.count('events_for_month')

    app.next_month()
    assert app.selected_date == date(2024, 6, 6)
    assert store.count('events_for_month') == month_fetches + 1
    assert ('events_for_month', 2024, 6) in store.calls
    assert app.days_with_events == {3}
    assert app.days_with_reminders == set()


def test_same_month_different_year_is_a_month_change():
    store = make_store()
    app = started_app(store)
    app.selected_date = date(2025, 5, 6)
    month_fetches = store.count('events_for_month')
    app.on_date_changed()
    assert store.count('events_for_month') == month_fetches + 1
    assert ('events_for_month', 2025, 5) in store.calls


def test_empty_month_always_refreshes():
    store = make_store(events=[])
    app = started_app(store)
    month_fetches = store.count('events_for_month')
    app.next_day()
    assert store.count('events_for_month') == month_fetches + 1


def test_year_boundary_navigation():
    store = make_store(events=[], reminders=[])
    app = started_app(store, clock=lambda: date(2024, 12, 31))
    app.next_day()
    assert app.selected_date == date(2025, 1, 1)
    app.prev_week()
    assert app.selected_date == date(2024, 12, 25)
    app.set_view_mode(ViewMode.WEEK)
    assert app.week_start() == date(2024, 12, 22)


def test_go_to_today_rereads_clock():
    current = {'day': TODAY}
    app = started_app(clock=lambda: current['day'])
    app.next_month()
    current['day'] = date(2024, 5, 8)
    app.go_to_today()
    assert app.today == date(2024, 5, 8)
    assert app.selected_date == date(2024, 5, 8)


def test_detail_popup_gates_navigation():
    store = make_store()
    app = started_app(store)
    app.show_detail()
    assert app.detail_item == DayAction.event(0)
    assert app.detail().title == 'Conference'
    calls = len(store.calls)

    app.next_day()
    app.scroll_day_down()
    app.delete_selected_event()
    app.open_event_form()
    assert app.selected_date == TODAY
    assert app.day_scroll == 1
    assert app.form_state is None
    assert len(store.calls) == calls

    # View mode changes are always allowed
    app.set_view_mode(ViewMode.DAY)
    assert app.view_mode is ViewMode.DAY

    app.close_detail()
    app.next_day()
    assert app.selected_date == date(2024, 5, 7)


def test_detail_needs_an_item():
    app = started_app(make_store(events=[], reminders=[]))
    app.show_detail()
    assert app.detail_item is None


def test_form_gates_navigation():
    app = started_app()
    app.open_event_form()
    assert app.input_mode is InputMode.FORM
    app.next_day()
    app.scroll_day_down()
    assert app.selected_date == TODAY
    assert app.day_scroll == 1
    app.close_event_form()
    assert app.input_mode is InputMode.NORMAL
    assert app.form_state is None


def test_query_errors_become_empty_results():
    print("\nTesting query failures...")
    store = make_store()
    store.fail.update({'events_for_month', 'fetch_incomplete_reminders'})
    app = started_app(store)
    assert app.access_granted
    assert app.month_events == []
    assert app.days_with_events == set()
    assert app.reminders == []
    assert [e.id for e in app.day_events] == ['conf', 'standup', 'lunch'], "Other scopes still load"
    print("✓ Failed queries degrade to empty lists")


def test_toggle_reminder_failure_then_success():
    print("\n" + "=" * 60)
    print("Testing reminder toggling")
    print("=" * 60)

    store = make_store()
    app = started_app(store)
    move_to_row(app, 5)
    assert app.day_action_at_scroll() == DayAction.reminder(1)

    reminders_before = list(app.reminders)
    day_reminders_before = list(app.day_reminders)
    store.fail.add('toggle_reminder')
    app.toggle_day_reminder()
    assert app.status_message == "Error: toggle_reminder failed"
    assert app.reminders == reminders_before
    assert app.day_reminders == day_reminders_before
    assert not app.day_reminders[1].is_completed
    print("✓ Failed toggle leaves state untouched")

    store.fail.clear()
    app.toggle_day_reminder()
    assert app.status_message == "Reminder completed"
    assert ('toggle_reminder', 'rent') in store.calls
    assert app.day_reminders[1].id == 'rent'
    assert app.day_reminders[1].is_completed
    assert app.day_scroll == 5, "Cursor stays on the toggled reminder"

    app.toggle_day_reminder()
    assert app.status_message == "Reminder uncompleted"
    print("✓ Toggle round trip verified")


def test_toggle_ignores_events():
    store = make_store()
    app = started_app(store)
    app.toggle_day_reminder()
    assert store.count('toggle_reminder') == 0


def test_submit_requires_title():
    store = make_store()
    app = started_app(store)
    app.open_event_form()
    app.submit_event_form()
    assert app.status_message == "Title is required"
    assert app.form_state is not None, "Form stays open on validation errors"
    assert store.count('create_event') == 0


def test_submit_creates_event():
    print("\nTesting event creation...")
    store = make_store()
    app = started_app(store)
    app.open_event_form()
    assert app.form_state.date == "2024-05-06"
    for c in "Team sync":
        app.form_input_char(c)
    app.form_tab()
    app.form_tab()
    app.form_backspace()
    app.form_backspace()
    for c in "30":
        app.form_input_char(c)

    app.submit_event_form()
    assert store.calls[-1][0] != 'create_event', "A full refresh follows creation"
    create = [c for c in store.calls if c[0] == 'create_event']
    assert create == [('create_event', 'Team sync', TODAY, time(9, 30), time(10, 0), False, 'work')]
    assert app.status_message == "Created: Team sync"
    assert app.form_state is None
    assert app.input_mode is InputMode.NORMAL
    assert 'Team sync' in [e.title for e in app.day_events]
    print("✓ Event created")


def test_form_toggles_and_calendar_choice():
    store = make_store()
    app = started_app(store)
    app.open_event_form()
    for c in "Offsite":
        app.form_input_char(c)
    app.form_backtab()
    assert app.form_state.active_field.name == 'CALENDAR'
    app.form_input_char(' ')
    assert app.form_state.calendar_index == 1
    app.form_backtab()
    app.form_input_char(' ')
    assert app.form_state.is_all_day

    app.submit_event_form()
    create = [c for c in store.calls if c[0] == 'create_event']
    assert create == [('create_event', 'Offsite', TODAY, None, None, True, 'home')]


def test_submit_failure_keeps_form():
    store = make_store()
    store.fail.add('create_event')
    app = started_app(store)
    app.open_event_form()
    app.form_input_char('X')
    app.submit_event_form()
    assert app.status_message == "Error: create_event failed"
    assert app.form_state is not None
    assert app.form_state.title == 'X'


def test_delete_selected_event():
    print("\nTesting event deletion...")
    store = make_store()
    app = started_app(store)
    move_to_row(app, 7)
    assert app.day_events[app.day_action_at_scroll().index].title == 'Standup'

    app.delete_selected_event()
    assert ('delete_event', 'standup') in store.calls
    assert app.status_message == "Deleted: Standup"
    assert [e.id for e in app.day_events] == ['conf', 'lunch']
    print("✓ Event deleted")


def test_delete_failure_leaves_catalog():
    store = make_store()
    app = started_app(store)
    day_events = list(app.day_events)
    month_fetches = store.count('events_for_month')
    store.fail.add('delete_event')

    app.delete_selected_event()
    assert app.status_message == "Error: delete_event failed"
    assert app.day_events == day_events
    assert store.count('events_for_month') == month_fetches


def test_delete_ignores_reminders():
    store = make_store()
    app = started_app(store)
    move_to_row(app, 4)
    assert app.day_action_at_scroll().kind is ActionKind.REMINDER
    app.delete_selected_event()
    assert store.count('delete_event') == 0


def test_refresh_and_status():
    store = make_store()
    app = started_app(store)
    month_fetches = store.count('events_for_month')
    app.refresh()
    assert app.status_message == "Refreshed"
    assert store.count('events_for_month') == month_fetches + 1
    app.clear_status()
    assert app.status_message == ""


def test_reminder_sort_key():
    undated = Reminder({'id': 'a', 'listTitle': 'A'})
    early = Reminder({'id': 'b', 'listTitle': 'A', 'due': '2024-01-01'})
    late = Reminder({'id': 'c', 'listTitle': 'A', 'due': '2024-02-01'})
    other = Reminder({'id': 'd', 'listTitle': 'B', 'due': '2023-01-01'})
    ordered = sorted([other, undated, late, early], key=reminder_sort_key)
    assert [r.id for r in ordered] == ['b', 'c', 'a', 'd']


def test_malformed_task_does_not_stop_startup():
    print("\nTesting startup with a malformed task from the server...")
    payloads = {
        'list_calendars': {'calendars': [{'id': 'primary', 'summary': 'Me'}]},
        'list_events': {'events': []},
        'list_tasks': {'tasks': [{'id': 't1', 'title': 'x', 'due': 'next week'}]},
    }
    client = MagicMock(spec=MCPClient)
    client.list_tool_names.return_value = set(REQUIRED_TOOLS + REMINDER_TOOLS)
    client.call_tool.side_effect = lambda name, arguments: json.dumps(payloads.get(name, {}))

    app = App(MCPStore(client), clock=lambda: TODAY)
    app.start()
    assert app.access_granted
    assert app.reminders == []
    assert app.day_list_len() == 0

    # Later refreshes see the same task and keep going
    app.next_month()
    app.go_to_today()
    assert app.selected_date == TODAY
    assert app.reminders == []
    print("✓ Malformed task skipped")
