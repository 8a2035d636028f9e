#!/usr/bin/env python3
"""
Interactive terminal calendar browser

Month, week and day views over a calendar MCP server, with reminders,
event creation and deletion.
"""

import argparse
import calendar
import curses
import os
import sys
import textwrap
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from .app import App, InputMode, ViewMode
from .daylist import ROW_HEADER, ROW_ITEM, ActionKind, row_count_label
from .event_form import TEXT_FIELDS, FormField
from .models import CalendarEvent, Reminder
from .store import DEFAULT_TIMEOUT, DataSourceError, MCPClient, MCPStore
from .theme import PRESETS, Theme

KEY_ESC = 27
KEY_TAB = 9
KEY_CTRL_C = 3
ENTER_KEYS = (10, 13, curses.KEY_ENTER)
BACKSPACE_KEYS = (8, 127, curses.KEY_BACKSPACE)

# Hours shown by the week grid
WEEK_FIRST_HOUR = 6
WEEK_LAST_HOUR = 23

# Below this width the month view drops the day list
SPLIT_MIN_WIDTH = 60

DAY_NAMES = ('Su', 'Mo', 'Tu', 'We', 'Th', 'Fr', 'Sa')

MODE_LABELS = {
    ViewMode.MONTH: '[1]Month',
    ViewMode.WEEK: '[2]Week',
    ViewMode.DAY: '[3]Day',
}

HELP_SECTIONS = [
    ("Navigation", [
        ("h/l or ←/→", "Previous/next day"),
        ("j/k or ↑/↓", "Scroll day list (week view: previous/next week)"),
        ("[/]", "Previous/next month"),
        ("t", "Jump to today"),
    ]),
    ("Views", [
        ("1/2/3", "Month / Week / Day view"),
    ]),
    ("Actions", [
        ("Enter", "View event/reminder details"),
        ("Space", "Toggle reminder completion"),
        ("n", "Create new event"),
        ("d", "Delete selected event"),
        ("r", "Refresh"),
    ]),
    ("", [
        ("q / Esc", "Quit / close popup"),
    ]),
]

Segment = Tuple[str, int]


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[:width - 3] + "..."


def status_hints(mode: ViewMode, width: int) -> str:
    """Key hints for the status bar, shortened for narrow terminals"""
    if mode is ViewMode.WEEK:
        if width >= 70:
            return "hl:Day jk:Week [/]:Mon t:Today n:New ?:Help q:Quit"
        if width >= 50:
            return "arrows:Nav n:New q:Quit"
    else:
        if width >= 80:
            return "hjkl:Nav [/]:Mon t:Today Enter:Detail Sp:Toggle n:New d:Del ?:Help q:Quit"
        if width >= 50:
            return "jk:Scroll Enter:Detail Sp:Toggle n:New q:Quit"
    return "?:Help q:Quit"


def week_cell_event(events: Sequence[CalendarEvent], day: date, hour: int,
                    first_hour: int = WEEK_FIRST_HOUR) -> Optional[CalendarEvent]:
    """First event occupying an hour slot of the week grid

    All-day events are shown in the first visible hour.
    """
    for event in events:
        start_day = event.start.date()
        if event.is_all_day:
            # The end date is exclusive
            end_day = max(event.end.date(), start_day + timedelta(days=1))
            if start_day <= day < end_day and hour == first_hour:
                return event
            continue

        end_day = event.end.date()
        if not start_day <= day <= end_day:
            continue

        start_hour = event.start.hour if start_day == day else 0
        if end_day != day:
            end_hour = 23
        elif event.end.minute > 0:
            end_hour = event.end.hour
        else:
            end_hour = max(event.end.hour - 1, start_hour)

        if start_hour <= hour <= end_hour:
            return event
    return None


class CalendarTUI:
    """Curses front-end over an App"""

    def __init__(self, stdscr, app: App, theme: Theme, server_path: str = ""):
        self.stdscr = stdscr
        self.app = app
        self.theme = theme
        self.server_path = server_path

        # First day-list row visible in the day panel
        self.day_list_top = 0

    # ── Low-level drawing ──

    def safe_addstr(self, y: int, x: int, text: str, attr: int = 0, width: Optional[int] = None):
        """addstr that ignores text clipped by the terminal edge"""
        height, screen_width = self.stdscr.getmaxyx()
        if y < 0 or y >= height or x < 0 or x >= screen_width:
            return
        limit = screen_width - x if width is None else min(width, screen_width - x)
        if limit <= 0:
            return
        try:
            self.stdscr.addstr(y, x, text[:limit], attr)
        except curses.error:
            pass

    def draw_segments(self, y: int, x: int, segments: Sequence[Segment], width: int):
        """Draw (text, attr) runs left to right, clipped to width"""
        used = 0
        for text, attr in segments:
            if used >= width:
                break
            chunk = text[:width - used]
            self.safe_addstr(y, x + used, chunk, attr)
            used += len(chunk)

    def draw_box(self, y: int, x: int, height: int, width: int, attr: int = 0,
                 title: str = "", footer: str = "", double: bool = False, fill: bool = False):
        """Bordered rectangle with an optional title and footer on its edges"""
        if height < 2 or width < 2:
            return
        if double:
            tl, tr, bl, br, h, v = "╔", "╗", "╚", "╝", "═", "║"
        else:
            tl, tr, bl, br, h, v = "┌", "┐", "└", "┘", "─", "│"

        self.safe_addstr(y, x, tl + h * (width - 2) + tr, attr)
        for row in range(y + 1, y + height - 1):
            if fill:
                self.safe_addstr(row, x, v + " " * (width - 2) + v, attr)
            else:
                self.safe_addstr(row, x, v, attr)
                self.safe_addstr(row, x + width - 1, v, attr)
        self.safe_addstr(y + height - 1, x, bl + h * (width - 2) + br, attr)

        if title:
            title = truncate(f" {title} ", width - 4)
            self.safe_addstr(y, x + 2, title, attr | curses.A_BOLD)
        if footer:
            footer = truncate(f" {footer} ", width - 4)
            self.safe_addstr(y + height - 1, x + 2, footer, attr)

    # ── Views ──

    def draw(self):
        """Draw the entire UI"""
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()

        if not self.app.access_granted:
            self.draw_access_denied()
        else:
            self.draw_header()
            body_y, body_h = 1, height - 2
            if self.app.view_mode is ViewMode.MONTH:
                self.draw_month_layout(body_y, 0, body_h, width)
            elif self.app.view_mode is ViewMode.WEEK:
                self.draw_week_view(body_y, 0, body_h, width)
            else:
                self.draw_day_list(body_y, 0, body_h, width)

            if self.app.form_state is not None:
                self.draw_event_form()
            if self.app.detail_item is not None:
                self.draw_detail_popup()

        if self.app.show_help:
            self.draw_help()

        self.draw_status_bar()
        self.stdscr.refresh()

    def draw_header(self):
        _, width = self.stdscr.getmaxyx()
        title = f"📅 {self.app.selected_date.strftime('%A, %B %d, %Y')}"
        self.safe_addstr(0, max(0, (width - len(title)) // 2), title, self.theme.attr('header'))

    def draw_access_denied(self):
        height, width = self.stdscr.getmaxyx()
        lines = [
            ("Calendar access denied", self.theme.attr('error') | curses.A_BOLD),
            ("", 0),
            (f"The MCP server {self.server_path} does not expose a usable calendar.", 0),
            ("Check its credentials and tool configuration, then restart.", 0),
            ("", 0),
            ("Press q to quit", self.theme.attr('dim')),
        ]
        top = max(0, (height - len(lines)) // 2)
        for i, (text, attr) in enumerate(lines):
            text = truncate(text, width - 2)
            self.safe_addstr(top + i, max(0, (width - len(text)) // 2), text, attr)

    def draw_month_layout(self, y: int, x: int, height: int, width: int):
        if width < SPLIT_MIN_WIDTH:
            self.draw_month_grid(y, x, height, width)
            return

        month_w = 44 if width >= 100 else 30
        self.draw_month_grid(y, x, height, month_w)
        self.draw_day_list(y, x + month_w, height, width - month_w)

    def draw_month_grid(self, y: int, x: int, height: int, width: int):
        """Sunday-first month grid with event and reminder markers"""
        app = self.app
        year, month = app.selected_date.year, app.selected_date.month
        title = f"{calendar.month_name[month]} {year}"
        self.draw_box(y, x, height, width, self.theme.attr('border'), title=title)

        cell_w = max(3, min(6, (width - 2) // 7))
        for col, name in enumerate(DAY_NAMES):
            self.safe_addstr(y + 1, x + 1 + col * cell_w, f"{name:^{cell_w}}", self.theme.attr('header'))

        weeks = calendar.Calendar(firstweekday=6).monthdayscalendar(year, month)
        for row, week in enumerate(weeks):
            row_y = y + 2 + row
            if row_y >= y + height - 1:
                break
            for col, day in enumerate(week):
                if day == 0:
                    continue
                self._draw_grid_day(row_y, x + 1 + col * cell_w, cell_w, date(year, month, day))

    def _draw_grid_day(self, y: int, x: int, cell_w: int, day_date: date):
        """Draw one grid cell: day number plus event (*) and reminder (+) markers"""
        app = self.app
        is_today = day_date == app.today
        is_selected = day_date == app.selected_date

        # selected > today > plain
        if is_selected:
            attr = self.theme.attr('selected')
            if is_today:
                attr |= curses.A_BOLD
        elif is_today:
            attr = self.theme.attr('today')
        else:
            attr = 0

        self.safe_addstr(y, x, f"{day_date.day:>3}", attr)
        if cell_w < 4:
            return
        if day_date.day in app.days_with_events:
            self.safe_addstr(y, x + 3, "*", self.theme.attr('marker'))
        if cell_w >= 5 and day_date.day in app.days_with_reminders:
            self.safe_addstr(y, x + 4, "+", self.theme.attr('marker'))

    def draw_week_view(self, y: int, x: int, height: int, width: int):
        """Seven day columns over an hourly grid"""
        app = self.app
        week_start = app.week_start()
        self.draw_box(y, x, height, width, self.theme.attr('border'),
                      title=f"Week of {week_start.strftime('%b %d, %Y')}")

        inner_x, inner_y = x + 1, y + 1
        inner_w, inner_h = width - 2, height - 2
        if inner_w < 10 or inner_h < 3:
            return

        time_w = 6 if inner_w >= 70 else 4
        col_w = max(1, (inner_w - time_w) // 7)
        days = [week_start + timedelta(days=i) for i in range(7)]

        for i, day in enumerate(days):
            if col_w >= 10:
                label = day.strftime('%a %d')
            elif col_w >= 5:
                label = day.strftime('%a')
            else:
                label = day.strftime('%d')

            if day == app.selected_date:
                attr = self.theme.attr('selected')
            elif day == app.today:
                attr = self.theme.attr('today')
            else:
                attr = self.theme.attr('header')
            self.safe_addstr(inner_y, inner_x + time_w + i * col_w, f"{label:^{col_w}}"[:col_w], attr)

        total_hours = WEEK_LAST_HOUR - WEEK_FIRST_HOUR
        content_rows = inner_h - 1
        rows_per_hour = max(1, content_rows // total_hours)
        visible_hours = min(total_hours, content_rows // rows_per_hour)

        for hour_idx in range(visible_hours):
            hour = WEEK_FIRST_HOUR + hour_idx
            row_y = inner_y + 1 + hour_idx * rows_per_hour
            label = f"{hour:>2}:00 " if time_w >= 6 else f"{hour:>2} "
            self.safe_addstr(row_y, inner_x, label, self.theme.attr('dim'))

            for i, day in enumerate(days):
                event = week_cell_event(app.week_events, day, hour)
                if event is None:
                    continue
                text = f"{truncate(event.title, col_w - 1):<{col_w - 1}}"
                self.safe_addstr(row_y, inner_x + time_w + i * col_w, text,
                                 self.theme.calendar_attr(event.calendar_color))

    def _adjust_day_list_window(self, visible: int):
        """Keep the cursor row inside the visible window"""
        scroll = self.app.day_scroll
        if scroll < self.day_list_top:
            self.day_list_top = scroll
        elif scroll >= self.day_list_top + visible:
            self.day_list_top = scroll - visible + 1
        self.day_list_top = max(0, min(self.day_list_top, self.app.day_list_len() - visible))

    def draw_day_list(self, y: int, x: int, height: int, width: int):
        """Selected day's all-day events, reminders and timed events"""
        app = self.app
        counts = row_count_label(app.day_events, app.day_reminders) or ""
        self.draw_box(y, x, height, width, self.theme.attr('border'),
                      title=app.selected_date.strftime('%A, %B %d'), footer=counts)

        inner_w, inner_h = width - 2, height - 2
        if inner_w <= 0 or inner_h <= 0:
            return

        rows = app.day_rows()
        if not rows:
            self.safe_addstr(y + 1, x + 1, truncate("No events or reminders", inner_w), self.theme.attr('dim'))
            return

        self._adjust_day_list_window(inner_h)
        visible = rows[self.day_list_top:self.day_list_top + inner_h]
        for offset, row in enumerate(visible):
            index = self.day_list_top + offset
            row_y = y + 1 + offset

            if row.kind == ROW_HEADER:
                self.safe_addstr(row_y, x + 1, truncate(row.label, inner_w),
                                 curses.A_BOLD | curses.A_UNDERLINE)
            elif row.kind == ROW_ITEM:
                selected = index == app.day_scroll and app.detail_item is None
                self.draw_segments(row_y, x + 1, self._item_segments(row.action, inner_w, selected), inner_w)

    def _item_segments(self, action, width: int, selected: bool) -> List[Segment]:
        app = self.app
        text_attr = self.theme.attr('selected') if selected else 0
        dim_attr = self.theme.attr('selected') if selected else self.theme.attr('dim')

        if action.kind is ActionKind.EVENT:
            event = app.day_events[action.index]
            segments = [("  ", self.theme.calendar_attr(event.calendar_color))]
            if not event.is_all_day:
                segments.append((f" {event.get_time_str()} ", dim_attr))
            else:
                segments.append((" ", text_attr))
            segments.append((event.title, text_attr))

            used = sum(len(text) for text, _ in segments)
            if event.location and used + 4 + len(event.location) <= width:
                segments.append((f" @ {event.location}", dim_attr))
            return segments

        reminder = app.day_reminders[action.index]
        title_attr = text_attr
        if reminder.is_completed and not selected:
            title_attr = self.theme.attr('dim')
        return [
            ("  ", self.theme.calendar_attr(reminder.calendar_color)),
            (" [x] " if reminder.is_completed else " [ ] ", text_attr),
            (reminder.title, title_attr),
            (f" ({reminder.calendar_name})", dim_attr),
        ]

    # ── Overlays ──

    def draw_modal(self, title: str, lines: List[List[Segment]], max_width: int = 60, min_width: int = 30):
        """Centered double-bordered popup holding pre-built lines"""
        height, width = self.stdscr.getmaxyx()
        modal_w = max(min(max_width, width - 4), min(min_width, width))
        modal_h = min(len(lines) + 2, height - 2)
        start_x = max(0, (width - modal_w) // 2)
        start_y = max(0, (height - modal_h) // 2)

        popup = self.theme.attr('popup')
        self.draw_box(start_y, start_x, modal_h, modal_w, popup, title=title, double=True, fill=True)
        for i, line in enumerate(lines[:modal_h - 2]):
            self.draw_segments(start_y + 1 + i, start_x + 2, line, modal_w - 4)

    def _wrap(self, text: str, width: int, attr: int) -> List[List[Segment]]:
        lines = []
        for paragraph in text.splitlines() or [""]:
            for piece in textwrap.wrap(paragraph, max(10, width)) or [""]:
                lines.append([(piece, attr)])
        return lines

    def draw_detail_popup(self):
        item = self.app.detail()
        if item is None:
            return

        popup = self.theme.attr('popup')
        _, width = self.stdscr.getmaxyx()
        text_w = min(60, width - 4) - 4
        swatch = self.theme.calendar_attr(item.calendar_color)
        lines = [[("  ", swatch), (f" {item.calendar_name}", popup)], []]

        if isinstance(item, CalendarEvent):
            if item.is_all_day:
                lines.append([("All day", popup)])
            else:
                time_str = f"{item.get_time_str()} ({item.get_duration_minutes()} min)"
                lines.append([("Time: ", popup), (time_str, popup)])
            lines.append([("Date: ", popup), (item.start.strftime('%A, %B %d, %Y'), popup)])
            if item.location:
                lines.append([])
                lines.extend(self._wrap(f"Location: {item.location}", text_w, popup))
            if item.notes:
                lines.append([])
                lines.append([("Notes:", popup)])
                lines.extend(self._wrap(item.notes, text_w, popup))
        elif isinstance(item, Reminder):
            lines.append([("Status: ", popup), ("Completed" if item.is_completed else "Incomplete", popup)])
            if item.due_date is not None:
                lines.append([("Due: ", popup), (item.due_date.strftime('%A, %B %d, %Y'), popup)])
            else:
                lines.append([("Due: ", popup), ("No date set", popup)])
            if item.priority_label():
                lines.append([("Priority: ", popup), (item.priority_label(), popup)])

        lines.append([])
        lines.append([("Press Esc to close", popup)])
        self.draw_modal(item.title, lines)

    def draw_event_form(self):
        form = self.app.form_state
        popup = self.theme.attr('popup')
        active = self.theme.attr('form_active') | curses.A_BOLD

        def field(label: str, value: str, which: FormField, enabled: bool = True) -> List[Segment]:
            is_active = enabled and form.active_field is which
            cursor = "_" if is_active and which in TEXT_FIELDS else ""
            label_text = f"{label:<7}" if label else ""
            return [(label_text, popup), (f"{value}{cursor}", active if is_active else popup)]

        if form.is_all_day:
            start_line = field("Start:", "--:--", FormField.START_TIME, enabled=False)
            end_line = field("End:", "--:--", FormField.END_TIME, enabled=False)
        else:
            start_line = field("Start:", form.start_time, FormField.START_TIME)
            end_line = field("End:", form.end_time, FormField.END_TIME)

        calendars = self.app.calendars
        if 0 <= form.calendar_index < len(calendars):
            calendar_name = calendars[form.calendar_index].title
        else:
            calendar_name = "Default"

        lines = [
            field("Title:", form.title, FormField.TITLE),
            field("Date:", form.date, FormField.DATE),
            start_line,
            end_line,
            field("", "[x] All Day" if form.is_all_day else "[ ] All Day", FormField.ALL_DAY),
            field("Cal:", calendar_name, FormField.CALENDAR),
            [],
            [("Tab", popup | curses.A_BOLD), (":Next ", popup),
             ("Enter", popup | curses.A_BOLD), (":Save ", popup),
             ("Esc", popup | curses.A_BOLD), (":Cancel", popup)],
        ]
        self.draw_modal("New Event", lines, max_width=50)

    def draw_help(self):
        popup = self.theme.attr('popup')
        lines = []
        for section, bindings in HELP_SECTIONS:
            if lines:
                lines.append([])
            if section:
                lines.append([(section, popup | curses.A_UNDERLINE)])
            for keys, description in bindings:
                lines.append([(f"  {keys:<12}", popup | curses.A_BOLD), (description, popup)])
        self.draw_modal("Keybindings", lines, max_width=64)

    def draw_status_bar(self):
        height, width = self.stdscr.getmaxyx()
        app = self.app

        left = f" {MODE_LABELS[app.view_mode]}"
        if app.input_mode is InputMode.FORM:
            left += " [New Event]"
        left += " "

        right = app.status_message or status_hints(app.view_mode, width)
        right = f" {right} "
        padding = " " * max(0, width - len(left) - len(right))
        line = (left + padding + right)[:max(0, width - 1)]

        attr = self.theme.attr('status')
        if app.status_message.startswith("Error"):
            attr |= curses.A_BOLD
        self.safe_addstr(height - 1, 0, line, attr)

    # ── Input ──

    def handle_key(self, key: int):
        """Dispatch one key: help overlay, then detail popup, then form, then normal mode"""
        app = self.app

        if key == KEY_CTRL_C:
            app.quit()
            return

        if app.show_help:
            if key in (KEY_ESC, ord('?')):
                app.toggle_help()
            return

        if app.detail_item is not None:
            if key == KEY_ESC:
                app.close_detail()
            return

        if app.input_mode is InputMode.FORM:
            self.handle_form_key(key)
        else:
            self.handle_normal_key(key)

    def handle_form_key(self, key: int):
        app = self.app
        if key == KEY_ESC:
            app.close_event_form()
        elif key in ENTER_KEYS:
            app.submit_event_form()
        elif key == KEY_TAB:
            app.form_tab()
        elif key == curses.KEY_BTAB:
            app.form_backtab()
        elif key in BACKSPACE_KEYS:
            app.form_backspace()
        elif 32 <= key < 127:
            app.form_input_char(chr(key))

    def handle_normal_key(self, key: int):
        app = self.app
        scrolls_day_list = app.view_mode is not ViewMode.WEEK

        if key == ord('q'):
            app.quit()
        elif key == ord('1'):
            app.set_view_mode(ViewMode.MONTH)
        elif key == ord('2'):
            app.set_view_mode(ViewMode.WEEK)
        elif key == ord('3'):
            app.set_view_mode(ViewMode.DAY)
        elif key == ord('?'):
            app.toggle_help()
        elif key == ord('t'):
            app.go_to_today()
        elif key == ord('r'):
            app.refresh()
        elif key == ord('n'):
            app.open_event_form()
        elif key == ord('d'):
            app.delete_selected_event()
        elif key == ord(' '):
            app.toggle_day_reminder()
        elif key in ENTER_KEYS:
            app.show_detail()
        elif key in (curses.KEY_LEFT, ord('h')):
            app.prev_day()
        elif key in (curses.KEY_RIGHT, ord('l')):
            app.next_day()
        elif key in (curses.KEY_UP, ord('k')):
            if scrolls_day_list:
                app.scroll_day_up()
            else:
                app.prev_week()
        elif key in (curses.KEY_DOWN, ord('j')):
            if scrolls_day_list:
                app.scroll_day_down()
            else:
                app.next_week()
        elif key == ord('['):
            app.prev_month()
        elif key == ord(']'):
            app.next_month()

    def run(self):
        """Main event loop"""
        self.theme.init_colors()
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        curses.set_escdelay(25)
        self.stdscr.keypad(True)
        self.stdscr.timeout(100)

        needs_redraw = True
        while self.app.running:
            if needs_redraw:
                self.draw()
                needs_redraw = False

            key = self.stdscr.getch()
            if key == -1:
                continue
            needs_redraw = True
            if key == curses.KEY_RESIZE:
                continue

            self.app.clear_status()
            self.handle_key(key)


def parse_start_date(value: str, today: date) -> date:
    """Parse --date: today, tomorrow, a weekday abbreviation (mon-sun) or YYYY-MM-DD"""
    text = value.strip().lower()
    if text == 'today':
        return today
    if text == 'tomorrow':
        return today + timedelta(days=1)

    # Map day abbreviations to weekday numbers (0=Monday, 6=Sunday)
    day_map = {'mon': 0, 'tue': 1, 'wed': 2, 'thu': 3, 'fri': 4, 'sat': 5, 'sun': 6}
    if text[:3] in day_map and text.isalpha():
        days_ahead = day_map[text[:3]] - today.weekday()
        # If target day is before today, go to next week
        if days_ahead < 0:
            days_ahead += 7
        return today + timedelta(days=days_ahead)

    try:
        return datetime.strptime(text, '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(f"Invalid date '{value}': use today, tomorrow, mon-sun or YYYY-MM-DD") from None


def get_system_timezone():
    """Get the system timezone from environment or detect from system"""
    # First check TZ environment variable
    tz = os.environ.get('TZ')
    if tz:
        return tz

    # Try to get timezone from system
    local_tz = datetime.now().astimezone().tzinfo
    if hasattr(local_tz, 'zone'):
        return local_tz.zone
    elif hasattr(local_tz, 'key'):
        return local_tz.key

    # Fallback to UTC if we can't detect
    return 'UTC'


def print_debug_instructions():
    """Print debug instructions before curses takes over the terminal"""
    print("\n" + "=" * 70, file=sys.stderr)
    print("🐛 DEBUG MODE ENABLED", file=sys.stderr)
    print("=" * 70, file=sys.stderr)
    print("Debug logs are being written to stderr.", file=sys.stderr)
    print("\nTo view logs while using the TUI, run in another terminal:", file=sys.stderr)
    print("  tail -f debug.log", file=sys.stderr)
    print("\nOr run with output redirection:", file=sys.stderr)
    print("  calview --debug 2>debug.log", file=sys.stderr)
    print("\nPress Enter to start the TUI...", file=sys.stderr)
    print("=" * 70 + "\n", file=sys.stderr)
    input()  # Wait for user to press Enter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Interactive terminal calendar')
    parser.add_argument('--timezone', default=None, help='Timezone for events (default: system timezone)')
    parser.add_argument('--date', default='today',
                        help='Start date: today, tomorrow, day abbreviation (mon-sun) or YYYY-MM-DD')
    parser.add_argument('--view', choices=[m.value for m in ViewMode], default=ViewMode.MONTH.value,
                        help='Initial view (default: month)')
    parser.add_argument('--server-path', default=os.environ.get('CALVIEW_SERVER_PATH', 'gcal-mcp-server'),
                        help='Calendar MCP server command (default: $CALVIEW_SERVER_PATH or gcal-mcp-server)')
    parser.add_argument('--timeout', type=float,
                        default=os.environ.get('CALVIEW_TIMEOUT', str(DEFAULT_TIMEOUT)),
                        help='Seconds to wait for the server to start (default: $CALVIEW_TIMEOUT or 30)')
    parser.add_argument('--theme', choices=sorted(PRESETS), default=None,
                        help='Color theme (default: $CALVIEW_THEME or dark)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging to stderr')
    return parser


def main():
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args()

    # Use provided timezone or detect from system
    if args.timezone is None:
        args.timezone = get_system_timezone()

    try:
        start_date = parse_start_date(args.date, date.today())
        theme = Theme.load(args.theme)
    except ValueError as e:
        parser.error(str(e))

    client = MCPClient(args.server_path, timeout=args.timeout)
    store = MCPStore(client, timezone=args.timezone, debug=args.debug)
    app = App(store, debug=args.debug, start_date=start_date)
    app.set_view_mode(ViewMode(args.view))

    if args.debug:
        print_debug_instructions()

    def curses_main(stdscr):
        CalendarTUI(stdscr, app, theme, server_path=args.server_path).run()

    exit_code = 0
    try:
        app.start()
        curses.wrapper(curses_main)
    except KeyboardInterrupt:
        pass
    except DataSourceError as e:
        print(f"Error: {e}", file=sys.stderr)
        exit_code = 1
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        exit_code = 1
    finally:
        client.disconnect()

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
