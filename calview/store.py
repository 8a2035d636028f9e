"""
Calendar data source backed by a calendar MCP server over stdio

The view-state controller expects plain blocking calls. MCPClient keeps the
MCP session alive on a background thread with its own asyncio loop and hands
each tool call over to it, waiting on the resulting future.
"""

import asyncio
import json
import sys
import threading
from datetime import date, datetime, time
from typing import Dict, List, Optional, Protocol, Set

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from . import dates
from .models import CalendarEvent, CalendarInfo, Reminder

DEFAULT_TIMEOUT = 30.0

# Tools the server must advertise before calendar access counts as granted
REQUIRED_TOOLS = ('list_events', 'list_calendars', 'create_event', 'delete_event')
REMINDER_TOOLS = ('list_tasks', 'update_task')


class DataSourceError(Exception):
    """A data source call failed (connection, tool error, or bad payload)"""


class CalendarStore(Protocol):
    """Operations the view-state controller needs from a calendar backend"""

    def request_access(self) -> bool: ...

    def list_calendars(self) -> List[CalendarInfo]: ...

    def events_for_date(self, day: date) -> List[CalendarEvent]: ...

    def events_for_week(self, day: date) -> List[CalendarEvent]: ...

    def events_for_month(self, year: int, month: int) -> List[CalendarEvent]: ...

    def create_event(self, title: str, day: date, start_time: Optional[time], end_time: Optional[time],
                     is_all_day: bool, calendar_id: Optional[str] = None) -> None: ...

    def delete_event(self, event_id: str) -> None: ...

    def fetch_incomplete_reminders(self) -> List[Reminder]: ...

    def toggle_reminder(self, reminder_id: str) -> bool: ...


class MCPClient:
    """Client for interacting with MCP server via stdio"""

    def __init__(self, server_path: str, args: Optional[List[str]] = None, timeout: float = DEFAULT_TIMEOUT):
        self.server_path = server_path
        self.args = args or []
        self.timeout = timeout
        self.session: Optional[ClientSession] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._stop: Optional[asyncio.Event] = None
        self._connect_error: Optional[BaseException] = None

    @property
    def connected(self) -> bool:
        return self.session is not None

    def connect(self):
        """Start the session thread and block until the server is initialized"""
        if self.connected:
            return

        self._ready.clear()
        self._connect_error = None
        self._thread = threading.Thread(target=self._run_loop, name="mcp-session", daemon=True)
        self._thread.start()

        if not self._ready.wait(self.timeout):
            raise DataSourceError(f"Timed out connecting to MCP server: {self.server_path}")
        if self.session is None:
            error = self._connect_error
            raise DataSourceError(f"Could not connect to MCP server {self.server_path}: {error}") from error

    def disconnect(self):
        """Let the session task leave its contexts and wait for the thread to finish"""
        loop, stop = self._loop, self._stop
        if loop is not None and stop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(stop.set)
        if self._thread is not None:
            self._thread.join(self.timeout)
            self._thread = None

    def _run_loop(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve())
        finally:
            self._loop.close()

    async def _serve(self):
        """Own the stdio and session contexts for the lifetime of the connection"""
        server_params = StdioServerParameters(
            command=self.server_path,
            args=self.args,
            env=None
        )
        self._stop = asyncio.Event()

        try:
            async with stdio_client(server_params) as (stdio, write):
                async with ClientSession(stdio, write) as session:
                    await session.initialize()
                    self.session = session
                    self._ready.set()
                    await self._stop.wait()
        except Exception as e:
            self._connect_error = e
        finally:
            self.session = None
            self._ready.set()

    def _submit(self, coro):
        """Run a coroutine on the session loop and block for its result"""
        if not self.connected or self._loop is None:
            coro.close()
            raise DataSourceError("Not connected to MCP server")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result()
        except DataSourceError:
            raise
        except Exception as e:
            raise DataSourceError(f"{type(e).__name__}: {e}") from e

    def call_tool(self, tool_name: str, arguments: Dict) -> str:
        """Call an MCP tool and return the text of its first content item"""
        return self._submit(self._call_tool(tool_name, arguments))

    async def _call_tool(self, tool_name: str, arguments: Dict) -> str:
        if not self.session:
            raise DataSourceError("Not connected to MCP server")

        result = await self.session.call_tool(tool_name, arguments)
        text = result.content[0].text if result.content else ""
        if result.isError:
            raise DataSourceError(text or f"{tool_name} failed")
        return text

    def list_tool_names(self) -> Set[str]:
        return self._submit(self._list_tool_names())

    async def _list_tool_names(self) -> Set[str]:
        if not self.session:
            raise DataSourceError("Not connected to MCP server")

        tools = await self.session.list_tools()
        return {tool.name for tool in tools.tools}


class MCPStore:
    """Blocking calendar/reminder store on top of an MCPClient"""

    def __init__(self, client: MCPClient, timezone: str = "UTC", debug: bool = False):
        self.client = client
        self.timezone = timezone
        self.debug = debug
        self.reminders_supported = False

        # Completion state of every task seen this session, and which ones
        # were checked off here (so they can still be un-checked)
        self._task_status: Dict[str, bool] = {}
        self._completed_here: Set[str] = set()

    def debug_log(self, message: str):
        """Log debug message to stderr if debug mode is enabled"""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr, flush=True)

    def _call_json(self, tool_name: str, params: Dict) -> Dict:
        """Call a tool that answers in JSON and decode the payload"""
        self.debug_log(f"{tool_name}: {params}")
        result = self.client.call_tool(tool_name, params)

        # Parse the JSON result
        if isinstance(result, str):
            if not result.strip():
                return {}
            try:
                data = json.loads(result)
            except json.JSONDecodeError as e:
                raise DataSourceError(f"{tool_name} returned invalid JSON: {e}") from e
        else:
            data = result

        if not isinstance(data, dict):
            raise DataSourceError(f"{tool_name} returned {type(data).__name__}, expected an object")
        return data

    # ── Access ──

    def request_access(self) -> bool:
        """Connect and check the server exposes a usable calendar

        Connection failures raise DataSourceError; a server without calendar
        tools, or one that refuses the calendar listing, means access denied.
        """
        self.client.connect()

        tools = self.client.list_tool_names()
        missing = [name for name in REQUIRED_TOOLS if name not in tools]
        if missing:
            self.debug_log(f"Server is missing calendar tools: {', '.join(missing)}")
            return False

        self.reminders_supported = all(name in tools for name in REMINDER_TOOLS)
        if not self.reminders_supported:
            self.debug_log("Server has no task tools, reminders disabled")

        try:
            self._call_json("list_calendars", {"output_format": "json"})
        except DataSourceError as e:
            self.debug_log(f"Calendar access check failed: {e}")
            return False
        return True

    # ── Calendars and events ──

    def list_calendars(self) -> List[CalendarInfo]:
        data = self._call_json("list_calendars", {"output_format": "json"})
        return [CalendarInfo(c) for c in data.get('calendars', [])]

    def events_for_date(self, day: date) -> List[CalendarEvent]:
        start_of_day = datetime.combine(day, time.min).astimezone()
        end_of_day = datetime.combine(day, time(23, 59, 59)).astimezone()
        return self.events_in_range(start_of_day, end_of_day)

    def events_for_week(self, day: date) -> List[CalendarEvent]:
        days = dates.week_days(day)
        start = datetime.combine(days[0], time.min).astimezone()
        end = datetime.combine(days[-1], time(23, 59, 59)).astimezone()
        return self.events_in_range(start, end)

    def events_for_month(self, year: int, month: int) -> List[CalendarEvent]:
        first, following = dates.month_bounds(year, month)
        start = datetime.combine(first, time.min).astimezone()
        end = datetime.combine(following, time.min).astimezone()
        return self.events_in_range(start, end)

    def events_in_range(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        params = {
            "time_filter": "custom",
            "time_min": start.isoformat(),
            "time_max": end.isoformat(),
            "timezone": self.timezone,
            "show_declined": False,
            "max_results": 250,
            "output_format": "json"
        }
        data = self._call_json("list_events", params)

        events = []
        for event_data in data.get('events', []):
            try:
                events.append(CalendarEvent(event_data))
            except ValueError as e:
                self.debug_log(f"Skipping event: {e}")

        events.sort(key=lambda e: e.start)
        return events

    def create_event(self, title: str, day: date, start_time: Optional[time], end_time: Optional[time],
                     is_all_day: bool, calendar_id: Optional[str] = None) -> None:
        if is_all_day:
            # All-day events end on the following (exclusive) date
            start_value = day.isoformat()
            end_value = dates.next_day(day).isoformat()
        else:
            start_value = datetime.combine(day, start_time or time(9, 0)).isoformat()
            end_value = datetime.combine(day, end_time or time(10, 0)).isoformat()

        args = {
            "summary": title,
            "start_time": start_value,
            "end_time": end_value,
            "all_day": is_all_day,
            "timezone": self.timezone,
            "send_notifications": False
        }
        if calendar_id:
            args["calendar_id"] = calendar_id

        self.debug_log(f"Creating event: {title} ({start_value} - {end_value})")
        self.client.call_tool("create_event", args)

    def delete_event(self, event_id: str) -> None:
        self.debug_log(f"Deleting event: {event_id}")
        self.client.call_tool("delete_event", {"event_id": event_id, "send_notifications": False})

    # ── Reminders ──

    def fetch_incomplete_reminders(self) -> List[Reminder]:
        """Open tasks, plus tasks checked off during this session"""
        if not self.reminders_supported:
            return []

        data = self._call_json("list_tasks", {"show_completed": True, "output_format": "json"})

        reminders = []
        for task_data in data.get('tasks', []):
            try:
                reminder = Reminder(task_data)
            except ValueError as e:
                self.debug_log(f"Skipping task {task_data.get('id')!r}: {e}")
                continue
            self._task_status[reminder.id] = reminder.is_completed
            if not reminder.is_completed or reminder.id in self._completed_here:
                reminders.append(reminder)
        return reminders

    def toggle_reminder(self, reminder_id: str) -> bool:
        """Flip a task's completion and return the new state"""
        if not self.reminders_supported:
            raise DataSourceError("Reminders are not supported by this server")
        if reminder_id not in self._task_status:
            raise DataSourceError(f"Unknown reminder: {reminder_id}")

        new_state = not self._task_status[reminder_id]
        status = "completed" if new_state else "needsAction"
        self.client.call_tool("update_task", {"task_id": reminder_id, "status": status})

        self._task_status[reminder_id] = new_state
        if new_state:
            self._completed_here.add(reminder_id)
        return new_state
