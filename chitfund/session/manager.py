"""Idle-session tracking.

The helpers at the top are plain arithmetic over timestamps and are shared
with the server-side session check in the user repository. ``SessionManager``
drives the same rules with timers on an asyncio event loop: a warning shortly
before the idle window closes and a timeout that clears the session and
redirects to the login route exactly once.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Union

logger = logging.getLogger(__name__)

SESSION_TIMEOUT = 30 * 60.0  # seconds
WARNING_TIME = 5 * 60.0  # seconds before timeout
LOGIN_URL = "/auth/login"
MAX_AUDIT_EVENTS = 100

SESSION_KEY = "session-data"
AUDIT_KEY = "audit-logs"

Number = Union[int, float]


def _seconds(value: Union[Number, datetime]) -> float:
    if isinstance(value, datetime):
        return value.timestamp() if value.tzinfo else value.replace(tzinfo=timezone.utc).timestamp()
    return float(value)


def time_remaining(last_activity, now, timeout: Number = SESSION_TIMEOUT) -> float:
    """Seconds left in the idle window, never negative."""
    elapsed = _seconds(now) - _seconds(last_activity)
    return max(0.0, float(timeout) - elapsed)


def is_expired(last_activity, now, timeout: Number = SESSION_TIMEOUT) -> bool:
    return time_remaining(last_activity, now, timeout) <= 0


def is_warning_due(last_activity, now, timeout: Number = SESSION_TIMEOUT,
                   warning: Number = WARNING_TIME) -> bool:
    """True inside the last ``warning`` seconds of a still-open window."""
    remaining = time_remaining(last_activity, now, timeout)
    return 0 < remaining <= warning


class SessionManager:
    """Tracks user activity and expires an idle session.

    ``loop`` only needs ``call_later()`` and runs the warning and timeout
    timers. ``storage`` is any mutable mapping and stands in for persisted
    client state; the timestamps written to it come from ``clock``, wall
    clock seconds by default, so a session saved by one process can be
    resumed by another.
    """

    def __init__(
        self,
        timeout: Number = SESSION_TIMEOUT,
        warning: Number = WARNING_TIME,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        storage: Optional[MutableMapping[str, Any]] = None,
        on_warning: Optional[Callable[[float], None]] = None,
        on_timeout: Optional[Callable[[], None]] = None,
        on_redirect: Optional[Callable[[str], None]] = None,
        login_url: str = LOGIN_URL,
        clock: Optional[Callable[[], float]] = None,
    ):
        if warning >= timeout:
            raise ValueError("warning must be shorter than timeout")
        self.timeout = float(timeout)
        self.warning = float(warning)
        self.loop = loop or asyncio.get_running_loop()
        self.storage = storage if storage is not None else {}
        self.on_warning = on_warning
        self.on_timeout = on_timeout
        self.on_redirect = on_redirect
        self.login_url = login_url
        self.clock = clock or time.time

        self.state = self._empty_state()
        self.warning_shown = False
        self._warning_handle = None
        self._timeout_handle = None

    @staticmethod
    def _empty_state() -> Dict[str, Any]:
        return {
            "is_active": False,
            "last_activity": 0.0,
            "session_start": 0.0,
            "refresh_token": None,
            "user": None,
        }

    def _now(self) -> float:
        return self.clock()

    # lifecycle

    def start(self, user: Dict[str, Any], refresh_token: Optional[str] = None) -> None:
        now = self._now()
        self.state = {
            "is_active": True,
            "last_activity": now,
            "session_start": now,
            "refresh_token": refresh_token,
            "user": user,
        }
        self._save()
        self._arm_timers()
        self._audit("SESSION_STARTED", f"Session started for user: {user.get('email')}")

    def resume(self) -> bool:
        """Restore a stored session if its idle window is still open."""
        stored = self.storage.get(SESSION_KEY)
        if not stored:
            return False
        last_activity = stored.get("last_activity")
        if last_activity is not None and not is_expired(last_activity, self._now(), self.timeout):
            self.state = dict(stored, is_active=True)
            self._arm_timers(time_remaining(last_activity, self._now(), self.timeout))
            self._audit("SESSION_RESUMED", "Session resumed from storage")
            return True
        self.clear()
        self._audit("SESSION_EXPIRED", "Stored session expired")
        return False

    def touch(self) -> None:
        """Register user activity; restarts the idle window."""
        if not self.state["is_active"]:
            return
        self.state["last_activity"] = self._now()
        self._save()
        self._arm_timers()

    def extend(self) -> None:
        if self.state["is_active"]:
            self.touch()
            self._audit("SESSION_EXTENDED", "Session extended by user")

    def logout(self) -> None:
        self._audit("LOGOUT", "User logged out")
        self.clear()

    def clear(self) -> None:
        self._cancel_timers()
        self.state = self._empty_state()
        self.warning_shown = False
        self.storage.pop(SESSION_KEY, None)
        self._audit("SESSION_CLEARED", "Session cleared")

    # queries

    def time_remaining(self) -> float:
        if not self.state["is_active"]:
            return 0.0
        return time_remaining(self.state["last_activity"], self._now(), self.timeout)

    def is_active(self) -> bool:
        return self.state["is_active"] and self.time_remaining() > 0

    def info(self) -> Dict[str, Any]:
        return dict(
            self.state,
            time_remaining=self.time_remaining(),
            is_warning_active=self.warning_shown,
        )

    def audit_events(self) -> List[Dict[str, Any]]:
        return list(self.storage.get(AUDIT_KEY, []))

    # timers

    def _arm_timers(self, remaining: Optional[float] = None) -> None:
        self._cancel_timers()
        self.warning_shown = False
        remaining = self.timeout if remaining is None else remaining
        self._warning_handle = self.loop.call_later(max(0.0, remaining - self.warning), self._fire_warning)
        self._timeout_handle = self.loop.call_later(max(0.0, remaining), self._fire_timeout)

    def _cancel_timers(self) -> None:
        for handle in (self._warning_handle, self._timeout_handle):
            if handle is not None:
                handle.cancel()
        self._warning_handle = None
        self._timeout_handle = None

    def _fire_warning(self) -> None:
        self._warning_handle = None
        if self.warning_shown or not self.state["is_active"]:
            return
        self.warning_shown = True
        logger.info("Session for %s expires in %.0f seconds", self._user_email(), self.warning)
        if self.on_warning:
            self.on_warning(self.time_remaining())

    def _fire_timeout(self) -> None:
        self._timeout_handle = None
        if not self.state["is_active"]:
            return
        self._audit("SESSION_TIMEOUT", "Session timed out due to inactivity")
        logger.info("Session for %s timed out", self._user_email())
        self.clear()
        if self.on_timeout:
            self.on_timeout()
        if self.on_redirect:
            self.on_redirect(self.login_url)

    # storage

    def _save(self) -> None:
        self.storage[SESSION_KEY] = dict(self.state)

    def _user_email(self) -> str:
        user = self.state.get("user") or {}
        return user.get("email") or "unknown"

    def _audit(self, action: str, details: str) -> None:
        user = self.state.get("user") or {}
        events = list(self.storage.get(AUDIT_KEY, []))
        events.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "details": details,
            "user_id": user.get("id", "unknown"),
            "user_email": user.get("email", "unknown"),
            "session_id": self.state.get("session_start"),
        })
        self.storage[AUDIT_KEY] = events[-MAX_AUDIT_EVENTS:]
