"""
Tests for the idle-session manager, driven by a manual clock
"""
import time
import unittest

from chitfund.session.manager import AUDIT_KEY, MAX_AUDIT_EVENTS, SESSION_KEY, SessionManager


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Just enough of an event loop: time() and call_later() on a manual clock"""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


USER = {"id": 1, "email": "agent@chitfund.in"}


class SessionManagerTests(unittest.TestCase):

    def setUp(self):
        self.loop = FakeLoop()
        self.storage = {}
        self.warnings = []
        self.timeouts = []
        self.redirects = []
        self.manager = SessionManager(
            timeout=1800,
            warning=300,
            loop=self.loop,
            storage=self.storage,
            on_warning=self.warnings.append,
            on_timeout=lambda: self.timeouts.append(self.loop.now),
            on_redirect=self.redirects.append,
            clock=self.loop.time,
        )

    def actions(self):
        return [event["action"] for event in self.manager.audit_events()]

    def test_warning_must_be_shorter_than_timeout(self):
        with self.assertRaises(ValueError):
            SessionManager(timeout=300, warning=300, loop=self.loop)

    def test_start_persists_state(self):
        self.manager.start(USER, refresh_token="refresh")
        self.assertTrue(self.manager.is_active())
        self.assertEqual(self.storage[SESSION_KEY]["user"], USER)
        self.assertEqual(self.manager.time_remaining(), 1800)
        self.assertIn("SESSION_STARTED", self.actions())

    def test_warning_fires_once_before_timeout(self):
        self.manager.start(USER)
        self.loop.advance(1499)
        self.assertEqual(self.warnings, [])

        self.loop.advance(1)
        self.assertEqual(self.warnings, [300])
        self.assertTrue(self.manager.info()["is_warning_active"])

        self.loop.advance(100)
        self.assertEqual(len(self.warnings), 1)

    def test_timeout_clears_and_redirects_once(self):
        self.manager.start(USER)
        self.loop.advance(1800)

        self.assertFalse(self.manager.is_active())
        self.assertEqual(self.timeouts, [1800])
        self.assertEqual(self.redirects, ["/auth/login"])
        self.assertNotIn(SESSION_KEY, self.storage)
        self.assertIn("SESSION_TIMEOUT", self.actions())

        self.loop.advance(5000)
        self.assertEqual(len(self.timeouts), 1)
        self.assertEqual(len(self.redirects), 1)

    def test_activity_restarts_window(self):
        self.manager.start(USER)
        self.loop.advance(1600)
        self.assertEqual(len(self.warnings), 1)

        self.manager.touch()
        self.assertFalse(self.manager.info()["is_warning_active"])
        self.assertEqual(self.storage[SESSION_KEY]["last_activity"], 1600)

        self.loop.advance(1700)
        self.assertEqual(self.timeouts, [])
        self.assertEqual(len(self.warnings), 2)

        self.loop.advance(100)
        self.assertEqual(self.timeouts, [3400])

    def test_touch_ignored_when_inactive(self):
        self.manager.touch()
        self.assertNotIn(SESSION_KEY, self.storage)
        self.assertEqual(self.loop.handles, [])

    def test_extend_is_audited(self):
        self.manager.start(USER)
        self.loop.advance(1000)
        self.manager.extend()
        self.assertEqual(self.manager.time_remaining(), 1800)
        self.assertIn("SESSION_EXTENDED", self.actions())

    def test_logout_cancels_timers(self):
        self.manager.start(USER)
        self.manager.logout()
        self.assertFalse(self.manager.is_active())
        self.assertTrue(all(h.cancelled for h in self.loop.handles))

        self.loop.advance(3600)
        self.assertEqual(self.timeouts, [])
        self.assertEqual(self.actions()[-2:], ["LOGOUT", "SESSION_CLEARED"])

    def test_resume_within_window(self):
        self.manager.start(USER)
        self.loop.advance(600)

        restored = SessionManager(timeout=1800, warning=300, loop=self.loop, storage=self.storage,
                                  on_redirect=self.redirects.append, clock=self.loop.time)
        self.assertTrue(restored.resume())
        self.assertEqual(restored.time_remaining(), 1200)

        # the first manager still has its own timers
        self.manager.clear()
        self.loop.advance(1200)
        self.assertFalse(restored.is_active())
        self.assertEqual(self.redirects, ["/auth/login"])

    def test_resume_after_window_expires(self):
        self.storage[SESSION_KEY] = {"is_active": True, "last_activity": 10.0, "session_start": 10.0,
                                     "refresh_token": None, "user": USER}
        self.loop.now = 10.0 + 1800
        self.assertFalse(self.manager.resume())
        self.assertNotIn(SESSION_KEY, self.storage)
        self.assertIn("SESSION_EXPIRED", self.actions())

    def test_stored_timestamps_are_wall_clock(self):
        manager = SessionManager(timeout=1800, warning=300, loop=self.loop, storage=self.storage)
        before = time.time()
        manager.start(USER)
        self.assertGreaterEqual(self.storage[SESSION_KEY]["last_activity"], before)
        self.assertLessEqual(self.storage[SESSION_KEY]["last_activity"], time.time())

    def test_resume_session_saved_by_another_process(self):
        saved_at = time.time() - 600
        self.storage[SESSION_KEY] = {"is_active": True, "last_activity": saved_at, "session_start": saved_at,
                                     "refresh_token": None, "user": USER}
        # a fresh event loop whose monotonic clock has nothing to do with the stored values
        self.loop.now = 5.0
        restored = SessionManager(timeout=1800, warning=300, loop=self.loop, storage=self.storage)
        self.assertTrue(restored.resume())
        self.assertAlmostEqual(restored.time_remaining(), 1200, delta=5)

        timeout = [h for h in self.loop.handles if not h.cancelled][-1]
        self.assertAlmostEqual(timeout.when, 5.0 + 1200, delta=5)

        self.storage[SESSION_KEY] = dict(self.storage[SESSION_KEY], last_activity=time.time() - 3600)
        self.assertFalse(SessionManager(timeout=1800, warning=300, loop=self.loop, storage=self.storage).resume())

    def test_audit_log_is_capped(self):
        self.manager.start(USER)
        for _ in range(MAX_AUDIT_EVENTS + 20):
            self.manager.extend()
        self.assertEqual(len(self.storage[AUDIT_KEY]), MAX_AUDIT_EVENTS)
