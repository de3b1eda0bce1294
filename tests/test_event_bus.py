"""
Tests for EventBus emission and error handling in arena/events.py.
"""

import unittest

from arena.events import EVT_LIFE_LOST, ArenaEvent, EventBus


class TestEventBus(unittest.TestCase):
    def setUp(self):
        self.bus = EventBus()
        self.calls = []

    def _success_handler_1(self, event):
        self.calls.append("success_1")

    def _success_handler_2(self, event):
        self.calls.append("success_2")

    def _fail_handler(self, event):
        self.calls.append("fail")
        raise ValueError("Intentional error for testing")

    def _wildcard_handler(self, event):
        self.calls.append("wildcard")

    def test_emit_continues_after_handler_exception(self):
        """
        A failing handler does not prevent subsequent handlers from executing.
        """
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_1)
        self.bus.subscribe(EVT_LIFE_LOST, self._fail_handler)
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_2)

        with self.assertLogs("arena.events", level="ERROR") as logs:
            self.bus.emit(ArenaEvent(event_key=EVT_LIFE_LOST, source="c1"))

        self.assertEqual(self.calls, ["success_1", "fail", "success_2"])
        self.assertIn("Handler error on 'arena.life_lost'", logs.output[0])
        self.assertIn("Intentional error for testing", logs.output[0])

    def test_wildcard_runs_after_specific_handlers(self):
        self.bus.subscribe("*", self._wildcard_handler)
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_1)

        self.bus.emit(ArenaEvent(event_key=EVT_LIFE_LOST, source="c1"))

        self.assertEqual(self.calls, ["success_1", "wildcard"])

    def test_wildcard_sees_unknown_keys(self):
        self.bus.subscribe("*", self._wildcard_handler)
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_1)

        self.bus.emit(ArenaEvent(event_key="arena.something_else", source="c1"))

        self.assertEqual(self.calls, ["wildcard"])

    def test_unsubscribe(self):
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_1)
        self.bus.unsubscribe(EVT_LIFE_LOST, self._success_handler_1)
        self.bus.unsubscribe("never.subscribed", self._success_handler_1)

        self.bus.emit(ArenaEvent(event_key=EVT_LIFE_LOST, source="c1"))

        self.assertEqual(self.calls, [])

    def test_unsubscribe_removes_only_that_bound_method(self):
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_1)
        self.bus.subscribe(EVT_LIFE_LOST, self._success_handler_2)
        self.bus.unsubscribe(EVT_LIFE_LOST, self._success_handler_1)

        self.bus.emit(ArenaEvent(event_key=EVT_LIFE_LOST, source="c1"))

        self.assertEqual(self.calls, ["success_2"])


if __name__ == "__main__":
    unittest.main()
