import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from fastapi import FastAPI

from backend.errors import NoPendingUpdate
from backend.updates import UpdateState, UpdateWatcher, install_update_watcher
from testing_utils import make_settings, write_build

IDLE = UpdateState.IDLE
AVAILABLE = UpdateState.UPDATE_AVAILABLE
DEFERRED = UpdateState.DEFERRED
ACTIVATING = UpdateState.ACTIVATING


class SynchronousPromptTests(unittest.TestCase):
    def test_accept_activates_once(self):
        activate = MagicMock()
        prompt = MagicMock(return_value=True)
        watcher = UpdateWatcher(activate=activate, prompt=prompt, message="Reload?")

        self.assertTrue(watcher.on_need_refresh("v2"))

        prompt.assert_called_once_with("Reload?")
        activate.assert_called_once_with("v2")
        self.assertEqual(watcher.transitions, [IDLE, AVAILABLE, ACTIVATING])
        self.assertEqual(watcher.activated_version, "v2")
        self.assertEqual(watcher.activations, 1)
        self.assertEqual(watcher.snapshot()["activated_version"], "v2")

    def test_decline_returns_to_idle(self):
        activate = MagicMock()
        watcher = UpdateWatcher(activate=activate, prompt=lambda message: False)

        watcher.on_need_refresh("v2")

        activate.assert_not_called()
        self.assertEqual(watcher.transitions, [IDLE, AVAILABLE, DEFERRED, IDLE])
        self.assertEqual(watcher.state, IDLE)
        self.assertEqual(watcher.deferred_version, "v2")

    def test_declined_update_waits_for_new_signal(self):
        prompt = MagicMock(return_value=False)
        watcher = UpdateWatcher(activate=MagicMock(), prompt=prompt)
        watcher.on_need_refresh("v2")
        self.assertEqual(prompt.call_count, 1)

        watcher.on_need_refresh("v3")
        self.assertEqual(prompt.call_count, 2)

    def test_signal_for_activated_version_is_ignored(self):
        prompt = MagicMock(return_value=True)
        watcher = UpdateWatcher(activate=MagicMock(), prompt=prompt)
        watcher.on_need_refresh("v2")

        self.assertFalse(watcher.on_need_refresh("v2"))
        self.assertEqual(prompt.call_count, 1)

    def test_signals_during_prompt_are_coalesced(self):
        activate = MagicMock()
        prompting = threading.Event()
        answer = threading.Event()

        def prompt(message):
            prompting.set()
            answer.wait(5)
            return True

        watcher = UpdateWatcher(activate=activate, prompt=prompt)
        worker = threading.Thread(target=watcher.on_need_refresh, args=("v2",))
        worker.start()
        self.assertTrue(prompting.wait(5))

        self.assertFalse(watcher.on_need_refresh("v3"))
        self.assertFalse(watcher.on_need_refresh("v3"))
        answer.set()
        worker.join(5)

        activate.assert_called_once_with("v3")
        self.assertEqual(watcher.coalesced_signals, 2)
        self.assertEqual(watcher.transitions, [IDLE, AVAILABLE, ACTIVATING])


    def test_prompt_answered_elsewhere_is_dropped(self):
        activate = MagicMock()
        prompting = threading.Event()
        answer = threading.Event()
        results = []

        def prompt(message):
            prompting.set()
            answer.wait(5)
            return True

        watcher = UpdateWatcher(activate=activate, prompt=prompt)
        worker = threading.Thread(
            target=lambda: results.append(watcher.on_need_refresh("v2"))
        )
        worker.start()
        self.assertTrue(prompting.wait(5))

        decision = watcher.resolve(False)
        answer.set()
        worker.join(5)

        self.assertFalse(decision.accepted)
        self.assertEqual(results, [True])
        activate.assert_not_called()
        self.assertEqual(watcher.state, IDLE)
        self.assertEqual(watcher.transitions, [IDLE, AVAILABLE, DEFERRED, IDLE])


class WithdrawnUpdateTests(unittest.TestCase):
    def test_withdraw_pending_prompt(self):
        activate = MagicMock()
        watcher = UpdateWatcher(activate=activate)
        watcher.on_need_refresh("v2")

        self.assertTrue(watcher.on_update_withdrawn("v2"))

        self.assertEqual(watcher.state, IDLE)
        self.assertIsNone(watcher.pending_version)
        self.assertEqual(watcher.transitions, [IDLE, AVAILABLE, IDLE])
        with self.assertRaises(NoPendingUpdate):
            watcher.resolve(True)
        activate.assert_not_called()

    def test_withdraw_other_version_is_ignored(self):
        watcher = UpdateWatcher(activate=MagicMock())
        watcher.on_need_refresh("v2")
        self.assertFalse(watcher.on_update_withdrawn("v1"))
        self.assertEqual(watcher.state, AVAILABLE)

    def test_withdraw_without_prompt(self):
        watcher = UpdateWatcher(activate=MagicMock())
        self.assertFalse(watcher.on_update_withdrawn("v2"))
        self.assertEqual(watcher.transitions, [IDLE])

    def test_signal_after_withdraw_prompts_again(self):
        watcher = UpdateWatcher(activate=MagicMock())
        watcher.on_need_refresh("v2")
        watcher.on_update_withdrawn("v2")
        self.assertTrue(watcher.on_need_refresh("v3"))
        self.assertEqual(watcher.snapshot()["pending_version"], "v3")


class DeferredDecisionTests(unittest.TestCase):
    def test_pending_until_resolved(self):
        activate = MagicMock()
        watcher = UpdateWatcher(activate=activate)

        self.assertTrue(watcher.on_need_refresh("v2"))
        self.assertEqual(watcher.state, AVAILABLE)
        self.assertEqual(watcher.snapshot()["pending_version"], "v2")
        activate.assert_not_called()

        decision = watcher.resolve(True)
        self.assertTrue(decision.reload)
        self.assertEqual(decision.version, "v2")
        activate.assert_called_once_with("v2")

    def test_resolve_without_prompt(self):
        watcher = UpdateWatcher(activate=MagicMock())
        with self.assertRaises(NoPendingUpdate):
            watcher.resolve(True)

    def test_resolve_twice(self):
        watcher = UpdateWatcher(activate=MagicMock())
        watcher.on_need_refresh("v2")
        watcher.resolve(False)
        with self.assertRaises(NoPendingUpdate):
            watcher.resolve(True)

    def test_activation_failure_propagates(self):
        activate = MagicMock(side_effect=LookupError("gone"))
        watcher = UpdateWatcher(activate=activate)
        watcher.on_need_refresh("v2")

        with self.assertRaises(LookupError):
            watcher.resolve(True)
        self.assertEqual(watcher.state, ACTIVATING)
        self.assertIsNone(watcher.activated_version)


class InstallUpdateWatcherTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dist = write_build(Path(self.tmp.name) / "dist")
        self.settings = make_settings(self.dist)

    def tearDown(self):
        self.tmp.cleanup()

    def test_install_twice_prompts_once(self):
        app = FastAPI()
        prompt = MagicMock(return_value=False)
        first = install_update_watcher(app, self.settings, prompt=prompt)
        second = install_update_watcher(app, self.settings, prompt=prompt)
        self.assertIs(first, second)

        (self.dist / "assets" / "index.js").write_text("console.log('v2');\n")
        app.state.build_tracker.check()

        prompt.assert_called_once()

    def test_accept_activates_waiting_build(self):
        app = FastAPI()
        watcher = install_update_watcher(app, self.settings, prompt=lambda m: True)
        tracker = app.state.build_tracker
        old_version = tracker.active.version

        (self.dist / "assets" / "index.js").write_text("console.log('v2');\n")
        tracker.check()

        self.assertNotEqual(tracker.active.version, old_version)
        self.assertIsNone(tracker.waiting)
        self.assertEqual(watcher.activated_version, tracker.active.version)


if __name__ == "__main__":
    unittest.main()
