import threading
import unittest

from kiosk_supervisor.supervisor.controller import DisplayController
from kiosk_supervisor.supervisor.probe import ServiceEndpoint
from kiosk_supervisor.supervisor.watchdog import Watchdog

from kiosk_fakes import FakeLauncher, FakeProbe, fast_config, wait_until


class Test_watchdog(unittest.TestCase):

  def setUp(self):
    self.endpoint = ServiceEndpoint("primary", "http://127.0.0.1:8090")
    self.fired = []
    pass

  def on_reachable(self, watchdog):
    self.fired.append(watchdog)
    pass

  def test_fires_once_primary_answers(self):
    probe = FakeProbe(answers=[False, False, True])
    watchdog = Watchdog(probe, self.endpoint, self.on_reachable, poll_interval=0.01, poll_timeout=0.1)
    watchdog.start()
    watchdog.join(5)
    self.assertFalse(watchdog.is_alive())
    self.assertEqual(self.fired, [watchdog])
    self.assertEqual(watchdog.polls, 3)
    self.assertTrue(watchdog.fired)
    pass

  def test_cancel_stops_polling(self):
    probe = FakeProbe(reachable=False)
    watchdog = Watchdog(probe, self.endpoint, self.on_reachable, poll_interval=0.01, poll_timeout=0.1)
    watchdog.start()
    self.assertTrue(wait_until(lambda: watchdog.polls >= 2))
    self.assertTrue(watchdog.is_active())
    watchdog.cancel()
    watchdog.join(5)
    self.assertFalse(watchdog.is_alive())
    self.assertFalse(watchdog.is_active())
    polls = watchdog.polls
    probe.reachable = True
    self.assertEqual(watchdog.polls, polls)
    self.assertEqual(self.fired, [])
    pass

  def test_cancel_during_probe_does_not_fire(self):
    in_probe = threading.Event()
    release = threading.Event()

    class SlowProbe(object):
      def is_reachable(self, endpoint, timeout):
        in_probe.set()
        release.wait(5)
        return True
      pass

    watchdog = Watchdog(SlowProbe(), self.endpoint, self.on_reachable, poll_interval=0.01, poll_timeout=0.1)
    watchdog.start()
    self.assertTrue(in_probe.wait(5))
    watchdog.cancel()
    release.set()
    watchdog.join(5)
    self.assertEqual(self.fired, [])
    pass

  pass


class Test_watchdog_handle(unittest.TestCase):

  def setUp(self):
    self.probe = FakeProbe(reachable=False)
    self.launcher = FakeLauncher()
    self.controller = DisplayController(fast_config(), probe=self.probe, launcher=self.launcher)
    pass

  def tearDown(self):
    self.controller.shutdown()
    pass

  def test_start_is_idempotent(self):
    self.assertTrue(self.controller.start_watchdog())
    self.assertFalse(self.controller.start_watchdog())
    self.assertFalse(self.controller.start_watchdog())
    self.assertEqual(self.controller.watchdog_activations, 1)
    active = [thread for thread in threading.enumerate()
              if isinstance(thread, Watchdog) and thread.is_active()]
    self.assertEqual(len(active), 1)
    pass

  def test_cancel_inactive_is_noop(self):
    self.assertFalse(self.controller.cancel_watchdog())
    self.assertFalse(self.controller.cancel_watchdog())
    self.assertFalse(self.controller.is_watchdog_active())
    pass

  def test_cancel_then_start_again(self):
    self.controller.start_watchdog()
    self.assertTrue(self.controller.cancel_watchdog())
    self.assertFalse(self.controller.is_watchdog_active())
    self.assertTrue(self.controller.start_watchdog())
    self.assertEqual(self.controller.watchdog_activations, 2)
    pass

  def test_cancelled_watchdog_leaves_browser_alone(self):
    session = self.launcher.launch(self.controller.config.fallback_url)
    self.controller._session = session
    self.controller.start_watchdog()
    self.controller.cancel_watchdog()
    self.probe.reachable = True
    # Give a leftover poll a chance to act.
    threading.Event().wait(0.1)
    self.assertFalse(session.terminated)
    session.exit()
    pass

  pass

if __name__ == '__main__':
  unittest.main()
