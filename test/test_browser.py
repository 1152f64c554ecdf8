import json
import os
import shutil
import subprocess
import tempfile
import unittest
from unittest import mock

from kiosk_supervisor.supervisor import BrowserLaunchError
from kiosk_supervisor.supervisor.browser import *
from kiosk_supervisor.supervisor.config import SupervisorConfig


class Test_profile(unittest.TestCase):

  def setUp(self):
    self.test_dir = tempfile.mkdtemp()
    self.profile_dir = os.path.join(self.test_dir, "google-chrome")
    pass

  def tearDown(self):
    shutil.rmtree(self.test_dir)
    pass

  def test_prepare_profile(self):
    prepare_profile(self.profile_dir)
    with open(os.path.join(self.profile_dir, "Default", "Preferences")) as prefs:
      preferences = json.load(prefs)
      pass
    self.assertFalse(preferences["browser"]["check_default_browser"])
    self.assertFalse(preferences["profile"]["password_manager_enabled"])
    self.assertTrue(os.path.exists(os.path.join(self.profile_dir, "First Run")))
    pass

  def test_prepare_profile_keeps_preferences(self):
    os.makedirs(os.path.join(self.profile_dir, "Default"))
    with open(os.path.join(self.profile_dir, "Default", "Preferences"), "w") as prefs:
      prefs.write('{"custom": true}')
      pass
    prepare_profile(self.profile_dir)
    with open(os.path.join(self.profile_dir, "Default", "Preferences")) as prefs:
      self.assertEqual(json.load(prefs), {"custom": True})
      pass
    pass

  def test_clear_singleton_locks(self):
    os.makedirs(self.profile_dir)
    os.symlink("kiosk-1234", os.path.join(self.profile_dir, "SingletonLock"))
    open(os.path.join(self.profile_dir, "SingletonCookie"), "w").close()
    os.makedirs(os.path.join(self.profile_dir, "SingletonSocket"))
    open(os.path.join(self.profile_dir, "Local State"), "w").close()

    removed = clear_singleton_locks(self.profile_dir)
    self.assertEqual(len(removed), 3)
    self.assertEqual(os.listdir(self.profile_dir), ["Local State"])
    self.assertEqual(clear_singleton_locks(self.profile_dir), [])
    pass

  pass


class Test_session(unittest.TestCase):

  def setUp(self):
    self.test_dir = tempfile.mkdtemp()
    self.log_file = os.path.join(self.test_dir, "chrome.log")
    pass

  def tearDown(self):
    shutil.rmtree(self.test_dir)
    pass

  def test_output_goes_to_log(self):
    session = BrowserSession(["sh", "-c", "echo hello; exit 3"], "http://127.0.0.1:8090", log_file=self.log_file)
    session.start()
    self.assertEqual(session.wait(), 3)
    self.assertFalse(session.is_running())
    with open(self.log_file) as log:
      self.assertEqual(log.read(), "hello\n")
      pass
    pass

  def test_terminate(self):
    session = BrowserSession(["sleep", "30"], "http://127.0.0.1:80")
    session.start()
    self.assertTrue(session.is_running())
    self.assertIsNotNone(session.pid)
    self.assertTrue(session.terminate(grace_period=2, retries=2))
    self.assertEqual(session.wait(), -15)
    # Terminating an exited session is fine.
    self.assertTrue(session.terminate())
    pass

  def test_missing_executable(self):
    session = BrowserSession(["kiosk-no-such-browser", "--kiosk"], "http://127.0.0.1:80", log_file=self.log_file)
    with self.assertRaises(BrowserLaunchError):
      session.start()
      pass
    pass

  def test_terminate_escalates_to_kill(self):
    session = BrowserSession(["chrome"], "http://127.0.0.1:80")
    process = mock.MagicMock()
    process.pid = 4321
    process.poll.return_value = None
    process.terminate.side_effect = PermissionError("Operation not permitted")
    process.wait.return_value = -9
    session.process = process

    self.assertTrue(session.terminate(grace_period=0.01, retries=3))
    self.assertEqual(process.terminate.call_count, 3)
    process.kill.assert_called_once_with()
    pass

  def test_terminate_gives_up(self):
    session = BrowserSession(["chrome"], "http://127.0.0.1:80")
    process = mock.MagicMock()
    process.pid = 4321
    process.poll.return_value = None
    process.wait.side_effect = subprocess.TimeoutExpired("chrome", 0.01)
    process.kill.side_effect = PermissionError("Operation not permitted")
    session.process = process

    self.assertFalse(session.terminate(grace_period=0.01, retries=2))
    self.assertEqual(process.terminate.call_count, 2)
    process.kill.assert_called_once_with()
    pass

  pass


class Test_launcher(unittest.TestCase):

  def setUp(self):
    self.test_dir = tempfile.mkdtemp()
    self.config = SupervisorConfig(browser="sh")
    self.config.profile_dir = os.path.join(self.test_dir, "profile")
    self.config.browser_log_file = os.path.join(self.test_dir, "chrome.log")
    pass

  def tearDown(self):
    shutil.rmtree(self.test_dir)
    pass

  def test_build_args(self):
    launcher = BrowserLauncher(SupervisorConfig())
    args = launcher.build_args("http://127.0.0.1:8090")
    self.assertEqual(args[0], "google-chrome-stable")
    self.assertIn("--kiosk", args)
    self.assertIn("--no-first-run", args)
    self.assertEqual(args[-1], "--app=http://127.0.0.1:8090")
    self.assertTrue(args[-2].startswith("--user-data-dir="))
    pass

  def test_launch_clears_locks(self):
    # sh -c exits right away and leaves the rest of the arguments alone.
    self.config.browser_flags = ["-c", "exit 0"]
    os.makedirs(self.config.profile_dir)
    open(os.path.join(self.config.profile_dir, "SingletonCookie"), "w").close()
    launcher = BrowserLauncher(self.config)
    session = launcher.launch("http://127.0.0.1:8090")
    self.assertEqual(session.url, "http://127.0.0.1:8090")
    self.assertEqual(session.wait(), 0)
    self.assertFalse(os.path.exists(os.path.join(self.config.profile_dir, "SingletonCookie")))
    self.assertTrue(os.path.exists(os.path.join(self.config.profile_dir, "First Run")))
    pass

  def test_launch_missing_browser(self):
    self.config.browser = "kiosk-no-such-browser"
    launcher = BrowserLauncher(self.config)
    with self.assertRaises(BrowserLaunchError):
      launcher.launch("http://127.0.0.1:8090")
      pass
    pass

  pass

if __name__ == '__main__':
  unittest.main()
