import os
import shutil
import socket
import tempfile
import unittest
import urllib.request

from aiohttp.test_utils import AioHTTPTestCase

from kiosk_supervisor.http.fallback_server import FallbackServer, make_app
from kiosk_supervisor.version import KIOSK_VERSION


class Test_fallback_page(AioHTTPTestCase):

  async def get_application(self):
    return make_app(status_provider=lambda: {"state": "ShowingFallback", "launches": 2})

  async def test_index(self):
    for path in ["/", "/index.html"]:
      resp = await self.client.get(path)
      self.assertEqual(resp.status, 200)
      text = await resp.text()
      self.assertIn("Kiosk System", text)
      pass
    pass

  async def test_status(self):
    resp = await self.client.get("/status.json")
    self.assertEqual(resp.status, 200)
    self.assertEqual(await resp.json(), {"state": "ShowingFallback", "launches": 2})
    pass

  async def test_version(self):
    resp = await self.client.get("/version.json")
    self.assertEqual(await resp.json(), {"version": KIOSK_VERSION})
    pass

  pass


class Test_fallback_root(AioHTTPTestCase):

  async def get_application(self):
    self.test_dir = tempfile.mkdtemp()
    with open(os.path.join(self.test_dir, "index.html"), "w") as index:
      index.write("<html><body>Custom fallback</body></html>")
      pass
    return make_app(root_dir=self.test_dir)

  def tearDown(self):
    super().tearDown()
    shutil.rmtree(self.test_dir)
    pass

  async def test_index_from_root(self):
    resp = await self.client.get("/")
    self.assertEqual(resp.status, 200)
    self.assertIn("Custom fallback", await resp.text())
    pass

  async def test_status_standalone(self):
    resp = await self.client.get("/status.json")
    self.assertEqual(await resp.json(), {})
    pass

  pass


class Test_fallback_server_thread(unittest.TestCase):

  def test_serve_and_stop(self):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
      sock.bind(("127.0.0.1", 0))
      port = sock.getsockname()[1]
      pass
    server = FallbackServer("127.0.0.1", port, status_provider=lambda: {"state": "Idle"})
    server.start()
    self.assertTrue(server.ready.wait(5))
    self.assertIsNone(server.error)
    with urllib.request.urlopen("http://127.0.0.1:%d/status.json" % port, timeout=5) as res:
      self.assertEqual(res.read(), b'{"state": "Idle"}')
      pass
    server.stop()
    server.join(5)
    self.assertFalse(server.is_alive())
    pass

  def test_port_in_use(self):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
      sock.bind(("127.0.0.1", 0))
      sock.listen(1)
      server = FallbackServer("127.0.0.1", sock.getsockname()[1])
      server.start()
      server.join(5)
      pass
    self.assertFalse(server.is_alive())
    self.assertIsInstance(server.error, OSError)
    pass

  pass

if __name__ == '__main__':
  unittest.main()
