"""
The MIT License (MIT)
Copyright (c) 2024 - Naoyuki Tai

Kiosk fallback page HTTP server

Serves the page the kiosk shows while the primary application is down, and
the supervisor status as json.
"""
import asyncio
import os
import threading

import aiohttp
import aiohttp.web
import aiohttp_cors

from ..lib import get_kiosk_logger
from ..version import KIOSK_VERSION

FALLBACK_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Kiosk System</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: 'Segoe UI', sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            display: flex;
            justify-content: center;
            align-items: center;
            color: white;
        }
        .container {
            text-align: center;
            padding: 40px;
            background: rgba(255,255,255,0.1);
            border-radius: 20px;
        }
        h1 { font-size: 3rem; margin-bottom: 20px; }
        .status {
            margin-top: 30px;
            padding: 15px 30px;
            background: rgba(76,175,80,0.3);
            border-radius: 10px;
            border: 2px solid #4CAF50;
        }
    </style>
</head>
<body>
    <div class="container">
        <h1>Kiosk System</h1>
        <p>Welcome to the system, the application is loading...</p>
        <div class="status">System Online</div>
    </div>
</body>
</html>
"""

routes = aiohttp.web.RouteTableDef()
root_dir_key = aiohttp.web.AppKey("root_dir", object)
status_provider_key = aiohttp.web.AppKey("status_provider", object)


@routes.get('/')
@routes.get('/index.html')
async def route_index(request):
  root_dir = request.app[root_dir_key]
  if root_dir:
    index_file = os.path.join(root_dir, "index.html")
    if os.path.isfile(index_file):
      return aiohttp.web.FileResponse(index_file)
    pass
  return aiohttp.web.Response(text=FALLBACK_PAGE, content_type="text/html")


@routes.get('/version.json')
async def route_version(request):
  """Get the version number of the supervisor"""
  return aiohttp.web.json_response({"version": KIOSK_VERSION})


@routes.get('/status.json')
async def route_status(request):
  """Supervisor state. Empty when the server runs standalone."""
  status_provider = request.app[status_provider_key]
  if status_provider is None:
    return aiohttp.web.json_response({})
  return aiohttp.web.json_response(status_provider())


def make_app(root_dir=None, status_provider=None):
  app = aiohttp.web.Application()
  app[root_dir_key] = root_dir
  app[status_provider_key] = status_provider
  app.add_routes(routes)

  # The primary app may want to know about the kiosk too.
  cors = aiohttp_cors.setup(app)
  for resource in list(app.router.resources()):
    cors.add(resource, {'*': aiohttp_cors.ResourceOptions(allow_credentials=True, expose_headers="*", allow_headers="*")})
    pass
  return app


class FallbackServer(threading.Thread):
  """Runs the fallback page server on its own event loop."""
  loop: asyncio.AbstractEventLoop

  def __init__(self, host, port, root_dir=None, status_provider=None):
    super().__init__(name="fallback-server", daemon=True)
    self.host = host
    self.port = port
    self.root_dir = root_dir
    self.status_provider = status_provider
    self.tlog = get_kiosk_logger()
    self.loop = None
    self.runner = None
    self.error = None
    self.ready = threading.Event()
    pass

  def run(self):
    self.loop = asyncio.new_event_loop()
    asyncio.set_event_loop(self.loop)
    app = make_app(root_dir=self.root_dir, status_provider=self.status_provider)
    self.runner = aiohttp.web.AppRunner(app, access_log=self.tlog)
    try:
      self.loop.run_until_complete(self.runner.setup())
      site = aiohttp.web.TCPSite(self.runner, self.host, self.port)
      self.loop.run_until_complete(site.start())
    except OSError as exc:
      self.error = exc
      self.tlog.error("Fallback server cannot listen on %s:%s: %s", self.host, self.port, exc)
      self.loop.run_until_complete(self.runner.cleanup())
      self.loop.close()
      self.ready.set()
      return

    self.tlog.info("Fallback server on http://%s:%s", self.host, self.port)
    self.ready.set()
    self.loop.run_forever()
    self.loop.run_until_complete(self.runner.cleanup())
    self.loop.close()
    pass

  def stop(self, timeout=5):
    if not self.ready.wait(timeout):
      return
    if self.loop is not None and not self.loop.is_closed():
      self.loop.call_soon_threadsafe(self.loop.stop)
      pass
    pass

  pass


def run_fallback_server(host, port, root_dir=None):
  """Runs standalone, in place of nginx."""
  tlog = get_kiosk_logger()
  tlog.info("Starting fallback server, use <Ctrl-C> to stop...")
  aiohttp.web.run_app(make_app(root_dir=root_dir), host=host, port=port, access_log=tlog)
  pass
