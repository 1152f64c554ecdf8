"""
The MIT License (MIT) Copyright (c) 2024 - Naoyuki Tai

cli.py: kiosk supervisor command line interface
"""
import logging
import signal
import sys
import threading
import time
from argparse import ArgumentParser

from .const import const
from .http.fallback_server import FallbackServer, run_fallback_server
from .lib import get_kiosk_logger, setup_kiosk_logger
from .lib.util import default_log_filename
from .supervisor.config import load_config, write_conf_value, KIOSK_MODE_CONF, KIOSK_MODES, DISPLAY_MODES
from .supervisor.controller import DisplayController
from .supervisor.display import prepare_display
from .supervisor.terminal import run_terminal_mode, status_report, tail_log
from .version import KIOSK_VERSION


def make_parser():
  cli = ArgumentParser(prog="kiosk-supervisor", description='Kiosk display supervisor')
  cli.add_argument("--version", action="version", version=KIOSK_VERSION)
  cli.add_argument("--config", type=str, metavar="FILE", dest="config", default=KIOSK_MODE_CONF)
  cli.add_argument("--log-file", type=str, metavar="FILE", dest="log_file", default=None)
  cli.add_argument("--debug", dest="debug", action="store_true")
  cli.add_argument("--primary-url", type=str, metavar="URL", dest="primary_url", default=None)
  cli.add_argument("--fallback-url", type=str, metavar="URL", dest="fallback_url", default=None)
  cli.add_argument("--mode", choices=KIOSK_MODES, dest="kiosk_mode", default=None)
  cli.add_argument("--display", choices=DISPLAY_MODES, dest="force_display", default=None)
  cli.add_argument("--browser", type=str, metavar="EXE", dest="browser", default=None)
  cli.add_argument("--profile-dir", type=str, metavar="DIR", dest="profile_dir", default=None)
  # Serve the fallback page from here, in place of a web server.
  cli.add_argument("--serve-fallback", dest="serve_fallback", action="store_true", default=None)
  cli.add_argument("--fallback-root", type=str, metavar="DIR", dest="fallback_root", default=None)

  commands = cli.add_subparsers(dest="command")
  commands.add_parser("run", help="supervise the kiosk display (default)")
  status = commands.add_parser("status", help="print the application status")
  status.add_argument("--watch", dest="watch", action="store_true")
  status.add_argument("--interval", type=float, dest="interval", default=5.0)
  commands.add_parser("serve-fallback", help="serve the fallback page only")
  set_mode = commands.add_parser("set-mode", help="kiosk mode for the next start")
  set_mode.add_argument("new_value", choices=KIOSK_MODES, metavar="MODE")
  set_display = commands.add_parser("set-display", help="display mode for the next start")
  set_display.add_argument("new_value", choices=DISPLAY_MODES, metavar="DISPLAY")
  log = commands.add_parser("log", help="print the end of the supervisor log")
  log.add_argument("--lines", type=int, dest="lines", default=50)
  return cli


def _overrides(arguments):
  names = ["log_file", "primary_url", "fallback_url", "kiosk_mode", "force_display",
           "browser", "profile_dir", "serve_fallback", "fallback_root"]
  return {name: getattr(arguments, name) for name in names}


def run_supervisor(config):
  tlog = get_kiosk_logger()
  tlog.info("Kiosk mode: %s", config.kiosk_mode)
  if config.kiosk_mode == const.terminal:
    prepare_display(cursor_hider=None)
    return run_terminal_mode(config)

  cursor_hider = prepare_display()
  controller = DisplayController(config)

  fallback_server = None
  if config.serve_fallback:
    host, port = config.fallback_address()
    fallback_server = FallbackServer(host, port, root_dir=config.fallback_root,
                                     status_provider=controller.status)
    fallback_server.start()
    fallback_server.ready.wait(5)
    pass

  if not controller.probe.is_reachable(config.fallback, config.probe_timeout):
    tlog.warning("Fallback %s is not responding. Continuing anyway.", config.fallback_url)
    pass

  def handler_stop_signals(signum, frame):
    tlog.info("Signal %d received.", signum)
    controller.shutdown()
    pass

  signal.signal(signal.SIGINT, handler_stop_signals)
  signal.signal(signal.SIGTERM, handler_stop_signals)

  # Signal handlers run on the main thread, so the loop gets its own.
  display_thread = threading.Thread(target=controller.run, name="display-controller")
  display_thread.start()
  while display_thread.is_alive():
    display_thread.join(0.5)
    pass

  if fallback_server:
    fallback_server.stop()
    pass
  if cursor_hider:
    cursor_hider.terminate()
    pass
  return 0


def main(argv=None):
  arguments = make_parser().parse_args(argv)
  config = load_config(conf_file=arguments.config, overrides=_overrides(arguments))
  if config.log_file or arguments.debug:
    setup_kiosk_logger(get_kiosk_logger(),
                       log_level=logging.DEBUG if arguments.debug else None,
                       filename=config.log_file)
    pass

  command = arguments.command or "run"

  if command == "status":
    try:
      while True:
        lines = status_report(config)
        if arguments.watch:
          # clear screen
          sys.stdout.write("\033[2J\033[H")
          pass
        print("\n".join(lines))
        if not arguments.watch:
          return 0
        sys.stdout.flush()
        time.sleep(arguments.interval)
        pass
      pass
    except KeyboardInterrupt:
      return 0
    pass

  if command in ("set-mode", "set-display"):
    key = const.KIOSK_MODE if command == "set-mode" else const.KIOSK_DISPLAY
    try:
      changed = write_conf_value(arguments.config, key, arguments.new_value)
    except OSError as exc:
      sys.stderr.write("Cannot write %s: %s\n" % (arguments.config, exc))
      return 1
    if changed:
      print("%s=%s is set. It takes effect at the next start." % (key, arguments.new_value))
    else:
      print("%s is already %s." % (key, arguments.new_value))
      pass
    return 0

  if command == "log":
    filename = config.log_file or default_log_filename()
    lines = tail_log(filename, arguments.lines)
    if lines is None:
      sys.stderr.write("Cannot read %s\n" % filename)
      return 1
    print("\n".join(lines))
    return 0

  if command == "serve-fallback":
    host, port = config.fallback_address()
    run_fallback_server(host, port, root_dir=config.fallback_root)
    return 0

  return run_supervisor(config)


if __name__ == "__main__":
  sys.exit(main())
