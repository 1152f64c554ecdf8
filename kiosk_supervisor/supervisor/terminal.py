"""
Terminal mode.

The live session boots into a full screen terminal instead of the browser,
showing the machine and application status. The same report backs the
`status` command.
"""
import collections
import re
import socket
import subprocess
import time

from ..lib import get_kiosk_logger
from ..lib.util import read_file
from .probe import Probe

PROC_UPTIME = "/proc/uptime"

# 2: enp3s0    inet 192.168.10.5/24 brd 192.168.10.255 scope global dynamic enp3s0 ...
ip_addr_re = re.compile(r'^\d+:\s+(\S+)\s+inet\s+(\S+)', re.MULTILINE)


def parse_ip_addr(text):
  """(interface, address) pairs from `ip -4 -o addr show`. Loopback is left out."""
  addresses = []
  if not text:
    return addresses
  for iface, address in ip_addr_re.findall(text):
    if address.startswith("127."):
      continue
    addresses.append((iface, address))
    pass
  return addresses


def network_addresses():
  try:
    ip = subprocess.run(["ip", "-4", "-o", "addr", "show"], stdout=subprocess.PIPE,
                        stderr=subprocess.DEVNULL, universal_newlines=True, timeout=5)
  except (OSError, subprocess.SubprocessError) as exc:
    get_kiosk_logger().debug("ip addr: %s", exc)
    return []
  return parse_ip_addr(ip.stdout)


def uptime_seconds(proc_uptime=PROC_UPTIME):
  text = read_file(proc_uptime)
  try:
    return float(text.split()[0])
  except (AttributeError, IndexError, ValueError):
    return None


def _plural(count, unit):
  return "%d %s%s" % (count, unit, "" if count == 1 else "s")


def format_uptime(seconds):
  """Like `uptime -p`."""
  if seconds is None:
    return "unknown"
  minutes = int(seconds) // 60
  days, minutes = divmod(minutes, 24 * 60)
  hours, minutes = divmod(minutes, 60)
  parts = []
  if days:
    parts.append(_plural(days, "day"))
    pass
  if hours:
    parts.append(_plural(hours, "hour"))
    pass
  if minutes or not parts:
    parts.append(_plural(minutes, "minute"))
    pass
  return "up " + ", ".join(parts)


def system_info():
  return {"hostname": socket.gethostname(),
          "uptime": uptime_seconds(),
          "addresses": network_addresses()}


def status_report(config, probe=None, system=None):
  """Lines describing the machine and what the kiosk would show right now."""
  if probe is None:
    probe = Probe()
    pass
  if system is None:
    system = system_info()
    pass
  lines = ["=== SYSTEM INFORMATION ===",
           "Hostname: %s" % system["hostname"],
           "Uptime: %s" % format_uptime(system["uptime"]),
           "",
           "=== NETWORK ==="]
  for iface, address in system["addresses"]:
    lines.append("%s: %s" % (iface, address))
    pass
  if not system["addresses"]:
    lines.append("No IPv4 address")
    pass
  lines.append("")

  lines.append("=== APPLICATION STATUS ===")
  for label, endpoint in (("App", config.primary), ("Fallback", config.fallback)):
    if probe.is_reachable(endpoint, config.probe_timeout):
      lines.append("[ok] %s: %s" % (label, endpoint.url))
    else:
      lines.append("[!!] %s: %s not responding" % (label, endpoint.url))
      pass
    pass
  lines.append("Kiosk mode: %s, display: %s" % (config.kiosk_mode, config.force_display))
  return lines


def tail_log(filename, count=50):
  """Last count lines of the log, or None when it cannot be read."""
  try:
    with open(filename, errors="replace") as log:
      return [line.rstrip("\n") for line in collections.deque(log, maxlen=count)]
  except OSError:
    return None


def wait_for_primary(config, probe=None, sleep=time.sleep):
  """Probes the primary up to terminal_wait_tries times. Returns True once it answers."""
  if probe is None:
    probe = Probe()
    pass
  for attempt in range(config.terminal_wait_tries):
    if probe.is_reachable(config.primary, config.probe_timeout):
      return True
    if attempt + 1 < config.terminal_wait_tries:
      sleep(config.terminal_wait_interval)
      pass
    pass
  return False


def run_terminal_mode(config, probe=None, sleep=time.sleep):
  tlog = get_kiosk_logger()
  tlog.info("=== Starting TERMINAL MODE ===")
  if wait_for_primary(config, probe=probe, sleep=sleep):
    tlog.info("Primary %s is ready.", config.primary_url)
  else:
    tlog.info("Primary %s did not come up, starting terminal anyway.", config.primary_url)
    pass

  args = config.get_terminal_command()
  try:
    terminal = subprocess.Popen(args, stdin=subprocess.DEVNULL)
  except OSError as exc:
    tlog.error("Cannot start terminal %s: %s", args[0], exc)
    return 1
  tlog.info("Terminal mode started, PID=%d", terminal.pid)
  return terminal.wait()
