import subprocess

from ..lib import get_kiosk_logger

# Blue background proves X is up before the browser shows anything.
DISPLAY_COMMANDS = [
  ["xsetroot", "-solid", "#224488"],
  ["xsetroot", "-cursor_name", "left_ptr"],
  ["xset", "s", "off"],
  ["xset", "s", "noblank"],
  ["xset", "-dpms"],
  ["xset", "s", "0", "0"],
]

CURSOR_HIDER = ["unclutter-xfixes", "--timeout", "0.5", "--jitter", "2", "--hide-on-touch"]


def prepare_display(commands=DISPLAY_COMMANDS, cursor_hider=CURSOR_HIDER):
  """Turns off screen blanking and hides the cursor. Missing tools are skipped.
  Returns the cursor hider process, if it started."""
  tlog = get_kiosk_logger()
  for args in commands:
    try:
      result = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.PIPE, stdin=subprocess.DEVNULL)
      if result.returncode != 0:
        tlog.info("'%s' failed with error code %d: %s", " ".join(args), result.returncode,
                  result.stderr.decode('iso-8859-1').strip())
        pass
      pass
    except OSError as exc:
      tlog.info("'%s' is not available: %s", args[0], exc)
      pass
    pass

  hider = None
  if cursor_hider:
    try:
      hider = subprocess.Popen(cursor_hider, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL,
                               stdin=subprocess.DEVNULL, start_new_session=True)
    except OSError as exc:
      tlog.info("'%s' is not available: %s", cursor_hider[0], exc)
      pass
    pass
  return hider
