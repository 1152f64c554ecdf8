import http.client
import urllib.error
import urllib.request
from collections import namedtuple

from ..lib import get_kiosk_logger

ServiceEndpoint = namedtuple("ServiceEndpoint", ["name", "url"])


def endpoint_url(endpoint):
  if isinstance(endpoint, ServiceEndpoint):
    return endpoint.url
  return endpoint


class NoRedirectHandler(urllib.request.HTTPRedirectHandler):
  """Hands a 3xx back as HTTPError instead of following Location."""

  def redirect_request(self, req, fp, code, msg, headers, newurl):
    return None

  pass


class Probe(object):
  """HTTP liveness check.

  Any HTTP response counts as reachable, including 3xx and 5xx. Redirects
  are not followed, the service answering is all that matters. Connection
  refusal, timeout, DNS failure and malformed URLs count as unreachable.
  There is no retry here, callers decide when to ask again.
  """

  def __init__(self, logger=None):
    self.logger = logger if logger else get_kiosk_logger()
    self.opener = urllib.request.build_opener(NoRedirectHandler)
    pass

  def is_reachable(self, endpoint, timeout) -> bool:
    url = endpoint_url(endpoint)
    try:
      # Status line and headers are in once open returns.
      with self.opener.open(url, timeout=timeout):
        pass
      return True
    except urllib.error.HTTPError as exc:
      # The server answered.
      exc.close()
      return True
    except urllib.error.URLError as exc:
      self.logger.debug("Probe %s: %s", url, exc.reason)
      pass
    except (http.client.HTTPException, OSError, ValueError) as exc:
      self.logger.debug("Probe %s: %s", url, exc)
      pass
    return False

  pass
