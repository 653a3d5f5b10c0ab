"""
Shared HTTP client for upstream weather providers.

Provides a pre-configured ``requests.Session`` with a default timeout and a
project User-Agent. The upstream session does not retry on its own: the
archive adapter owns the single rate-limit retry, and every other failure
surfaces to the caller.

Usage::

    from sap_flow.services.http import session

    resp = session.get("https://api.example.com/v1/data")
    resp.raise_for_status()
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

#: No automatic retries; failures propagate to the adapter.
NO_RETRY = Retry(total=0, raise_on_status=False)

DEFAULT_TIMEOUT = 30  # seconds

USER_AGENT = "sap-flow/0.1"


def create_session(timeout: float = DEFAULT_TIMEOUT) -> requests.Session:
    """Build a non-retrying ``requests.Session`` with a default ``timeout``."""
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=NO_RETRY)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT

    # Inject a default timeout so callers don't need to pass ``timeout=``.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


#: Module-level session; import and use directly.
session: requests.Session = create_session()
