"""
Thin requests wrapper shared by every outbound call.
Maps transport failures and non-2xx responses to UPSTREAM_SERVICE_ERROR.
"""

import logging
import requests

from vidscribe.core.error_codes import upstream_error

logger = logging.getLogger(__name__)


def new_session() -> requests.Session:
    """One session per pipeline run; never shared between runs."""
    return requests.Session()


def send(session, method: str, url: str, service: str, **kwargs) -> requests.Response:
    """
    Issue a request and return the response if it is 2xx.
    Raises PipelineError(UPSTREAM_SERVICE_ERROR) otherwise.
    """
    try:
        resp = session.request(method, url, **kwargs)
    except requests.exceptions.Timeout:
        raise upstream_error(service, None, message=f"{service} request timed out")
    except requests.exceptions.ConnectionError:
        raise upstream_error(service, None, message=f"Network error connecting to {service}")
    except requests.exceptions.RequestException as e:
        raise upstream_error(service, None, message=f"{service} request failed: {e}")

    if not 200 <= resp.status_code < 300:
        # Sanitize error message (never log request headers)
        body = resp.text[:300] if resp.text else ""
        logger.debug("%s returned %s: %s", service, resp.status_code, body)
        raise upstream_error(service, resp.status_code, body)

    return resp
