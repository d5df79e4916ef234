"""
Shared HTTP plumbing for the compile, signing and node clients.
"""
import logging
import urllib.parse
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


def validate_url(url_name: str, url: str, allow_insecure: bool = False) -> str:
    """
    Check that a service URL is safe to talk to.

    Args:
        url_name: Name of the setting, used in the error message
        url: URL to validate
        allow_insecure: Accept plain http:// for non-local hosts

    Returns:
        The URL without a trailing slash

    Raises:
        ValueError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
    """
    parsed = urllib.parse.urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"{url_name} must be an absolute URL (got: {url!r})")
    host = parsed.hostname or ''
    is_local = host in ('localhost', '127.0.0.1')
    if parsed.scheme != 'https' and not is_local and not allow_insecure:
        raise ValueError(f"{url_name} must use https:// for security (got: {parsed.scheme}://)")
    return url.rstrip('/')


def build_session(retry_count: int = 3) -> requests.Session:
    """
    Create a session that retries GET requests on connection errors and 5xx responses.

    POSTs (compile, sign, broadcast) are sent once.

    Args:
        retry_count: Number of retries for HTTP requests

    Returns:
        Configured requests session
    """
    session = requests.Session()
    retries = Retry(
        total=retry_count,
        backoff_factor=0.5,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
        connect=retry_count,
        read=retry_count,
        other=retry_count
    )
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def summarize(payload: Any, limit: int = 120) -> str:
    """Shorten a payload for log lines and error messages"""
    text = str(payload)
    if len(text) > limit:
        return f"{text[:limit]}... [{len(text)} chars]"
    return text


def json_or_none(response: requests.Response) -> Optional[Dict[str, Any]]:
    """Parse a JSON body, warning on an unexpected Content-Type"""
    content_type = response.headers.get('Content-Type', '')
    if content_type and 'json' not in content_type:
        logger.warning(f"Unexpected Content-Type: {content_type} (expected application/json)")
    try:
        return response.json()
    except ValueError:
        return None
