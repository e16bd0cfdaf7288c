"""
HTTP client helpers: building KVP GET requests, sending them once and
reading response entities as XML.
"""
import logging
from typing import Mapping, Optional
from urllib.parse import urlparse

import requests
from lxml import etree

from csw30_ets import cat3
from csw30_ets.errors import ExecutionError

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)


def create_session(bearer_token: Optional[str] = None) -> requests.Session:
    """Create a requests session with optional bearer authentication."""
    session = requests.Session()
    if bearer_token:
        session.headers.update({"Authorization": f"Bearer {bearer_token}"})
    return session


def build_get_request(
    base_uri: str,
    query_params: Mapping[str, str],
    accept: str = cat3.APPLICATION_XML,
) -> requests.PreparedRequest:
    """
    Build a GET request with a KVP query string.

    Parameter names are sent exactly as given; case handling is the server's
    business and is what several tests exercise.

    Args:
        base_uri: Endpoint URI, possibly carrying a query string already
        query_params: Ordered mapping of parameter names to values
        accept: Value of the Accept header

    Returns:
        The prepared request

    Raises:
        ValueError: If base_uri is not an absolute http(s) URI
    """
    parts = urlparse(base_uri)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Not an absolute http(s) URI: {base_uri!r}")

    request = requests.Request(
        "GET",
        base_uri,
        params=list(query_params.items()),
        headers={"Accept": accept},
    )
    return request.prepare()


def send(session: requests.Session, request: requests.PreparedRequest, timeout: float) -> requests.Response:
    """
    Send a prepared request once. No retries.

    Raises:
        ExecutionError: On any transport failure, including timeouts
    """
    merged = session.merge_environment_settings(request.url, {}, None, None, None)
    # Session headers (authorization) go on a copy; the built request stays as it was
    request = request.copy()
    for name, value in session.headers.items():
        request.headers.setdefault(name, value)

    logger.info("%s %s", request.method, request.url)
    try:
        response = session.send(request, timeout=timeout, **merged)
    except requests.exceptions.RequestException as e:
        raise ExecutionError(f"{request.method} {request.url} failed: {e}") from e

    logger.info("-> %s %s", response.status_code, response.headers.get("Content-Type", ""))
    logger.debug("Response entity:\n%s", response.text)
    return response


def parse_xml(content: bytes) -> etree._ElementTree:
    """Parse bytes as an XML document, raising lxml's XMLSyntaxError on failure."""
    return etree.fromstring(content, parser=_PARSER).getroottree()


def parse_entity(response: requests.Response) -> etree._ElementTree:
    """
    Read a response entity that is expected to be XML.

    Raises:
        ExecutionError: If the entity is not well-formed XML
    """
    try:
        return parse_xml(response.content)
    except etree.XMLSyntaxError as e:
        raise ExecutionError(f"Response entity from {response.url} is not well-formed XML: {e}") from e


def media_type(response: requests.Response) -> str:
    """Return the media type of a response, without parameters, in lower case."""
    content_type = response.headers.get("Content-Type", "")
    return content_type.split(";")[0].strip().lower()
