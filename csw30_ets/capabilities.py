"""
Access to the service description (csw:Capabilities) of the implementation
under test.
"""
import logging
from typing import List
from urllib.parse import urlparse

import requests
from lxml import etree

from csw30_ets import cat3
from csw30_ets.client import build_get_request, parse_xml, send
from csw30_ets.errors import CapabilitiesUnavailableError, EndpointNotFoundError, ExecutionError

logger = logging.getLogger(__name__)


def fetch_capabilities(session: requests.Session, url: str, timeout: float) -> etree._ElementTree:
    """
    Retrieve the complete service description of the implementation.

    A bare endpoint URL gets ``service=CSW&request=GetCapabilities&acceptVersions=3.0.0``
    appended; a URL that already carries a query string is used as given.

    Raises:
        CapabilitiesUnavailableError: If no csw:Capabilities document is obtained
    """
    params = {}
    if not urlparse(url).query:
        params = {
            cat3.SERVICE: cat3.SERVICE_TYPE_CODE,
            cat3.REQUEST: cat3.GET_CAPABILITIES,
            cat3.ACCEPT_VERSIONS: cat3.SPEC_VERSION,
        }

    try:
        request = build_get_request(url, params)
        response = send(session, request, timeout)
    except (ValueError, ExecutionError) as e:
        raise CapabilitiesUnavailableError(f"Could not retrieve capabilities from {url}: {e}") from e

    if response.status_code != 200:
        raise CapabilitiesUnavailableError(
            f"Capabilities request to {url} returned status {response.status_code}"
        )
    try:
        doc = parse_xml(response.content)
    except etree.XMLSyntaxError as e:
        raise CapabilitiesUnavailableError(f"Capabilities from {url} are not well-formed XML: {e}") from e

    root = doc.getroot()
    if root.tag != cat3.CAPABILITIES:
        raise CapabilitiesUnavailableError(f"Expected {cat3.CAPABILITIES} from {url}, got {root.tag}")

    logger.info("Service description obtained from %s (version %s)", url, root.get("version"))
    return doc


def get_operation_endpoint(capabilities, operation_name: str, method: str) -> str:
    """
    Find the endpoint advertised for an operation and HTTP method.

    Args:
        capabilities: Service description (element tree or root element)
        operation_name: Operation name, e.g. "GetCapabilities"
        method: HTTP method name, matched case-insensitively ("GET", "Post")

    Returns:
        The URI given by the xlink:href attribute of the DCP binding

    Raises:
        EndpointNotFoundError: If the operation or the method binding is absent
    """
    bindings = capabilities.xpath(
        "//ows20:OperationsMetadata/ows20:Operation[@name = $name]/ows20:DCP/ows20:HTTP/*",
        namespaces=cat3.NSMAP,
        name=operation_name,
    )
    for binding in bindings:
        if etree.QName(binding).localname.lower() != method.lower():
            continue
        href = binding.get(f"{{{cat3.XLINK}}}href", "").strip()
        if href:
            return href

    raise EndpointNotFoundError(operation_name, method.upper())


def operation_names(capabilities) -> List[str]:
    """List the names of all operations in ows:OperationsMetadata."""
    return capabilities.xpath(
        "//ows20:OperationsMetadata/ows20:Operation/@name", namespaces=cat3.NSMAP
    )


def supported_versions(capabilities) -> List[str]:
    """List the service type versions advertised in ows:ServiceIdentification."""
    return [
        v.strip()
        for v in capabilities.xpath(
            "//ows20:ServiceIdentification/ows20:ServiceTypeVersion/text()",
            namespaces=cat3.NSMAP,
        )
    ]
