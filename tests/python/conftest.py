import os
from typing import Optional
from urllib.parse import parse_qsl, urlparse

import pytest
import requests
from lxml import etree

from csw30_ets import cat3
from csw30_ets.capabilities import fetch_capabilities, get_operation_endpoint
from csw30_ets.client import create_session
from csw30_ets.config import Settings
from csw30_ets.scenarios import ScenarioContext
from csw30_ets.validation import load_schema, load_schematron

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")


# ============================================================================
#  Offline Helpers and Fixtures
# ============================================================================

def data_path(name: str) -> str:
    """Path of a file in tests/python/data."""
    return os.path.join(DATA_DIR, name)


def read_data(name: str) -> bytes:
    with open(data_path(name), "rb") as f:
        return f.read()


def make_response(status_code: int = 200, content: bytes = b"",
                  content_type: Optional[str] = "application/xml",
                  url: str = "http://csw.example.org/csw") -> requests.Response:
    """
    Build a requests.Response without any network traffic.

    Args:
        status_code: HTTP status code
        content: Response entity
        content_type: Value of the Content-Type header (omitted if None)
        url: Request URL recorded on the response
    """
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.url = url
    response.encoding = "utf-8"
    if content_type is not None:
        response.headers["Content-Type"] = content_type
    return response


class FakeSession(requests.Session):
    """
    A session that answers from a callable instead of the network.

    The callable receives the PreparedRequest and returns a Response, or
    raises a requests exception. Every request is recorded in ``sent``.
    """

    def __init__(self, handler):
        super().__init__()
        self.handler = handler
        self.sent = []

    def send(self, request, **kwargs):
        self.sent.append(request)
        return self.handler(request)


def exception_response(code: str, locator: str) -> requests.Response:
    """A 400 response carrying an OWS 2.0 exception report."""
    body = (
        '<ows20:ExceptionReport xmlns:ows20="http://www.opengis.net/ows/2.0" version="2.0.0">'
        f'<ows20:Exception exceptionCode="{code}" locator="{locator}"/>'
        "</ows20:ExceptionReport>"
    ).encode("utf-8")
    return make_response(400, body)


class SimulatedCatalogue:
    """
    A GetCapabilities handler for FakeSession behaving as OGC 12-176r6
    requires, with switches to break specific KVP rules.
    """

    def __init__(self, case_sensitive_names=False, lenient_values=False, ignore_versions=False):
        self.case_sensitive_names = case_sensitive_names
        self.lenient_values = lenient_values
        self.ignore_versions = ignore_versions
        self.capabilities = read_data("capabilities-valid.xml")

    def __call__(self, request):
        pairs = parse_qsl(urlparse(request.url).query)
        if self.case_sensitive_names:
            params = dict(pairs)
            versions = params.get("acceptVersions")
        else:
            params = {name.lower(): value for name, value in pairs}
            versions = params.get("acceptversions")
        op = params.get("request")
        service = params.get("service")

        if op is None:
            return exception_response(cat3.MISSING_PARAM_VAL, "request")
        if service is None:
            return exception_response(cat3.MISSING_PARAM_VAL, "service")
        if service != cat3.SERVICE_TYPE_CODE:
            return exception_response(cat3.INVALID_PARAM_VAL, "service")
        if op != cat3.GET_CAPABILITIES and not (self.lenient_values and op.lower() == "getcapabilities"):
            return exception_response(cat3.INVALID_PARAM_VAL, "request")
        if versions and not self.ignore_versions and cat3.SPEC_VERSION not in versions.split(","):
            return exception_response(cat3.VER_NEGOTIATION_FAILED, "acceptVersions")
        return make_response(200, self.capabilities, content_type="application/xml; charset=UTF-8")


@pytest.fixture(scope="session")
def valid_capabilities_bytes() -> bytes:
    return read_data("capabilities-valid.xml")


@pytest.fixture
def valid_capabilities(valid_capabilities_bytes):
    """A fresh csw30:Capabilities tree per test, so tests may modify it."""
    return etree.fromstring(valid_capabilities_bytes).getroottree()


@pytest.fixture(scope="session")
def lax_schema() -> etree.XMLSchema:
    """Outline schema for csw30:Capabilities that does not need the network."""
    return etree.XMLSchema(etree.parse(data_path("capabilities-lax.xsd")))


@pytest.fixture(scope="session")
def capabilities_rules():
    return load_schematron(cat3.CAPABILITIES_RULES)


# ============================================================================
#  Live Implementation Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def suite_settings() -> Settings:
    """
    Settings for the implementation under test.

    Priority:
    1. CSW30_* environment variables
    2. Built-in defaults (no implementation: live tests are skipped)
    """
    return Settings.from_env()


@pytest.fixture(scope="session")
def csw_iut(suite_settings: Settings) -> str:
    if not suite_settings.iut:
        pytest.skip("CSW30_IUT is not set; skipping tests against a live implementation")
    return suite_settings.iut


@pytest.fixture(scope="session")
def csw_session(suite_settings: Settings):
    session = create_session(suite_settings.bearer_token)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def csw_capabilities(csw_session, csw_iut, suite_settings):
    """Service description, fetched once per session. Failure errors every dependent test."""
    return fetch_capabilities(csw_session, csw_iut, suite_settings.timeout)


@pytest.fixture(scope="session")
def csw_schema(csw_session, suite_settings) -> etree.XMLSchema:
    return load_schema(suite_settings.schema_location, csw_session, suite_settings.timeout)


@pytest.fixture(scope="module")
def get_capabilities_endpoint(csw_capabilities) -> str:
    """GET endpoint for GetCapabilities, resolved once per test module."""
    return get_operation_endpoint(csw_capabilities, cat3.GET_CAPABILITIES, "GET")


@pytest.fixture(scope="module")
def scenario_context(csw_session, get_capabilities_endpoint, csw_schema, capabilities_rules, suite_settings):
    return ScenarioContext(
        session=csw_session,
        endpoint=get_capabilities_endpoint,
        schema=csw_schema,
        rules=capabilities_rules,
        timeout=suite_settings.timeout,
    )


# ============================================================================
#  Pytest Configuration
# ============================================================================

def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - pytest hook
    """Register markers for the suite."""
    config.addinivalue_line("markers", "unit: Offline tests of the suite's own checks")
    config.addinivalue_line("markers", "integration: Tests against a live CSW 3.0 implementation")
    config.addinivalue_line("markers", "requires_iut: Needs CSW30_IUT to point at an implementation")
    config.addinivalue_line("markers", "csw: Tests for CSW (Catalogue Service for the Web) functionality")
    config.addinivalue_line("markers", "read_only: Tests that only read data (safe for parallel execution)")


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Mark tests that talk to the implementation under test."""
    for item in items:
        if "csw_iut" in item.fixturenames or "scenario_context" in item.fixturenames:
            item.add_marker(pytest.mark.requires_iut)
