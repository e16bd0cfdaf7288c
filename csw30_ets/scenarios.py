"""
GetCapabilities test scenarios.

This request implements the abstract getCapabilities operation defined in the
OGCWebService interface (OGC 06-121r9, Figure C.2). The KVP syntax must be
supported with the GET method.

Scenarios are kept in an ordered registry. Each one receives a
:class:`ScenarioContext`, issues exactly one request and returns the list of
failed checks; :func:`execute` turns that into a :class:`ScenarioResult`.

Sources:
- OGC 06-121r9, 7: GetCapabilities operation
- OGC 12-176r6, 7.1: GetCapabilities operation
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import requests
from lxml import etree, isoschematron

from csw30_ets import cat3
from csw30_ets.assertions import (
    AssertionFailure,
    check_exception_report,
    check_media_type,
    check_qualified_name,
    check_schema_valid,
    check_schematron_valid,
    check_status,
    raise_for_failures,
)
from csw30_ets.client import build_get_request, parse_entity, send
from csw30_ets.errors import ExecutionError
from csw30_ets.validation import validate_schema, validate_schematron

logger = logging.getLogger(__name__)

PASSED = "passed"
FAILED = "failed"
ERROR = "error"


@dataclass(frozen=True)
class ScenarioContext:
    """Everything a scenario needs; shared read-only across scenarios."""
    session: requests.Session
    endpoint: str
    schema: etree.XMLSchema
    rules: isoschematron.Schematron
    timeout: float = 30.0

    def get(self, query_params: Dict[str, str], accept: str = cat3.APPLICATION_XML) -> requests.Response:
        request = build_get_request(self.endpoint, query_params, accept)
        return send(self.session, request, self.timeout)


@dataclass(frozen=True)
class Scenario:
    name: str
    requirements: Tuple[str, ...]
    run: Callable[[ScenarioContext], List[AssertionFailure]]


@dataclass
class ScenarioResult:
    name: str
    requirements: Tuple[str, ...]
    status: str
    failures: List[AssertionFailure] = field(default_factory=list)
    error: Optional[ExecutionError] = None

    @property
    def passed(self) -> bool:
        return self.status == PASSED

    def raise_for_result(self) -> None:
        """Re-raise an execution error, or raise AssertionError for failed checks."""
        if self.error is not None:
            raise self.error
        raise_for_failures(self.failures, self.name)


SCENARIOS: Dict[str, Scenario] = {}


def scenario(*requirements: str):
    """Register a scenario function under its own name."""
    def decorator(func):
        SCENARIOS[func.__name__] = Scenario(func.__name__, requirements, func)
        return func
    return decorator


def execute(item: Scenario, context: ScenarioContext) -> ScenarioResult:
    """Run one scenario, keeping execution errors apart from failed checks."""
    logger.info("Running %s (requirements %s)", item.name, ", ".join(item.requirements))
    try:
        failures = item.run(context)
    except ExecutionError as e:
        logger.error("%s: execution error: %s", item.name, e)
        return ScenarioResult(item.name, item.requirements, ERROR, error=e)

    status = FAILED if failures else PASSED
    for failure in failures:
        logger.warning("%s: %s", item.name, failure.message)
    logger.info("%s: %s", item.name, status)
    return ScenarioResult(item.name, item.requirements, status, failures)


def execute_all(context: ScenarioContext, names=None) -> List[ScenarioResult]:
    """Run the registered scenarios in order, optionally restricted to some names."""
    if names:
        unknown = set(names) - set(SCENARIOS)
        if unknown:
            raise KeyError(f"Unknown scenario(s): {', '.join(sorted(unknown))}")
    return [execute(s, context) for s in SCENARIOS.values() if not names or s.name in names]


# ============================================================================
#  Scenarios
# ============================================================================

def _default_params() -> Dict[str, str]:
    return {
        cat3.REQUEST: cat3.GET_CAPABILITIES,
        cat3.SERVICE: cat3.SERVICE_TYPE_CODE,
        cat3.ACCEPT_VERSIONS: cat3.SPEC_VERSION,
    }


@scenario("043", "045")
def get_full_capabilities_accept_version_3(context: ScenarioContext) -> List[AssertionFailure]:
    """
    A complete capabilities document is schema-valid and Schematron-valid.

    All implementations must support the GET method for a GetCapabilities
    request. The Accept header expresses a preference for application/xml.

    See OGC 06-121r9, 7.2.1: GetCapabilities request parameters.
    """
    response = context.get(_default_params())
    failures = check_status(response, 200)
    if failures:
        return failures
    failures.extend(check_media_type(response, cat3.APPLICATION_XML))

    doc = parse_entity(response)
    failures.extend(check_qualified_name(doc, cat3.CAPABILITIES))
    failures.extend(check_schema_valid(validate_schema(doc, context.schema)))
    failures.extend(check_schematron_valid(validate_schematron(doc, context.rules)))
    return failures


@scenario("011")
def get_capabilities_with_mixed_case_param_names(context: ScenarioContext) -> List[AssertionFailure]:
    """
    Query parameter names are handled in a case-insensitive manner.

    The parameter names are all presented in mixed case; a complete
    capabilities document is expected in response.

    See OGC 12-176r6, 6.5.4: KVP encoding rules.
    """
    response = context.get({
        "Request": cat3.GET_CAPABILITIES,
        "SERVICE": cat3.SERVICE_TYPE_CODE,
        "acceptversions": cat3.SPEC_VERSION,
    })
    failures = check_status(response, 200)
    if failures:
        return failures
    return check_qualified_name(parse_entity(response), cat3.CAPABILITIES)


@scenario("012")
def get_capabilities_with_invalid_param_value(context: ScenarioContext) -> List[AssertionFailure]:
    """
    Query parameter values are handled in a case-sensitive manner.

    The request specifies request=getCapabilities; an exception report with
    code InvalidParameterValue and status 400 is expected.

    See OGC 12-176r6, 6.5.4: KVP encoding rules; OGC 06-121r9, Table 28.
    """
    params = _default_params()
    params[cat3.REQUEST] = "getCapabilities"
    response = context.get(params)
    return check_exception_report(response, cat3.INVALID_PARAM_VAL, cat3.REQUEST)


@scenario("010")
def get_capabilities_is_missing_service_param(context: ScenarioContext) -> List[AssertionFailure]:
    """
    A request without the required service parameter yields MissingParameterValue.

    See OGC 12-176r6, Table 5: KVP encoding of common operation request parameters.
    """
    params = _default_params()
    del params[cat3.SERVICE]
    response = context.get(params)
    return check_exception_report(response, cat3.MISSING_PARAM_VAL, cat3.SERVICE)


@scenario("036", "037", "042")
def get_capabilities_with_unsupported_version(context: ScenarioContext) -> List[AssertionFailure]:
    """
    A request for an unsupported version yields VersionNegotiationFailed.

    The status code must be 400 and the document element must be
    ows20:ExceptionReport.

    See OGC 06-121r9, 7.3.2: Version negotiation.
    """
    params = _default_params()
    params[cat3.ACCEPT_VERSIONS] = "9999.12.31"
    response = context.get(params)
    return check_exception_report(response, cat3.VER_NEGOTIATION_FAILED, cat3.ACCEPT_VERSIONS)
