"""
Check functions for responses and documents.

Every ``check_*`` function returns a list of :class:`AssertionFailure`
records (empty when the check holds) so callers can collect all problems of
an exchange before deciding on a verdict. The ``assert_*`` wrappers raise a
single AssertionError listing every failure, for direct use in pytest.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional

import requests
from lxml import etree

from csw30_ets import cat3, messages
from csw30_ets.client import media_type, parse_xml
from csw30_ets.validation import ValidationOutcome


@dataclass(frozen=True)
class AssertionFailure:
    check: str
    message: str

    def __str__(self):
        return self.message


def raise_for_failures(failures: Iterable[AssertionFailure], context: str = "") -> None:
    """Raise an AssertionError carrying every failure, if there are any."""
    failures = list(failures)
    if not failures:
        return
    lines = [f"{context}: {len(failures)} check(s) failed" if context else f"{len(failures)} check(s) failed"]
    lines.extend(f"  - {f.message}" for f in failures)
    raise AssertionError("\n".join(lines))


# ============================================================================
#  Response checks
# ============================================================================

def check_status(response: requests.Response, expected: int) -> List[AssertionFailure]:
    if response.status_code == expected:
        return []
    return [AssertionFailure(
        "status", messages.get(messages.UNEXPECTED_STATUS, expected=expected, actual=response.status_code)
    )]


def check_media_type(response: requests.Response, expected: str) -> List[AssertionFailure]:
    """The Content-Type header must name the expected media type (parameters ignored)."""
    actual = media_type(response)
    if actual == expected.lower():
        return []
    return [AssertionFailure(
        "media_type", messages.get(messages.UNEXPECTED_MEDIA_TYPE, expected=expected, actual=actual)
    )]


def check_qualified_name(node, qname: str) -> List[AssertionFailure]:
    """The element (or root of the tree) must have the given {namespace}local-name."""
    if isinstance(node, etree._ElementTree):
        node = node.getroot()
    if node.tag == qname:
        return []
    return [AssertionFailure(
        "root_element", messages.get(messages.UNEXPECTED_ROOT, expected=qname, actual=node.tag)
    )]


def check_exception_report(
    response: requests.Response,
    expected_code: str,
    expected_locator: Optional[str] = None,
) -> List[AssertionFailure]:
    """
    Verify that a response is an OGC exception report with the expected code.

    Checks:
    1. status code is 400 (Bad Request)
    2. the entity is well-formed XML
    3. the document element is ows20:ExceptionReport
    4. an ows20:Exception has @exceptionCode equal to expected_code and, if
       expected_locator is given, a matching @locator

    Every check is evaluated; checks 3 and 4 are reported as not evaluated
    when the entity cannot be parsed. Locators are compared case-insensitively
    since they name KVP parameters, whose names are case-insensitive.
    """
    failures = check_status(response, 400)

    try:
        doc = parse_xml(response.content)
    except etree.XMLSyntaxError as e:
        failures.append(AssertionFailure("entity", messages.get(messages.MALFORMED_ENTITY, detail=e)))
        for check in ("root_element", "exception_code"):
            failures.append(AssertionFailure(check, messages.get(messages.NOT_EVALUATED, check=check)))
        return failures

    failures.extend(check_qualified_name(doc, cat3.EXCEPTION_REPORT))

    exceptions = doc.xpath("//ows20:Exception", namespaces=cat3.NSMAP)
    matching = [e for e in exceptions if e.get("exceptionCode") == expected_code]
    if not matching:
        found = [e.get("exceptionCode") for e in exceptions]
        failures.append(AssertionFailure(
            "exception_code",
            messages.get(messages.EXCEPTION_CODE_NOT_FOUND, code=expected_code, found=found or "none"),
        ))
    elif expected_locator:
        locators = [e.get("locator") for e in matching]
        if not any(loc is not None and loc.strip().lower() == expected_locator.lower() for loc in locators):
            actual = locators[0] if len(locators) == 1 else locators
            failures.append(AssertionFailure(
                "locator", messages.get(messages.LOCATOR_MISMATCH, expected=expected_locator, actual=actual)
            ))
    return failures


def check_schema_valid(outcome: ValidationOutcome) -> List[AssertionFailure]:
    if outcome.valid:
        return []
    failures = [AssertionFailure(
        "schema", messages.get(messages.NOT_SCHEMA_VALID, count=len(outcome.violations))
    )]
    failures.extend(AssertionFailure("schema", str(v)) for v in outcome.violations)
    return failures


def check_schematron_valid(outcome: ValidationOutcome) -> List[AssertionFailure]:
    if outcome.valid:
        return []
    rules = ", ".join(sorted(set(outcome.rule_ids))) or "no rule ids"
    failures = [AssertionFailure(
        "schematron", messages.get(messages.NOT_SCHEMATRON_VALID, count=len(outcome.violations), rules=rules)
    )]
    failures.extend(AssertionFailure("schematron", str(v)) for v in outcome.violations)
    return failures


# ============================================================================
#  Raising wrappers
# ============================================================================

def assert_exception_report(response, expected_code, expected_locator=None):
    raise_for_failures(
        check_exception_report(response, expected_code, expected_locator),
        f"Expected exception report with code {expected_code}",
    )


def assert_qualified_name(node, qname):
    raise_for_failures(check_qualified_name(node, qname))


def assert_schema_valid(outcome):
    raise_for_failures(check_schema_valid(outcome), "Document is not schema-valid")


def assert_schematron_valid(outcome):
    raise_for_failures(check_schematron_valid(outcome), "Document is not Schematron-valid")
