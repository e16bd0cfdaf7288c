"""
XML Schema and ISO Schematron validation.

Both validators report every problem they find, not only the first, so a
single run lists all defects of a document.
"""
import logging
import os
import threading
from dataclasses import dataclass
from importlib import resources
from typing import Optional, Tuple

import requests
from lxml import etree, isoschematron

from csw30_ets import cat3

logger = logging.getLogger(__name__)

# Compiled validators keep the result of their last run on the object itself
_schema_lock = threading.Lock()
_schematron_lock = threading.Lock()


@dataclass(frozen=True)
class Violation:
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    rule_id: Optional[str] = None
    location: Optional[str] = None

    def __str__(self):
        if self.rule_id or self.location:
            return f"[{self.rule_id or '-'}] {self.message} (at {self.location or '?'})"
        if self.line is not None:
            return f"line {self.line}, column {self.column}: {self.message}"
        return self.message


@dataclass(frozen=True)
class ValidationOutcome:
    violations: Tuple[Violation, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.violations

    def __bool__(self):
        return self.valid

    @property
    def rule_ids(self) -> Tuple[str, ...]:
        return tuple(v.rule_id for v in self.violations if v.rule_id)


# ============================================================================
#  XML Schema
# ============================================================================

class _SessionResolver(etree.Resolver):
    """Fetch http(s) schema components through a requests session."""

    def __init__(self, session: requests.Session, timeout: float):
        super().__init__()
        self.session = session
        self.timeout = timeout
        self._cache = {}

    def resolve(self, system_url, public_id, context):
        if not system_url or not system_url.startswith(("http://", "https://")):
            return None
        content = self._cache.get(system_url)
        if content is None:
            logger.debug("Fetching schema component %s", system_url)
            response = self.session.get(system_url, timeout=self.timeout)
            response.raise_for_status()
            content = self._cache[system_url] = response.content
        return self.resolve_string(content, context, base_url=system_url)


def load_schema(location: str, session: Optional[requests.Session] = None, timeout: float = 30.0) -> etree.XMLSchema:
    """
    Compile an XML Schema from a URL or a file path.

    Remote components (the schema itself and everything it imports or
    includes) are retrieved with the given session, which follows redirects.

    Raises:
        lxml.etree.XMLSchemaParseError: If the schema cannot be compiled
    """
    session = session or requests.Session()
    parser = etree.XMLParser(resolve_entities=False)
    parser.resolvers.add(_SessionResolver(session, timeout))

    logger.info("Compiling XML Schema from %s", location)
    if location.startswith(("http://", "https://")):
        response = session.get(location, timeout=timeout)
        response.raise_for_status()
        doc = etree.fromstring(response.content, parser, base_url=location).getroottree()
    else:
        doc = etree.parse(location, parser)
    return etree.XMLSchema(doc)


def validate_schema(document, schema: etree.XMLSchema) -> ValidationOutcome:
    """Validate a document against a compiled XML Schema."""
    with _schema_lock:
        schema.validate(document)
        violations = tuple(
            Violation(message=entry.message, line=entry.line, column=entry.column)
            for entry in schema.error_log
        )
    logger.info("XML Schema validation: %d error(s)", len(violations))
    return ValidationOutcome(violations)


# ============================================================================
#  Schematron
# ============================================================================

def load_schematron(rules: str) -> isoschematron.Schematron:
    """
    Compile an ISO Schematron rule set.

    Args:
        rules: A file path, or the file name of a rule set bundled in csw30_ets/sch

    Raises:
        lxml.etree.SchematronParseError: If the rule set cannot be compiled
    """
    if os.path.exists(rules):
        doc = etree.parse(rules)
    else:
        bundled = resources.files("csw30_ets").joinpath("sch").joinpath(rules)
        with bundled.open("rb") as f:
            doc = etree.parse(f)
    return isoschematron.Schematron(doc, store_report=True)


def validate_schematron(document, rules: isoschematron.Schematron) -> ValidationOutcome:
    """
    Run a compiled Schematron rule set against a document.

    Every svrl:failed-assert and svrl:successful-report in the validation
    report becomes a violation. The rule id is the id of the assert/report,
    falling back to the id of the rule that fired it.
    """
    with _schematron_lock:
        rules.validate(document)
        report = rules.validation_report

    violations = []
    for node in report.xpath("//svrl:failed-assert | //svrl:successful-report", namespaces=cat3.NSMAP):
        text = " ".join("".join(node.xpath("svrl:text//text()", namespaces=cat3.NSMAP)).split())
        rule_id = node.get("id")
        if not rule_id:
            fired = node.xpath("preceding-sibling::svrl:fired-rule[1]/@id", namespaces=cat3.NSMAP)
            rule_id = fired[0] if fired else None
        violations.append(Violation(
            message=text or node.get("test", ""),
            rule_id=rule_id,
            location=node.get("location"),
        ))

    logger.info("Schematron validation: %d violation(s)", len(violations))
    return ValidationOutcome(tuple(violations))
