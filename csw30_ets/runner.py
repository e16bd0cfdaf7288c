#!/usr/bin/env python3
"""
Run the GetCapabilities scenarios against a CSW 3.0 implementation.

Usage:
  csw30-ets --iut URL [--schema LOCATION] [--timeout SECONDS] [--scenario NAME ...] [-v]

Exit status: 0 when every scenario passed, 1 when any failed or could not
be executed, 2 when the suite prerequisites could not be met.
"""
import argparse
import logging
import sys
from typing import List, Optional

import requests
from lxml import etree

from csw30_ets import cat3
from csw30_ets.capabilities import fetch_capabilities, get_operation_endpoint, supported_versions
from csw30_ets.client import create_session
from csw30_ets.config import Settings
from csw30_ets.errors import FixtureError
from csw30_ets.scenarios import ERROR, FAILED, SCENARIOS, ScenarioContext, ScenarioResult, execute_all
from csw30_ets.validation import load_schema, load_schematron

logger = logging.getLogger(__name__)


def prepare_context(settings: Settings, session: Optional[requests.Session] = None) -> ScenarioContext:
    """
    Fetch the service description, resolve the GetCapabilities GET endpoint
    and compile the validators.

    Raises:
        FixtureError: If the capabilities or the endpoint are not available
    """
    if not settings.iut:
        raise FixtureError("No implementation under test configured (set CSW30_IUT or pass --iut)")
    session = session or create_session(settings.bearer_token)

    capabilities = fetch_capabilities(session, settings.iut, settings.timeout)
    logger.info("Advertised versions: %s", ", ".join(supported_versions(capabilities)) or "none")
    endpoint = get_operation_endpoint(capabilities, cat3.GET_CAPABILITIES, "GET")
    logger.info("GetCapabilities GET endpoint: %s", endpoint)

    try:
        schema = load_schema(settings.schema_location, session, settings.timeout)
    except (requests.exceptions.RequestException, etree.XMLSchemaParseError) as e:
        raise FixtureError(f"Could not load XML Schema from {settings.schema_location}: {e}") from e

    return ScenarioContext(
        session=session,
        endpoint=endpoint,
        schema=schema,
        rules=load_schematron(cat3.CAPABILITIES_RULES),
        timeout=settings.timeout,
    )


def run_suite(settings: Settings, names=None, session: Optional[requests.Session] = None) -> List[ScenarioResult]:
    """Prepare the suite context and run the registered scenarios."""
    return execute_all(prepare_context(settings, session), names)


def print_report(results: List[ScenarioResult]) -> None:
    for result in results:
        mark = {FAILED: "✗", ERROR: "!"}.get(result.status, "✓")
        print(f"{mark} {result.name} [Requirements: {','.join(result.requirements)}] {result.status.upper()}")
        for failure in result.failures:
            print(f"    - {failure.message}")
        if result.error is not None:
            print(f"    ! {result.error}")

    passed = sum(1 for r in results if r.passed)
    print(f"\n{passed}/{len(results)} scenarios passed")


def main(argv=None) -> int:
    defaults = Settings.from_env()
    p = argparse.ArgumentParser(description="CSW 3.0 GetCapabilities conformance tests")
    p.add_argument("--iut", "-u", default=defaults.iut, help="capabilities URL of the implementation under test")
    p.add_argument("--schema", default=defaults.schema_location, help="location of the CSW 3.0 XML Schema")
    p.add_argument("--timeout", type=float, default=defaults.timeout, help="request timeout in seconds")
    p.add_argument("--scenario", "-s", action="append", choices=list(SCENARIOS), help="run only this scenario")
    p.add_argument("--verbose", "-v", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = Settings(
        iut=args.iut,
        bearer_token=defaults.bearer_token,
        timeout=args.timeout,
        schema_location=args.schema,
    )

    try:
        results = run_suite(settings, args.scenario)
    except FixtureError as e:
        print(f"✗ Suite prerequisites not met: {e}", file=sys.stderr)
        return 2

    print_report(results)
    return 0 if all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
