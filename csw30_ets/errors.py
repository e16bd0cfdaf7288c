"""
Errors raised by the test suite.

Specification non-conformance is reported through ``AssertionError``; the
classes below cover everything that is *not* a verdict on the implementation:
fixture setup problems and execution (infrastructure) problems.
"""


class Csw30EtsError(Exception):
    """Base class for suite errors."""


class FixtureError(Csw30EtsError):
    """A prerequisite for a group of tests could not be satisfied."""


class CapabilitiesUnavailableError(FixtureError):
    """The service description of the implementation could not be obtained."""


class EndpointNotFoundError(FixtureError):
    """The service description advertises no endpoint for an operation/method pair."""

    def __init__(self, operation: str, method: str):
        self.operation = operation
        self.method = method
        super().__init__(f"No {method} endpoint advertised for {operation} operation")


class ExecutionError(Csw30EtsError):
    """
    The exchange with the implementation could not be completed or read.

    Raised for network failures, timeouts and response entities that are not
    well-formed XML where XML was expected.
    """
