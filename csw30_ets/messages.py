"""Message templates used in assertion failures."""

UNEXPECTED_STATUS = "unexpected status: expected {expected}, got {actual}"
UNEXPECTED_MEDIA_TYPE = "unexpected media type: expected {expected}, got {actual!r}"
MALFORMED_ENTITY = "malformed entity: response is not well-formed XML ({detail})"
NOT_EVALUATED = "{check} not evaluated: response entity could not be parsed"
UNEXPECTED_ROOT = "wrong root element: expected {expected}, got {actual}"
EXCEPTION_CODE_NOT_FOUND = "exception code not found: no ows:Exception with exceptionCode={code!r} (found {found})"
LOCATOR_MISMATCH = "locator mismatch: expected {expected!r}, got {actual!r}"
NOT_SCHEMA_VALID = "{count} schema validation error(s) detected"
NOT_SCHEMATRON_VALID = "{count} Schematron rule violation(s) detected ({rules})"


def get(template: str, **kwargs) -> str:
    """Render a message template."""
    return template.format(**kwargs)
