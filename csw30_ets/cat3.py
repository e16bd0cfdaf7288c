"""
Constants for CSW 3.0: namespaces, KVP parameter names and OGC exception codes.

Sources:
- OGC 12-176r6, Table 5: KVP encoding of common operation request parameters
- OGC 06-121r9, Table 28: Standard exception codes and meanings
"""

# ============================================================================
#  Namespaces
# ============================================================================

CSW = "http://www.opengis.net/cat/csw/3.0"
OWS = "http://www.opengis.net/ows/2.0"
XLINK = "http://www.w3.org/1999/xlink"
FES = "http://www.opengis.net/fes/2.0"
SVRL = "http://purl.oclc.org/dsdl/svrl"

NSMAP = {
    "csw30": CSW,
    "ows20": OWS,
    "xlink": XLINK,
    "fes": FES,
    "svrl": SVRL,
}

# ============================================================================
#  Service and request parameters
# ============================================================================

SERVICE_TYPE_CODE = "CSW"
SPEC_VERSION = "3.0.0"

GET_CAPABILITIES = "GetCapabilities"
GET_RECORD_BY_ID = "GetRecordById"

REQUEST = "request"
SERVICE = "service"
ACCEPT_VERSIONS = "acceptVersions"

# ============================================================================
#  OGC exception codes
# ============================================================================

INVALID_PARAM_VAL = "InvalidParameterValue"
MISSING_PARAM_VAL = "MissingParameterValue"
VER_NEGOTIATION_FAILED = "VersionNegotiationFailed"

# ============================================================================
#  Media types and qualified names
# ============================================================================

APPLICATION_XML = "application/xml"

CAPABILITIES = f"{{{CSW}}}Capabilities"
EXCEPTION_REPORT = f"{{{OWS}}}ExceptionReport"

DEFAULT_SCHEMA_LOCATION = "http://schemas.opengis.net/cat/csw/3.0/cswAll.xsd"
CAPABILITIES_RULES = "csw-capabilities-3.0.sch"
