"""
Executable test suite for the GetCapabilities operation of OGC Catalogue
Services 3.0 (OGC 12-176r6).

The suite can be run through pytest (``tests/python``) or with the
``csw30-ets`` command, both backed by the scenario registry in
:mod:`csw30_ets.scenarios`.
"""

__version__ = "0.3.0"
