"""
Suite configuration.

Settings come from environment variables so the same values drive both the
pytest modules and the ``csw30-ets`` command:

- CSW30_IUT: capabilities URL of the implementation under test
- CSW30_BEARER: bearer token for protected services
- CSW30_TIMEOUT: request timeout in seconds (default 30)
- CSW30_SCHEMA: location of the CSW 3.0 XML Schema
"""
import os
from dataclasses import dataclass
from typing import Optional

from csw30_ets import cat3

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    iut: Optional[str] = None
    bearer_token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    schema_location: str = cat3.DEFAULT_SCHEMA_LOCATION

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        timeout = env.get("CSW30_TIMEOUT")
        try:
            timeout = float(timeout) if timeout else DEFAULT_TIMEOUT
        except ValueError as exc:
            raise ValueError(f"CSW30_TIMEOUT must be a number, got {timeout!r}") from exc
        return cls(
            iut=env.get("CSW30_IUT") or None,
            bearer_token=env.get("CSW30_BEARER") or None,
            timeout=timeout,
            schema_location=env.get("CSW30_SCHEMA") or cat3.DEFAULT_SCHEMA_LOCATION,
        )
