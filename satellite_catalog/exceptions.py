"""
Exception hierarchy for the satellite catalog.

Record-level and endpoint-level errors are recovered where they occur and only
logged. Provider-level errors trigger the fallback chain, and
``SatelliteFetchError`` is what callers see once every provider is exhausted.
"""

from typing import Dict, List, Optional


class CatalogError(Exception):
    """Base exception for satellite catalog errors"""
    pass


class ConfigurationError(CatalogError):
    """Raised when the service configuration is unusable"""
    pass


class InvalidTLEError(CatalogError):
    """Raised when a TLE record is malformed and must be dropped"""

    def __init__(self, message: str, name: str = ""):
        super().__init__(message)
        self.name = name


class ChecksumError(InvalidTLEError):
    """Raised on checksum mismatch when strict checksum mode is enabled"""

    def __init__(self, message: str, name: str = "", line_number: int = 0):
        super().__init__(message, name)
        self.line_number = line_number


class UpstreamError(CatalogError):
    """Raised when a single upstream request fails after all retries"""

    def __init__(
        self,
        message: str,
        provider: str,
        url: str = "",
        status_code: Optional[int] = None,
        transient: bool = True,
    ):
        super().__init__(message)
        self.provider = provider
        self.url = url
        self.status_code = status_code
        self.transient = transient


class SourceUnavailableError(CatalogError):
    """Raised when a provider as a whole produced no data"""

    def __init__(
        self,
        message: str,
        provider: str,
        causes: Optional[List[Exception]] = None,
        transient: Optional[bool] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.causes = list(causes or [])
        self._transient = transient

    @property
    def transient(self) -> bool:
        if self._transient is not None:
            return self._transient
        if not self.causes:
            return False
        return all(getattr(cause, "transient", False) for cause in self.causes)


class SatelliteFetchError(CatalogError):
    """Raised when every provider in the fallback chain has failed"""

    code = "SATELLITE_FETCH_FAILED"

    def __init__(self, message: str, errors: Dict[str, Exception]):
        super().__init__(message)
        self.errors = dict(errors)

    @property
    def transient(self) -> bool:
        """True when every underlying failure looks retryable."""
        return all(getattr(error, "transient", False) for error in self.errors.values())

    def to_dict(self) -> Dict[str, object]:
        return {
            "code": self.code,
            "message": str(self),
            "transient": self.transient,
            "errors": {provider: str(error) for provider, error in self.errors.items()},
        }
