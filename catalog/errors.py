"""Error kinds raised by the catalog service and mapped to HTTP responses."""
from typing import Any, Dict, List, Optional


class CatalogError(Exception):
    """Base class for per-request failures."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail}


class InvalidInput(CatalogError):
    status_code = 400


class Unauthorized(CatalogError):
    status_code = 401


class NotFound(CatalogError):
    status_code = 404


class UpstreamFailure(CatalogError):
    """A remote store call failed."""

    status_code = 500

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        super().__init__(detail)
        self.cause = cause


class PartialWriteFailure(CatalogError):
    """Bulk insert failed and the per-row retry still left rows unsaved.

    `failures` holds one ``{"product": title, "error": message}`` per row.
    """

    status_code = 500

    def __init__(self, failures: List[Dict[str, str]], saved_count: int = 0):
        super().__init__(f"Failed to insert {len(failures)} product(s)")
        self.failures = failures
        self.saved_count = saved_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.detail,
            "saved": self.saved_count,
            "failures": self.failures,
        }
