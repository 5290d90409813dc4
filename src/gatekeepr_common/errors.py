from __future__ import annotations

from typing import Any


class GatekeeprError(Exception):
    """Base class for errors raised by the enforcement layer."""


class UpstreamUnavailable(GatekeeprError):
    """The rights provider or the raw-data source could not be used for one object."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RuleCatalogLoadError(GatekeeprError):
    """The rule source could not be read or parsed; the catalog keeps its last snapshot."""


def typed_error(code: str, message: str, *, details: dict | None = None, **extra: Any) -> dict:
    """
    Standard error envelope:
      {"error": {"code": code, "message": message, "details": {...}}, ...extra}
    """
    err: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        err["error"]["details"] = details
    if extra:
        err.update(extra)
    return err
