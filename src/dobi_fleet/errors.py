"""Error taxonomy shared by the store, engine, executor and HTTP layer."""

from __future__ import annotations


class FleetError(Exception):
    """Base class for every error surfaced to API callers."""

    status_code = 500


class ValidationError(FleetError):
    """Missing or malformed request fields. Nothing was mutated."""

    status_code = 400


class NotFoundError(FleetError):
    """The referenced charger id does not exist."""

    status_code = 404


class ExternalServiceError(FleetError):
    """Chain RPC, signing or webhook failure. Not retried."""

    status_code = 500


class PersistenceError(FleetError):
    """A ledger write failed; in-memory counters were left untouched."""

    status_code = 500
