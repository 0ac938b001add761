class ExporterError(Exception):
    """
    Base class for errors raised by the OpenOTP exporter.
    """


class ConfigError(ExporterError):
    """Configuration file missing, unreadable or invalid."""


class InputError(ExporterError):
    """Bad or missing probe input supplied by the scraper."""


class TransportError(ExporterError):
    """
    The batched JSON-RPC exchange with the target failed as a whole.

    Covers network and TLS failures, non-2xx HTTP responses, malformed batch
    bodies, a reply count other than the number of requests, and any reply
    carrying a JSON-RPC error member.
    """


class DecodeError(ExporterError):
    """
    A single RPC reply, or a single field within it, could not be converted.

    Args:
        kind (str): One of the MALFORMED_* constants.
        message (str): Human readable detail.
    """

    MALFORMED_INTEGER = "malformed_integer"
    MALFORMED_NUMBER = "malformed_number"
    MALFORMED_OBJECT = "malformed_object"
    MALFORMED_DATE = "malformed_date"

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self):
        return f"DecodeError(kind={self.kind}, message={self.message})"
