class OfferEngineError(Exception):
    """Base class for errors raised by the offer engine."""


class ValidationError(OfferEngineError, ValueError):
    """Client input is malformed or out of range. Maps to HTTP 400."""


class UpstreamUnavailable(OfferEngineError):
    """The segment service could not be reached or answered badly."""
