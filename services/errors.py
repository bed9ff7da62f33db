"""Exceptions raised by the outbound HTTP clients."""


class APIError(Exception):
    pass


class OcrServiceError(APIError):
    """OCR.space rejected the request or returned an error message."""
    pass


class VinDecodeError(APIError):
    """The VIN registry could not be reached or returned an unusable response."""
    pass
