"""Error taxonomy for document processing and chunk review."""


class ReviewError(Exception):
    """Base exception for all review workflow errors."""

    pass


class ValidationError(ReviewError):
    """Request is malformed or not allowed in the current state.

    Raised before any state is changed.
    """

    pass


class NotFoundError(ReviewError):
    """Unknown document or chunk id."""

    pass


class ExtractionFailure(ReviewError):
    """Extraction collaborator failed or returned a malformed payload.

    Only ever raised inside a background pipeline run.
    """

    pass


class UnsupportedInputError(ExtractionFailure):
    """Input could not be normalized into an image the extractor accepts."""

    pass
