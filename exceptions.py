class CourtDataError(Exception):
    """Base error carrying a stable kind and the HTTP status it maps to."""

    kind = 'unknown'
    status_code = 500
    default_message = 'Failed to fetch case data. Please try again.'
    # Shown to API callers instead of the raw message when set
    public_message = None

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.public_message or self.message, 'kind': self.kind}


class ValidationError(CourtDataError):
    kind = 'validation_error'
    status_code = 400
    default_message = 'Missing required fields'


class CaseNotFound(CourtDataError):
    kind = 'not_found'
    status_code = 404
    default_message = 'Case not found'
    public_message = 'Case not found. Please verify the case number and try again.'


class SourceUnavailable(CourtDataError):
    kind = 'source_unavailable'
    status_code = 503
    default_message = 'Court website unavailable'
    public_message = 'Court website is currently unavailable. Please try again later.'


class StoreError(CourtDataError):
    kind = 'store_error'
    status_code = 500
    default_message = 'Database operation failed'
    public_message = 'Database operation failed'


class DocumentRetrievalError(CourtDataError):
    kind = 'document_error'
    status_code = 502
    default_message = 'Failed to download PDF'
