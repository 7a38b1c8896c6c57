"""Error taxonomy shared by the engine, the platform gateway and the routes."""


class PlayerFinderError(Exception):
    """Base class; carries the HTTP status and machine-readable code."""

    status_code = 500
    code = 'internal_error'
    retryable = False

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        payload = {
            'error': self.message,
            'code': self.code,
            'retryable': self.retryable,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class NotFoundError(PlayerFinderError):
    """Request or invitee row absent."""

    status_code = 404
    code = 'not_found'


class UnauthorizedError(PlayerFinderError):
    """Cancel/withdraw attempted by someone other than the invitee/organizer."""

    status_code = 403
    code = 'unauthorized'


class ConflictError(PlayerFinderError):
    """Illegal transition, full request, or a capability link that refused."""

    status_code = 409
    code = 'conflict'


class TransientError(PlayerFinderError):
    """Network failure or timeout talking to the platform. Safe to retry."""

    status_code = 503
    code = 'transient'
    retryable = True


class MalformedError(PlayerFinderError):
    """Unparseable payload: bad date arrays, unknown statuses, missing ids."""

    status_code = 422
    code = 'malformed'


class UpstreamPayloadError(MalformedError):
    """The platform answered with a body the engine cannot read."""

    status_code = 502
