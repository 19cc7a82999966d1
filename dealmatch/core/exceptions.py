"""
Domain exceptions for the swipe → match → chat pipeline.

Services raise these instead of HTTPException so they can be used outside a
request (WebSocket handlers, tests). The API layer renders any DealMatchError
through a single exception handler registered in ``dealmatch.main``.
"""


class DealMatchError(Exception):
    """Base exception for all domain errors."""

    status_code = 500
    code = "internal_error"
    retryable = False
    default_detail = "Unexpected error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# Conflicts -----------------------------------------------------------------

class DuplicateSwipeError(DealMatchError):
    """A decision for this (user, deal) pair is already recorded."""

    status_code = 409
    code = "duplicate_swipe"
    default_detail = "You have already swiped on this deal"

    def __init__(self, detail: str | None = None, existing=None):
        super().__init__(detail)
        # The stored Swipe row, when the caller looked it up
        self.existing = existing


class MessageConflictError(DealMatchError):
    """A message id was reused for a different sender or match."""

    status_code = 409
    code = "message_conflict"
    default_detail = "Message id already belongs to another message"


# Validation ----------------------------------------------------------------

class InvalidSwipeError(DealMatchError):
    status_code = 422
    code = "invalid_swipe"
    default_detail = "Direction must be left or right"


class InvalidMessageError(DealMatchError):
    status_code = 422
    code = "invalid_message"
    default_detail = "Message text is empty or too long"


class InvalidParticipantError(DealMatchError):
    """Sender or viewer is not one of the match's two users."""

    status_code = 403
    code = "not_a_participant"
    default_detail = "You are not a participant of this match"


# Not found -----------------------------------------------------------------

class DealNotFoundError(DealMatchError):
    status_code = 404
    code = "deal_not_found"
    default_detail = "Deal not found"


class MatchNotFoundError(DealMatchError):
    status_code = 404
    code = "match_not_found"
    default_detail = "Match not found"


# Transient -----------------------------------------------------------------

class StorageUnavailableError(DealMatchError):
    """Storage or realtime transport unreachable; safe to retry."""

    status_code = 503
    code = "storage_unavailable"
    retryable = True
    default_detail = "Service temporarily unavailable, please retry"


class CompatibilityLookupError(DealMatchError):
    """Compatibility could not be evaluated; treated as "not a match yet"."""

    code = "compatibility_unavailable"
    retryable = True
    default_detail = "Compatibility lookup failed"


# Realtime ------------------------------------------------------------------

class ChannelClosedError(DealMatchError):
    status_code = 410
    code = "channel_closed"
    default_detail = "Subscription is closed"
