"""Exception hierarchy for the concierge."""


class ConciergeError(Exception):
    """Base class for all concierge failures."""


class ReplyGeneratorError(ConciergeError):
    """The chat-completion call failed or returned no usable reply."""


class NotificationError(ConciergeError):
    """The email relay rejected or could not deliver the appointment request."""


class ConciergeBusyError(ConciergeError):
    """A turn was submitted while the previous reply was still pending."""
