"""
Error taxonomy for the NEST API.

Every error carries the HTTP status it is surfaced with. Route handlers let
these propagate; the exception handlers in main.py turn them into the
``{"success": false, "message": ...}`` envelope.
"""


class HubError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(HubError):
    """Missing or malformed input."""
    status_code = 400
    default_message = "Invalid request"


class NotFound(HubError):
    status_code = 404
    default_message = "Not found."


class UserNotFound(NotFound):
    default_message = "User not found."


class PostNotFound(NotFound):
    default_message = "Post not found."


class CommentNotFound(NotFound):
    default_message = "Comment not found."


class ReplyNotFound(NotFound):
    default_message = "Reply not found."


class OpportunityNotFound(NotFound):
    default_message = "Opportunity not found."


class Conflict(HubError):
    status_code = 409
    default_message = "Conflict"


class AlreadyVoted(Conflict):
    default_message = "Voter has already voted."


class Unavailable(HubError):
    """Store or downstream collaborator failure."""
    status_code = 503
    default_message = "Service unavailable"


class ConcurrentModification(Unavailable):
    default_message = "The document was modified concurrently; retry the request."
