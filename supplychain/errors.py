"""
Rejection taxonomy for transaction validation.

Every precondition failure raises exactly one of these. The dispatcher
turns the first one raised into a rejected ApplyResult.
"""


class ValidationError(Exception):
    """Raised when validation fails."""
    kind = 'ValidationError'

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def __repr__(self) -> str:
        return f"{self.kind}({self.reason!r})"


class MissingField(ValidationError):
    """A required input is absent or empty."""
    kind = 'MissingField'


class InvalidIdentity(ValidationError):
    """Malformed public key, or the signer does not hold the required role."""
    kind = 'InvalidIdentity'


class IdentityConflict(ValidationError):
    """The public key is already bound to another role."""
    kind = 'IdentityConflict'


class UnknownReference(ValidationError):
    """A referenced address does not exist or is of the wrong kind."""
    kind = 'UnknownReference'


class NotEnabled(ValidationError):
    """A referenced value is not in a required allow-list."""
    kind = 'NotEnabled'


class InvalidValue(ValidationError):
    """A value fails a domain specific check."""
    kind = 'InvalidValue'


class StateConflict(ValidationError):
    """The operation would break a uniqueness or exclusivity invariant."""
    kind = 'StateConflict'


class AuthorizationDenied(ValidationError):
    """The signer lacks the relationship required for this operation."""
    kind = 'AuthorizationDenied'
