"""Domain layer errors."""


class DomainError(Exception):
    """Base domain error."""

    pass


class NotFoundError(DomainError):
    """Raised when a viewer cannot resolve the post or comment it must address.

    The merge engine never raises this: an absent id there is a benign
    no-op, since edits and deletes routinely race with other deletes.
    """

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class NotAuthorizedError(DomainError):
    """Raised when a user attempts to modify a comment they don't own."""

    def __init__(self, resource: str, resource_id: str, user_id: str | None):
        self.resource = resource
        self.resource_id = resource_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is not authorized to modify {resource} {resource_id}"
        )


class MutationInFlightError(DomainError):
    """Raised when the same mutation is submitted again before it settled."""

    def __init__(self, kind: str, target_id: str):
        self.kind = kind
        self.target_id = target_id
        super().__init__(f"A {kind} on {target_id} is already awaiting the server")


class ViewerClosedError(DomainError):
    """Raised when a closed viewer is asked to do more work."""

    pass


class TransportFailureError(DomainError):
    """The network client could not complete the request."""

    pass


class ConflictError(DomainError):
    """The server refused the mutation (e.g. editing someone else's comment)."""

    pass
