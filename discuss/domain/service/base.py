"""Base service class for domain services."""


class Service:
    """Base class for all domain services.

    Domain services hold no state of their own: every operation takes the
    tree snapshot it works on and returns the next one.
    """

    pass
