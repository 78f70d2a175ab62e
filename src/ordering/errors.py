"""Error taxonomy for the ordering context.

Field-level input problems use ``protean.exceptions.ValidationError``
directly; everything else raised by the pipeline derives from
``OrderingError`` so the API layer can map it to a status code.
"""


class OrderingError(Exception):
    """Base class for ordering pipeline failures."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class SignatureError(OrderingError):
    """The payment event could not be authenticated."""


class NotFoundError(OrderingError):
    """An order, product or household does not exist."""


class OperationNotPermitted(OrderingError):
    """The action is not legal for the order's status or the actor's role."""


class ConflictError(OrderingError):
    """A uniqueness rule was violated.

    ``existing`` carries the record that already holds the key, when known.
    """

    def __init__(self, message: str, existing=None, **context):
        super().__init__(message, **context)
        self.existing = existing


class DependencyError(OrderingError):
    """A collaborator (catalogue, household lookup, configuration) failed."""
