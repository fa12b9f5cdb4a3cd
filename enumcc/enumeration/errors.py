"""Fatal errors raised while enumerating."""


class SolverInconsistencyError(RuntimeError):
    """Raised when the solver returns a partition whose imbalance isn't optimal."""


class CollaboratorFailure(RuntimeError):
    """Raised when a collaborator fails or returns unusable output."""
