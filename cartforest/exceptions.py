class CartForestError(Exception):
    """Library-specific exceptions in cartforest."""


class InvalidConfigurationError(CartForestError, ValueError):
    """Raised when training data or hyper-parameters are rejected before building."""

    def __init__(self, message: str):
        super().__init__(message)


class PartitionError(CartForestError, RuntimeError):
    """Raised when a partition of the sample ordering does not match its pivot."""

    def __init__(self, message: str):
        super().__init__(message)


class InvalidSplitError(CartForestError, RuntimeError):
    """Raised when a node without a pending split is asked to split."""

    def __init__(self, message: str):
        super().__init__(message)


class SerializationError(CartForestError):
    """Raised when a tree cannot be encoded or decoded."""

    def __init__(self, message: str):
        super().__init__(message)


class EnsembleTrainingError(CartForestError):
    """Raised when one of the tree-building tasks of a forest fails."""

    def __init__(self, message: str):
        super().__init__(message)
