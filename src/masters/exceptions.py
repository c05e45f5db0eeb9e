from typing import List


class MastersError(Exception):
    """Base class for every rejected Masters command."""


class CapacityExceeded(MastersError):
    pass


class InvalidTeam(MastersError):
    pass


class InsufficientPool(MastersError):
    pass


class InvalidTransition(MastersError):
    pass


class UnknownMatch(MastersError):
    pass


class InvalidResult(MastersError):
    pass


class IncompletePrerequisite(MastersError):
    """
    Raised when a phase transition is requested with missing data.

    Not a hard failure: the caller may repeat the command with ``force=True``
    once the user has confirmed the warnings.
    """

    def __init__(self, warnings: List[str]):
        self.warnings = list(warnings)
        super().__init__("; ".join(self.warnings))
