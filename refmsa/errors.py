"""
Error types for the reference-anchored MSA core

Every failure raised by the package derives from MultAlignError so callers
can catch the whole family at once.  The concrete classes also inherit from
the closest builtin (ValueError / IndexError) so ordinary handlers keep
working.
"""


class MultAlignError(Exception):
    """Base class for all alignment errors"""


class EmptyInput(MultAlignError, ValueError):
    """A builder was handed a collection with no records"""


class MissingParameter(MultAlignError, ValueError):
    """A required construction parameter or value is absent"""


class InvalidArgument(MultAlignError, ValueError):
    """A parameter is present but malformed or unrecognized"""


class IndexOutOfBounds(MultAlignError, IndexError):
    """An instance index fell outside [0, N)"""

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"Index out of bounds: {index} (alignment holds {count} sequences)")


class ParseError(MultAlignError, ValueError):
    """A record or identifier could not be parsed"""

    def __init__(self, message: str, line: str = ""):
        self.line = line
        if line:
            message = f"{message}: [{line}]"
        super().__init__(message)
