"""Exception types shared across hitgff."""
from typing import Optional, Union
from pathlib import Path


class HitGFFError(Exception):
    """Base class for all hitgff errors."""
    pass


class ParseError(HitGFFError, ValueError):
    """A row or node of an input file could not be converted."""

    def __init__(self, message: str, source: Optional[Union[str, Path]] = None, line_number: Optional[int] = None):
        self.source = str(source) if source is not None else None
        self.line_number = line_number
        location = []
        if self.source:
            location.append(self.source)
        if line_number is not None:
            location.append(f"line {line_number}")
        if location:
            message = f"{':'.join(location)}: {message}"
        super().__init__(message)


class ValidationError(HitGFFError, ValueError):
    """A value violates a constraint of the feature model or attribute codec."""
    pass
