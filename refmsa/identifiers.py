"""
Sequence identifier grammar

Identifiers exchanged with Stockholm-style collaborators look like:

    assemblyName:sequenceName:start-end[_+|_-]
    sequenceName:start-end[_+|_-]

Coordinates are 1-based.  Without an explicit orientation suffix a start
greater than the end encodes the reverse strand (e.g. "hg38:chr1:1103-500").
"""

import re
from dataclasses import dataclass

from .errors import ParseError
from .model import Orientation


_FULL_ID = re.compile(r'^(\S+):(\S+):(\d+)-(\d+)(_[+\-])?$')
_SHORT_ID = re.compile(r'^(\S+):(\d+)-(\d+)(_[+\-])?$')


@dataclass
class SequenceIdentifier:
    """Parsed identifier, always stored with start <= end"""
    sequence_name: str
    start: int
    end: int
    orientation: Orientation = Orientation.FORWARD
    assembly_name: str = ""

    @property
    def name(self) -> str:
        """Name without the range ("assembly:sequence" or "sequence")"""
        if self.assembly_name:
            return f"{self.assembly_name}:{self.sequence_name}"
        return self.sequence_name


def parse_identifier(text: str) -> SequenceIdentifier:
    """
    Parse an identifier into its parts.

    Raises ParseError if the text does not follow either form.
    """
    assembly = ""
    match = _FULL_ID.match(text)
    if match:
        assembly, name, start, end, suffix = match.groups()
    else:
        match = _SHORT_ID.match(text)
        if not match:
            raise ParseError(
                "Identifier does not follow the 'assemblyID:sequenceID:start-end', "
                "'assemblyID:sequenceID:start-end_orient' or 'sequenceID:start-end' "
                "format (1-based coordinates)", text)
        name, start, end, suffix = match.groups()

    start, end = int(start), int(end)
    if suffix:
        orientation = Orientation.from_symbol(suffix[1])
    elif start > end:
        orientation = Orientation.REVERSE
    else:
        orientation = Orientation.FORWARD

    if start > end:
        start, end = end, start

    return SequenceIdentifier(
        sequence_name=name,
        start=start,
        end=end,
        orientation=orientation,
        assembly_name=assembly
    )


def format_identifier(name: str, start: int, end: int,
                      orientation: Orientation = Orientation.FORWARD) -> str:
    """Render name:start-end, writing end-start for the reverse strand"""
    if orientation == Orientation.REVERSE:
        return f"{name}:{end}-{start}"
    return f"{name}:{start}-{end}"
