"""
Parameter file handling

Reads headerless key = value .params files:

    # CpG scoring
    cg_param = 12
    legacy_gap_offsets = false

Comment ('#') and section ('[...]') lines are ignored.  Each value is
parsed according to the type of the matching MsaParams field.
"""

import logging
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Any, Dict

from .consensus import ConsensusParams
from .errors import InvalidArgument


logger = logging.getLogger(__name__)

# Alternative key spellings accepted in .params files
ALIASES = {
    'CGparam': 'cg_param',
    'CGParam': 'cg_param',
    'TAparam': 'ta_param',
    'TAParam': 'ta_param',
    'CGTransParam': 'cg_trans_param',
    'gapInitiationPenalty': 'gap_initiation_penalty',
    'gapExtensionPenalty': 'gap_extension_penalty',
    'maxFlankingSequenceLen': 'max_flanking_sequence_len',
}


@dataclass
class MsaParams:
    """Tunable parameters with their defaults"""
    # Consensus calling
    cg_param: float = 12
    ta_param: float = -5
    cg_trans_param: float = 2
    # Column scoring
    gap_initiation_penalty: float = -40
    gap_extension_penalty: float = -15
    threshold: float = 1.0
    # Building
    max_flanking_sequence_len: int = 50
    legacy_gap_offsets: bool = False
    reference_role: str = 'query'
    keep_edge_gaps: bool = False
    # Output parameters
    default_format: str = 'stockholm'
    wrap_width: int = 80
    view_block_size: int = 50

    def consensus_params(self) -> ConsensusParams:
        return ConsensusParams(
            cg_param=self.cg_param,
            ta_param=self.ta_param,
            cg_trans_param=self.cg_trans_param
        )


_FIELD_TYPES: Dict[str, Any] = {f.name: f.type for f in fields(MsaParams)}


def _parse_value(key: str, value: str):
    kind = _FIELD_TYPES[key]
    if kind in (bool, 'bool'):
        lowered = value.lower()
        if lowered in ('true', 'yes', '1', 'on'):
            return True
        if lowered in ('false', 'no', '0', 'off'):
            return False
        raise InvalidArgument(f"Parameter {key}: expected a boolean, got {value!r}")
    try:
        if kind in (int, 'int'):
            return int(value)
        if kind in (float, 'float'):
            return float(value)
    except ValueError:
        raise InvalidArgument(f"Parameter {key}: cannot parse {value!r} as {getattr(kind, '__name__', kind)}")
    return value


def parse_params(content: str, params: MsaParams = None) -> MsaParams:
    """Apply key = value lines to params (defaults when None)"""
    if params is None:
        params = MsaParams()

    for line in content.split('\n'):
        line = line.strip()

        # Skip comments and empty lines
        if not line or line.startswith('#') or line.startswith('['):
            continue

        if '=' not in line:
            raise InvalidArgument(f"Malformed parameter line (expected key = value): {line}")

        key, value = line.split('=', 1)
        key = ALIASES.get(key.strip(), key.strip())
        value = value.strip()

        if key not in _FIELD_TYPES:
            raise InvalidArgument(f"Unknown parameter: {key}")
        setattr(params, key, _parse_value(key, value))

    return params


def load_params(params_file: Path) -> MsaParams:
    """
    Load parameters from a .params file.

    A missing file yields the defaults.
    """
    params_file = Path(params_file)
    if not params_file.exists():
        logger.debug(f"No parameter file at {params_file}; using defaults")
        return MsaParams()
    return parse_params(params_file.read_text())
