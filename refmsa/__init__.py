from .errors import (
    MultAlignError, EmptyInput, MissingParameter, InvalidArgument,
    IndexOutOfBounds, ParseError,
)
from .model import (
    MultipleAlignment, AlignedSequence, ReferenceSequence, Orientation,
    reverse_complement,
)
from .identifiers import SequenceIdentifier, parse_identifier, format_identifier
from .matrices import ScoringMatrix, lineup_matrix, comparison_matrix
from .consensus import ConsensusParams, build_consensus_from_array
from .divergence import (
    simple_divergence, kimura_divergence, kimura_divergence_alt,
    KimuraSummary, KimuraAltResult,
)
from .column_scorer import (
    ruzzo_tompa, column_profile, low_scoring_columns,
    RuzzoTompaResult, ColumnScores,
)
from .search_results import (
    PairwiseRecord, AnchoredRecord, ReferenceRole,
    parse_tabular_hits, read_tabular_hits,
)
from .builder import MultipleAlignmentBuilder, SequenceDatabase, build_from_pairwise
from .seed import import_aligned_seqs
from .sequence_io import (
    Sequence, SeedRecords, FastaSequenceDatabase, parse_fasta,
    read_seed_alignment, read_stockholm, write_alignment, write_fasta,
    write_stockholm, format_from_extension,
)
from .alignment_view import format_alignment_view
from .substitutions import SubstitutionFrequencies, substitution_frequencies
from .params import MsaParams, load_params
