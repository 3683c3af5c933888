#!/usr/bin/env python3
"""
ref-msa - Reference anchored multiple sequence alignment

Builds a multiple alignment from a seed alignment or from pairwise search
results against a common reference, optionally trims it, re-calls a
CpG-aware consensus and reports divergence and low scoring columns.

Usage:
    ref_msa.py seed.stk -o out.stk --stats
    ref_msa.py hits.tsv --pairwise -o out.fa --flanking-fasta genome.fa
    ref_msa.py seed.fa -o out.stk --trim-left 5 --trim-right -1 --recall-consensus
"""

import argparse
import logging
import sys
from pathlib import Path

from refmsa import (
    MultAlignError,
    FastaSequenceDatabase,
    build_from_pairwise,
    format_alignment_view,
    format_from_extension,
    import_aligned_seqs,
    kimura_divergence,
    load_params,
    low_scoring_columns,
    parse_fasta,
    read_seed_alignment,
    read_tabular_hits,
    substitution_frequencies,
    write_alignment,
)


SCRIPT_DIR = Path(__file__).resolve().parent

logger = logging.getLogger('ref_msa')


def _single_reference(path: Path) -> str:
    sequences = parse_fasta(path)
    if not sequences:
        raise MultAlignError(f"No sequence found in reference file {path}")
    return sequences[0].seq


def run(args: argparse.Namespace) -> int:
    params_file = args.params if args.params else SCRIPT_DIR / 'ref_msa.params'
    params = load_params(params_file)

    # Command line flags override the parameter file
    if args.reference_role:
        params.reference_role = args.reference_role
    if args.legacy_gap_offsets:
        params.legacy_gap_offsets = True
    if args.max_flanking_len is not None:
        params.max_flanking_sequence_len = args.max_flanking_len
    if args.keep_edge_gaps:
        params.keep_edge_gaps = True

    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output}")

    reference = _single_reference(args.reference_fasta) if args.reference_fasta else None

    if args.pairwise:
        records = read_tabular_hits(args.input)
        logger.info(f"Found {len(records)} pairwise alignments")
        flanking_db = FastaSequenceDatabase(args.flanking_fasta) if args.flanking_fasta else None
        msa = build_from_pairwise(
            records,
            reference_seq=reference,
            reference_role=params.reference_role,
            legacy_gap_offsets=params.legacy_gap_offsets,
            flanking_db=flanking_db,
            max_flanking_len=params.max_flanking_sequence_len
        )
    else:
        seed = read_seed_alignment(args.input)
        msa = import_aligned_seqs(
            seed.rows,
            reference=reference,
            keep_edge_gaps=params.keep_edge_gaps,
            reference_name=seed.reference_name or seed.id,
            rf_line=seed.rf_line
        )

    if args.trim_left is not None or args.trim_right is not None:
        left_cols, right_cols = msa.trim(left=args.trim_left, right=args.trim_right)
        logger.info(f"Trimmed {left_cols} left and {right_cols} right columns")

    if args.recall_consensus:
        msa.reference_seq = msa.consensus(params=params.consensus_params())

    output_format = args.format
    if output_format is None:
        output_format = format_from_extension(args.output, default=params.default_format)

    logger.info(f"Writing alignment to {args.output} ({output_format} format)...")
    args.output.parent.mkdir(parents=True, exist_ok=True)
    write_alignment(
        msa, args.output,
        format=output_format,
        wrap_width=params.wrap_width,
        include_flanking=args.include_flanking,
        include_consensus=args.include_consensus,
        rf_residues=args.rf_residues
    )

    if args.stats or args.low_scoring:
        scores = low_scoring_columns(
            msa,
            gap_initiation_penalty=params.gap_initiation_penalty,
            gap_extension_penalty=params.gap_extension_penalty,
            threshold=params.threshold
        )

    if args.stats:
        summary = kimura_divergence(msa)
        print("Alignment statistics:")
        print(f"  Sequences: {msa.count()}")
        print(f"  Alignment length: {msa.gapped_reference_length()}")
        print(f"  Substitutions: {summary.substitutions}")
        print(f"  Average Kimura divergence: {summary.average_divergence:.2f}")
        print(f"  Low scoring blocks: {len(scores.blocks)}")

    if args.low_scoring:
        for start, end in scores.blocks:
            print(f"{start}\t{end}")

    if args.view or args.view_scores:
        print(format_alignment_view(
            msa,
            block_size=params.view_block_size,
            show_consensus=args.include_consensus,
            show_score=args.view_scores
        ), end='')

    if args.subst_freq:
        freqs = substitution_frequencies(msa)
        print("Substitution frequencies:")
        print(f"  Bases aligned: {freqs.total_bases_aligned}")
        print(f"  Bases analyzed: {freqs.total_bases_analyzed}")
        print(f"  Substitution fraction: {freqs.substitution_fraction():.4f}")
        for key, count in sorted(freqs.mono_single_counts.items()):
            print(f"  {key[0]}->{key[1]}\t{count}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description='Reference anchored multiple sequence alignment',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s seed.stk -o aligned.stk --stats
  %(prog)s hits.tsv --pairwise -o aligned.fa --reference-role subject
  %(prog)s seed.fa -o aligned.stk --trim-left 5 --trim-right 5 --recall-consensus
  %(prog)s hits.tsv --pairwise -o aligned.fa --flanking-fasta genome.fa --include-flanking 20
  %(prog)s seed.stk -o aligned.stk --rf-residues --view --subst-freq

Input formats:
  aligned FASTA / Stockholm seed alignments (default)
  tabular hits with --pairwise:
    qseqid sseqid qstart qend sstart send qseq sseq evalue bitscore pident [qlen slen]

Output formats:
  stockholm      Stockholm 1.0 (default)
  fasta          Aligned FASTA, reference first
        """
    )

    parser.add_argument('input', type=Path,
                       help='Seed alignment or tabular hit file')
    parser.add_argument('-o', '--output', type=Path, required=True,
                       help='Output alignment file')
    parser.add_argument('-f', '--format', type=str, default=None,
                       choices=['fasta', 'stockholm'],
                       help='Output format (default: infer from extension)')
    parser.add_argument('--params', type=Path, default=None,
                       help='Parameters file (default: ref_msa.params in script directory)')

    # Building
    parser.add_argument('--pairwise', action='store_true',
                       help='Input is a tabular pairwise hit file')
    parser.add_argument('--reference-fasta', type=Path, default=None,
                       help='FASTA file holding the full reference sequence')
    parser.add_argument('--reference-role', type=str, default=None,
                       choices=['query', 'subject'],
                       help='Side of each hit that plays the reference (default: query)')
    parser.add_argument('--legacy-gap-offsets', action='store_true',
                       help='Reproduce the older edge gap padding of merged instances')
    parser.add_argument('--flanking-fasta', type=Path, default=None,
                       help='FASTA file of instance source sequences for flanking lookups')
    parser.add_argument('--max-flanking-len', type=int, default=None,
                       help='Maximum flanking bases per side (<= 0 for unlimited)')
    parser.add_argument('--keep-edge-gaps', action='store_true',
                       help='Keep leading/trailing gap runs of seed rows')

    # Editing
    parser.add_argument('--trim-left', type=int, default=None,
                       help='Consensus bases to trim on the left (negative: to first A/C/G/T)')
    parser.add_argument('--trim-right', type=int, default=None,
                       help='Consensus bases to trim on the right (negative: to first A/C/G/T)')
    parser.add_argument('--recall-consensus', action='store_true',
                       help='Replace the reference with a freshly called consensus')

    # Output options
    parser.add_argument('--include-flanking', type=int, default=0,
                       help='Flanking bases written either side of each instance (FASTA output)')
    parser.add_argument('--include-consensus', action='store_true',
                       help='Add a consensus row to FASTA output and the text view')
    parser.add_argument('--rf-residues', action='store_true',
                       help='Write reference bases on the Stockholm RF line so the reference round trips')
    parser.add_argument('--low-scoring', action='store_true',
                       help='Print low scoring column blocks')
    parser.add_argument('--stats', action='store_true',
                       help='Print alignment statistics')
    parser.add_argument('--view', action='store_true',
                       help='Print the alignment as text blocks')
    parser.add_argument('--view-scores', action='store_true',
                       help='Print the text view with column scores above each block')
    parser.add_argument('--subst-freq', action='store_true',
                       help='Print substitution frequencies against the reference')
    parser.add_argument('-v', '--verbose', action='store_true',
                       help='Verbose output')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Validate input
    for path in (args.input, args.reference_fasta, args.flanking_fasta, args.params):
        if path is not None and not path.exists():
            print(f"Error: Input file not found: {path}", file=sys.stderr)
            sys.exit(1)

    try:
        sys.exit(run(args))
    except MultAlignError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
