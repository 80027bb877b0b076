"""
codonphase Command-Line Interface

Entry points for the codonphase-call and codonphase-validate commands.
"""

import argparse
import sys
from pathlib import Path

from codonphase.config import CallerConfig
from codonphase.logging import ROOT_LOGGER, get_logger, setup_logging
from codonphase.validation import validate_msa_rows, validate_target_config


def _build_call_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codonphase-call",
        description="Call amino-acid minority variants and phase reads into haplotypes",
    )
    parser.add_argument("alignment",
                        help="Aligned reads in FASTA format (one record per read)")
    parser.add_argument("--window-begin", type=int, default=0,
                        help="Absolute coordinate of the first alignment column (default: 0)")
    parser.add_argument("--targets",
                        help="Target configuration JSON (genes, minors, DRMs)")
    parser.add_argument("--reference",
                        help="Reference FASTA in absolute coordinates")
    parser.add_argument("--substitution", type=float, default=0.005,
                        help="Per-base substitution probability (default: 0.005)")
    parser.add_argument("--deletion", type=float, default=0.01,
                        help="Per-base deletion probability (default: 0.01)")
    parser.add_argument("--transitions",
                        help="Codon transition table TSV (from, to, probability) for --merge-outliers")
    parser.add_argument("--alpha", type=float, default=None,
                        help="Significance level after correction (default: 0.01)")
    parser.add_argument("--min-percent", type=float, default=None,
                        help="Minimal call frequency in percent (default: 0)")
    parser.add_argument("--max-percent", type=float, default=None,
                        help="Majority share in percent above which a codon differing from "
                             "the reference becomes alternate reference (default: 100)")
    parser.add_argument("--drm-only", action="store_true",
                        help="Only report calls matching a known DRM")
    parser.add_argument("--merge-outliers", action="store_true",
                        help="Soft collapse filtered reads onto haplotypes")
    parser.add_argument("--debug", action="store_true",
                        help="Report every tested codon")
    parser.add_argument("--verbose", action="store_true",
                        help="Debug logging and filtered haplotypes in the report")
    parser.add_argument("-o", "--output", required=True,
                        help="Output JSON document")
    parser.add_argument("--tsv",
                        help="Optional TSV table of calls")
    parser.add_argument("--performance",
                        help="Optional JSON of performance against expected minors")
    parser.add_argument("--log-file",
                        help="Optional log file")
    return parser


def _config_from_args(args: argparse.Namespace) -> CallerConfig:
    return CallerConfig(
        alpha=args.alpha,
        minimal_percent=args.min_percent,
        maximal_percent=args.max_percent,
        drm_only=args.drm_only,
        merge_outliers=args.merge_outliers,
        debug=args.debug,
        verbose=args.verbose,
    )


def call_main(argv=None) -> int:
    """Entry point for codonphase-call command."""
    from codonphase.calling import (
        AminoAcidCaller,
        ErrorEstimates,
        TargetConfig,
        TransitionTable,
        build_document,
        load_reference_sequence,
        load_target_config,
        parse_aligned_fasta,
        write_calls_tsv,
        write_json,
        write_performance,
    )

    args = _build_call_parser().parse_args(argv)
    setup_logging(
        ROOT_LOGGER,
        log_file=Path(args.log_file) if args.log_file else None,
        verbose=args.verbose,
    )
    logger = get_logger("codonphase.call")

    config = _config_from_args(args)
    is_valid, errors = config.validate()
    if not is_valid:
        for error in errors:
            logger.error(error)
        return 1

    try:
        error = ErrorEstimates.from_rates(substitution=args.substitution, deletion=args.deletion)
        msa = parse_aligned_fasta(args.alignment, begin_pos=args.window_begin)
        if args.targets:
            target_config = load_target_config(args.targets, reference_path=args.reference)
        else:
            target_config = TargetConfig()
            if args.reference:
                target_config.reference_sequence = load_reference_sequence(args.reference)
        transitions = TransitionTable.from_tsv(args.transitions) if args.transitions else None
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    ok_msa, msa_errors, msa_warnings = validate_msa_rows(msa)
    ok_targets, target_errors, target_warnings = validate_target_config(target_config, msa)
    for warning in msa_warnings + target_warnings:
        logger.warning(warning)
    if not (ok_msa and ok_targets):
        for error in msa_errors + target_errors:
            logger.error(error)
        return 1

    caller = AminoAcidCaller(msa, error, target_config, config=config, transitions=transitions)
    result = caller.run()

    write_json(build_document(result, config), args.output)
    if args.tsv:
        write_calls_tsv(result, args.tsv)
    if args.performance:
        if result.performance is None:
            logger.warning("No expected minors configured; skipping performance summary")
        else:
            write_performance(result.performance, args.performance)

    return 0


def validate_main(argv=None) -> int:
    """Entry point for codonphase-validate command."""
    from codonphase.calling import load_target_config

    parser = argparse.ArgumentParser(
        prog="codonphase-validate",
        description="Validate a codonphase target configuration",
    )
    parser.add_argument("--targets", required=True, help="Target configuration JSON")
    parser.add_argument("--reference", help="Reference FASTA")
    args = parser.parse_args(argv)

    setup_logging(ROOT_LOGGER)
    logger = get_logger("codonphase.validate")

    try:
        target_config = load_target_config(args.targets, reference_path=args.reference)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    is_valid, errors, warnings = validate_target_config(target_config)
    for warning in warnings:
        logger.warning(warning)
    if errors:
        logger.error("Target configuration errors:")
        for error in errors:
            logger.error(f"  - {error}")
        return 1

    logger.info(f"Target configuration is valid ({len(target_config.genes)} gene(s))")
    return 0


def main_call() -> None:
    sys.exit(call_main())


def main_validate() -> None:
    sys.exit(validate_main())


if __name__ == "__main__":
    main_call()
