"""
codonphase calling: codon-level minority variant calling and haplotype phasing.

This subpackage turns an alignment of reads into amino-acid variant calls and
read-backed haplotypes.

Key Features:
- Codon tabulation per locus with gap, pad and window exclusion
- Fisher's exact test against a per-base error model with Bonferroni correction
- Expected-minor, DRM-only and minimal-frequency acceptance policies
- Exact codon-signature read clustering with named haplotypes
- Optional soft collapse of filtered reads onto haplotypes

Example Usage:
    >>> from codonphase.calling import (
    ...     AminoAcidCaller, ErrorEstimates, build_document,
    ...     load_target_config, parse_aligned_fasta,
    ... )
    >>> msa = parse_aligned_fasta("reads.aligned.fasta", begin_pos=2550)
    >>> targets = load_target_config("hiv_rt.json")
    >>> result = AminoAcidCaller(msa, ErrorEstimates.from_rates(), targets).run()
    >>> document = build_document(result)
"""

# Data models
from .models import (
    DRMMutation,
    DRMSignature,
    ErrorEstimates,
    Haplotype,
    HaplotypeFlag,
    MinorVariant,
    PerformanceSummary,
    ReadCounts,
    TargetConfig,
    TargetGene,
    VariantCodon,
    VariantGene,
    VariantPosition,
)

# Alignment views
from .msa import (
    MSAByColumns,
    MSAByRows,
    MSAColumn,
    MSARow,
    parse_aligned_fasta,
)

# Target configuration
from .targets import (
    load_reference_sequence,
    load_target_config,
    target_config_from_dict,
)

# Scanning and testing
from .scanner import (
    count_number_of_tests,
    majority_codon,
    resolve_reference,
    tabulate_codons,
)
from .tester import (
    PerformanceTally,
    accept_call,
    codon_probability,
    corrected_p_value,
)

# Phasing
from .phasing import (
    cluster_reads,
    haplotype_label,
    rank_generators,
)
from .reweight import (
    TransitionTable,
    posterior_weights,
    soft_collapse,
)

# Pipeline and reporting
from .caller import AminoAcidCaller, CallingResult
from .report import (
    build_document,
    calls_dataframe,
    write_calls_tsv,
    write_json,
    write_performance,
)


__all__ = [
    # Models
    "DRMMutation",
    "DRMSignature",
    "ErrorEstimates",
    "Haplotype",
    "HaplotypeFlag",
    "MinorVariant",
    "PerformanceSummary",
    "ReadCounts",
    "TargetConfig",
    "TargetGene",
    "VariantCodon",
    "VariantGene",
    "VariantPosition",
    # Alignment
    "MSAByColumns",
    "MSAByRows",
    "MSAColumn",
    "MSARow",
    "parse_aligned_fasta",
    # Targets
    "load_reference_sequence",
    "load_target_config",
    "target_config_from_dict",
    # Scanning / testing
    "count_number_of_tests",
    "majority_codon",
    "resolve_reference",
    "tabulate_codons",
    "PerformanceTally",
    "accept_call",
    "codon_probability",
    "corrected_p_value",
    # Phasing
    "cluster_reads",
    "haplotype_label",
    "rank_generators",
    "TransitionTable",
    "posterior_weights",
    "soft_collapse",
    # Pipeline
    "AminoAcidCaller",
    "CallingResult",
    "build_document",
    "calls_dataframe",
    "write_calls_tsv",
    "write_json",
    "write_performance",
]
