"""
Amino-acid variant calling and haplotype phasing over aligned reads.

The caller runs the full pipeline once on a static read set:

1. Count the (gene, locus, codon) tests for the family-wise correction
2. Tabulate codons per locus, resolve the reference and test every other codon
3. Cluster reads on their codons at the accepted variant positions
4. Optionally soft collapse filtered haplotypes onto generators
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import CallerConfig, get_config
from .codons import translate_codon
from .models import (
    ErrorEstimates,
    Haplotype,
    PerformanceSummary,
    ReadCounts,
    TargetConfig,
    TargetGene,
    VariantCodon,
    VariantGene,
    VariantPosition,
)
from .msa import MSAByColumns, MSAByRows
from .phasing import (
    cluster_reads,
    collect_variant_positions,
    count_reads,
    mark_haplotype_hits,
    rank_generators,
    split_haplotypes,
)
from .reweight import TransitionTable, soft_collapse
from .scanner import (
    codon_index,
    count_number_of_tests,
    iter_codon_starts,
    resolve_reference,
    tabulate_codons,
)
from .tester import (
    PerformanceTally,
    accept_call,
    corrected_p_value,
    expected_count,
    find_drms,
    is_variable_site,
    matches_expected_minor,
    significant_call,
)

logger = logging.getLogger(__name__)


@dataclass
class CallingResult:
    """Everything the reporter needs from one run."""
    variant_genes: List[VariantGene] = field(default_factory=list)
    generators: List[Haplotype] = field(default_factory=list)
    filtered: List[Haplotype] = field(default_factory=list)
    read_counts: ReadCounts = field(default_factory=ReadCounts)
    num_tests: int = 0
    performance: Optional[PerformanceSummary] = None


def msa_context(
    columns: MSAByColumns,
    position: int,
    flank: int = 3,
    reference_sequence: str = "",
) -> List[Dict]:
    """Column counts from ``position - flank`` to ``position + 2 + flank``."""
    context = []
    for rel_pos in range(-flank, 3 + flank):
        abs_pos = position + rel_pos
        if abs_pos not in columns:
            continue
        column = columns[abs_pos]
        if reference_sequence and 0 <= abs_pos < len(reference_sequence):
            wt = reference_sequence[abs_pos]
        else:
            wt = column.majority_base
        context.append(
            {
                "rel_pos": rel_pos,
                "abs_pos": abs_pos,
                "A": column["A"],
                "C": column["C"],
                "G": column["G"],
                "T": column["T"],
                "-": column["-"],
                "N": column["N"],
                "wt": wt,
            }
        )
    return context


def call_locus(
    msa: MSAByRows,
    gene: TargetGene,
    position: int,
    error: ErrorEstimates,
    target_config: TargetConfig,
    config: CallerConfig,
    num_tests: int,
    tally: PerformanceTally,
) -> Optional[VariantPosition]:
    """Tabulate and test one codon locus.

    Returns:
        The VariantPosition, or None if the locus was skipped
    """
    codons, coverage = tabulate_codons(msa, position)
    reference = resolve_reference(
        codons,
        coverage,
        position,
        reference_sequence=target_config.reference_sequence,
        maximal_percent=config.maximal_percent,
    )
    if reference is None:
        return None

    variant_position = VariantPosition(
        gene_name=gene.name,
        position=codon_index(gene, position),
        abs_position=position,
        ref_codon=reference.ref_codon,
        ref_amino_acid=translate_codon(reference.ref_codon),
        coverage=coverage,
    )
    if reference.alt_ref_codon:
        variant_position.alt_ref_codon = reference.alt_ref_codon
        variant_position.alt_ref_amino_acid = translate_codon(reference.alt_ref_codon)
        logger.debug(
            f"{gene.name} codon {variant_position.position}: "
            f"alternate reference {reference.alt_ref_codon}"
        )

    has_expected_minors = target_config.num_expected_minors > 0

    for codon in sorted(codons):
        if variant_position.is_reference(codon):
            continue

        count = codons[codon]
        amino_acid = translate_codon(codon)
        expected = expected_count(coverage, variant_position.ref_codon, codon, error)
        p_value = corrected_p_value(count, coverage, expected, num_tests)
        variable_site = is_variable_site(count, coverage, config.variable_site_fraction)
        is_minor = matches_expected_minor(gene, variant_position.position, amino_acid, codon)
        known_drm = find_drms(gene, variant_position.ref_amino_acid, variant_position.position, amino_acid)

        tally.record(
            significant_call(p_value, variable_site, has_expected_minors, config.alpha),
            is_minor,
        )

        frequency = count / coverage
        decision = accept_call(
            p_value=p_value,
            frequency=frequency,
            variable_site=variable_site,
            is_expected_minor=is_minor,
            known_drm=known_drm,
            has_expected_minors=has_expected_minors,
            alpha=config.alpha,
            drm_only=config.drm_only,
            debug=config.debug,
            minimal_percent=config.minimal_percent,
        )
        if not decision.accepted:
            continue

        variant_position.amino_acid_to_codons.setdefault(amino_acid, []).append(
            VariantCodon(
                codon=codon,
                amino_acid=amino_acid,
                count=count,
                frequency=frequency,
                p_value=p_value,
                known_drm=known_drm,
            )
        )

    return variant_position


class AminoAcidCaller:
    """Calls amino-acid minority variants and phases reads into haplotypes.

    Args:
        msa: Aligned reads
        error: Per-base error estimates
        target_config: Genes, expected minors, DRMs and optional reference
        config: Run configuration; defaults to the shared ``get_config()``
        transitions: Codon transition table for outlier merging; defaults to
            one derived from ``error``
    """

    def __init__(
        self,
        msa: MSAByRows,
        error: ErrorEstimates,
        target_config: TargetConfig,
        config: Optional[CallerConfig] = None,
        transitions: Optional[TransitionTable] = None,
    ):
        self.msa = msa
        self.error = error
        self.target_config = target_config
        self.config = config or get_config()
        self.transitions = transitions or TransitionTable.from_error_estimates(error)
        self.columns = MSAByColumns(msa)

    @property
    def genes(self) -> List[TargetGene]:
        """Configured genes, or the whole window as gene ``unknown``."""
        if self.target_config.genes:
            return self.target_config.genes
        return [TargetGene(name="unknown", begin=self.msa.begin_pos, end=self.msa.end_pos)]

    def call_variants(self) -> CallingResult:
        genes = self.genes
        num_tests = count_number_of_tests(self.msa, genes)
        logger.info(f"Testing {num_tests} codon(s) across {len(genes)} gene(s)")

        tally = PerformanceTally()
        result = CallingResult(num_tests=num_tests)

        for gene in genes:
            variant_gene = VariantGene(gene_name=gene.name, gene_offset=gene.begin)
            for position in iter_codon_starts(gene):
                variant_position = call_locus(
                    self.msa,
                    gene,
                    position,
                    self.error,
                    self.target_config,
                    self.config,
                    num_tests,
                    tally,
                )
                if variant_position is None or not variant_position.has_calls:
                    continue
                variant_position.msa = msa_context(
                    self.columns,
                    position,
                    flank=self.config.msa_context_flank,
                    reference_sequence=self.target_config.reference_sequence,
                )
                variant_gene.positions[variant_position.position] = variant_position

            n_calls = sum(
                len(list(vp.iter_codons())) for vp in variant_gene.positions.values()
            )
            logger.info(
                f"{gene.name}: {len(variant_gene.positions)} variant position(s), {n_calls} call(s)"
            )
            if variant_gene.positions:
                result.variant_genes.append(variant_gene)

        result.performance = tally.summary(num_tests, self.target_config.num_expected_minors)
        return result

    def phase_variants(self, result: CallingResult) -> CallingResult:
        positions = collect_variant_positions(result.variant_genes)
        haplotypes = cluster_reads(self.msa, positions, self.config.low_coverage_reads)
        generators, filtered = split_haplotypes(haplotypes)

        result.generators = rank_generators(generators, self.config.label_alphabet_size)
        result.filtered = filtered
        mark_haplotype_hits(result.generators, positions)
        result.read_counts = count_reads(result.generators, result.filtered)

        logger.info(
            f"Phased {self.msa.num_rows} reads over {len(positions)} variant position(s): "
            f"{len(result.generators)} haplotype(s), {len(result.filtered)} filtered group(s)"
        )

        if self.config.merge_outliers:
            soft_collapse(result.filtered, result.generators, self.transitions)

        return result

    def run(self) -> CallingResult:
        """Call variants, then phase reads on the accepted calls."""
        return self.phase_variants(self.call_variants())
