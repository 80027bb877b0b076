"""
Haplotype reconstruction by exact codon-signature clustering.

Every read is reduced to the vector of its codons at all variant positions
that kept at least one accepted call. Reads with identical vectors form one
haplotype. Groups whose codons are uncovered, gapped, ambiguous or never
confirmed by a test, and groups with too few reads, are filtered and kept
only for read accounting. The remaining "generators" are ranked by size and
named A, B, ..., Z, Aa, Ab, ...
"""

import logging
from typing import Dict, List, Set, Tuple

from .codons import GAP, PAD, is_ambiguous
from .models import (
    Haplotype,
    HaplotypeFlag,
    ReadCounts,
    VariantGene,
    VariantPosition,
)
from .msa import MSAByRows

logger = logging.getLogger(__name__)

UNCOVERED_CODON = PAD * 3


def collect_variant_positions(variant_genes: List[VariantGene]) -> List[VariantPosition]:
    """Variant positions with at least one accepted codon, in gene order."""
    positions = []
    for gene in variant_genes:
        for variant_position in gene.positions.values():
            if variant_position.has_calls:
                positions.append(variant_position)
    return positions


def classify_codon(codon: str, position: VariantPosition) -> Set[HaplotypeFlag]:
    """Flags raised by one read codon at a variant position."""
    if PAD in codon:
        return {HaplotypeFlag.PARTIAL}
    if GAP in codon:
        return {HaplotypeFlag.WITH_GAP}
    if is_ambiguous(codon):
        return {HaplotypeFlag.WITH_HETERODUPLEX}
    if position.is_reference(codon) or position.find_codon(codon) is not None:
        return set()
    return {HaplotypeFlag.OFFTARGET}


def read_signature(
    msa: MSAByRows,
    row_index: int,
    positions: List[VariantPosition],
) -> Tuple[Tuple[str, ...], Set[HaplotypeFlag]]:
    """Codon vector of one read and the flags it raises."""
    codons = []
    flags: Set[HaplotypeFlag] = set()
    for position in positions:
        codon = msa.codon_at(row_index, position.abs_position)
        if codon is None:
            codon = UNCOVERED_CODON
        codons.append(codon)
        flags |= classify_codon(codon, position)
    return tuple(codons), flags


def cluster_reads(
    msa: MSAByRows,
    positions: List[VariantPosition],
    low_coverage_reads: int = 10,
) -> List[Haplotype]:
    """Group all rows by exact codon vector.

    Buckets appear in the order of their first read. Every row lands in
    exactly one bucket.
    """
    haplotypes: List[Haplotype] = []
    index_by_codons: Dict[Tuple[str, ...], int] = {}

    for row_index, row in enumerate(msa.rows):
        codons, flags = read_signature(msa, row_index, positions)

        bucket = index_by_codons.get(codons)
        if bucket is None:
            bucket = len(haplotypes)
            index_by_codons[codons] = bucket
            haplotypes.append(Haplotype(codons=codons, flags=set(flags)))
        haplotypes[bucket].add_read(row.name, row_index)

    for haplotype in haplotypes:
        if haplotype.size < low_coverage_reads:
            haplotype.flags.add(HaplotypeFlag.LOW_COV)

    logger.debug(f"Clustered {msa.num_rows} reads into {len(haplotypes)} groups")
    return haplotypes


def split_haplotypes(haplotypes: List[Haplotype]) -> Tuple[List[Haplotype], List[Haplotype]]:
    """Separate generators from filtered haplotypes."""
    generators = [h for h in haplotypes if h.is_generator]
    filtered = [h for h in haplotypes if not h.is_generator]
    return generators, filtered


def haplotype_label(index: int, alphabet_size: int = 26) -> str:
    """Name of the ``index``-th generator.

    The first ``alphabet_size`` generators get a single capital letter;
    afterwards the leading letter advances every ``alphabet_size`` names
    while a lower-case letter cycles.
    """
    if index < 0:
        raise ValueError(f"Haplotype index must be >= 0, got {index}")
    if index < alphabet_size:
        return chr(ord("A") + index)
    prefix = haplotype_label(index // alphabet_size - 1, alphabet_size)
    return prefix + chr(ord("a") + index % alphabet_size)


def rank_generators(generators: List[Haplotype], alphabet_size: int = 26) -> List[Haplotype]:
    """Sort generators by size, name them and set their global frequency."""
    ranked = sorted(generators, key=lambda h: (-h.size, h.codons))
    total = sum(h.size for h in ranked)
    for index, haplotype in enumerate(ranked):
        haplotype.name = haplotype_label(index, alphabet_size)
        haplotype.global_frequency = haplotype.size / total if total else 0.0
    return ranked


def mark_haplotype_hits(generators: List[Haplotype], positions: List[VariantPosition]) -> None:
    """Record for every accepted codon which generator carries it."""
    for position in positions:
        for variant_codon in position.iter_codons():
            variant_codon.haplotype_hits = []

    for haplotype in generators:
        for position_index, position in enumerate(positions):
            codon = haplotype.codons[position_index]
            for variant_codon in position.iter_codons():
                variant_codon.haplotype_hits.append(variant_codon.codon == codon)


def count_reads(generators: List[Haplotype], filtered: List[Haplotype]) -> ReadCounts:
    """Bucket all reads by the most severe reason of their haplotype."""
    counts = ReadCounts()
    counts.healthy_reported = sum(h.size for h in generators)

    for haplotype in filtered:
        if haplotype.flags == {HaplotypeFlag.LOW_COV}:
            counts.healthy_low_coverage += haplotype.size
        elif haplotype.is_offtarget:
            counts.all_damaged += haplotype.size
        elif haplotype.has_gap:
            counts.marginal_with_gaps += haplotype.size
        elif haplotype.has_heteroduplex:
            counts.marginal_with_heteroduplexes += haplotype.size
        else:
            counts.marginal_partial_reads += haplotype.size

    return counts
