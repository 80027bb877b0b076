"""
Codon-aligned scanning of genes over the aligned reads.

For every codon start of a gene the scanner tallies the triplets of all reads
that cover the codon without pads or gaps and translate to an amino acid.
The number of distinct triplets summed over all loci is the family-wise
correction factor of every p-value.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .codons import GAP, PAD, is_valid_codon
from .models import TargetGene
from .msa import MSAByRows

logger = logging.getLogger(__name__)


def iter_codon_starts(gene: TargetGene) -> Iterator[int]:
    """Yield absolute positions of codon starts in ``gene``."""
    for position in range(gene.begin, gene.end - 2):
        if (position - gene.begin) % 3 == 0:
            yield position


def codon_index(gene: TargetGene, position: int) -> int:
    """1-based codon index of an absolute codon start within ``gene``."""
    return 1 + (position - gene.begin) // 3


def tabulate_codons(msa: MSAByRows, position: int) -> Tuple[Counter, int]:
    """Count valid codons starting at ``position`` over all rows.

    Returns:
        Tuple of (codon counts, coverage). Coverage counts only reads that
        contributed to the tally.
    """
    codons: Counter = Counter()
    for row_index in range(msa.num_rows):
        codon = msa.codon_at(row_index, position)
        if codon is None or PAD in codon or GAP in codon:
            continue
        if not is_valid_codon(codon):
            continue
        codons[codon] += 1

    return codons, sum(codons.values())


def count_number_of_tests(msa: MSAByRows, genes: List[TargetGene]) -> int:
    """Number of (gene, locus, distinct codon) combinations in the read set."""
    number_of_tests = 0
    for gene in genes:
        for position in iter_codon_starts(gene):
            codons, _ = tabulate_codons(msa, position)
            number_of_tests += len(codons)
    return number_of_tests


def majority_codon(codons: Counter) -> Optional[str]:
    """Most frequent codon; ties go to the lexicographically smallest."""
    if not codons:
        return None
    return min(codons, key=lambda codon: (-codons[codon], codon))


@dataclass
class ReferenceCall:
    """Reference and alternate reference codon of a locus."""
    ref_codon: str
    alt_ref_codon: Optional[str] = None


def resolve_reference(
    codons: Counter,
    coverage: int,
    position: int,
    reference_sequence: str = "",
    maximal_percent: float = 100.0,
) -> Optional[ReferenceCall]:
    """Decide the reference codon of a locus.

    With a reference sequence the codon is read from it; otherwise the
    majority codon is used. A majority codon that differs from the given
    reference and exceeds ``maximal_percent`` of coverage becomes the
    alternate reference.

    Returns:
        ReferenceCall, or None if the locus has to be skipped
    """
    majority = majority_codon(codons)

    if reference_sequence:
        ref_codon = reference_sequence[position:position + 3]
        if position < 0 or not is_valid_codon(ref_codon):
            logger.debug(f"Skipping locus {position}: reference codon '{ref_codon}' is not a codon")
            return None

        alt_ref_codon = None
        if majority is not None and majority != ref_codon and coverage > 0:
            share = codons[majority] / coverage
            if share > maximal_percent / 100.0:
                alt_ref_codon = majority
        return ReferenceCall(ref_codon=ref_codon, alt_ref_codon=alt_ref_codon)

    if majority is None or codons[majority] == 0:
        logger.debug(f"Skipping locus {position}: no majority codon")
        return None
    return ReferenceCall(ref_codon=majority)
