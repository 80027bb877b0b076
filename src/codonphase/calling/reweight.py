"""
Soft collapse of filtered haplotypes onto generators.

Each filtered haplotype is compared with every generator through a codon
transition table. The joint transition probability, weighted by the
generator's share of reads, gives a posterior over generators; the filtered
haplotype's read count is spread over the generators accordingly. Group
membership is never changed.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .codons import GAP, NUCLEOTIDES, PAD
from .models import ErrorEstimates, Haplotype
from .tester import codon_probability

logger = logging.getLogger(__name__)


class TransitionTable:
    """Probabilities that a true codon is observed as another codon.

    Lookups return None for pairs that carry no information (uncovered or
    ambiguous codons, pairs missing from a loaded table); callers skip those
    factors.
    """

    def __init__(
        self,
        probabilities: Optional[Dict[Tuple[str, str], float]] = None,
        error: Optional[ErrorEstimates] = None,
    ):
        self.probabilities = dict(probabilities or {})
        self.error = error

    @classmethod
    def from_error_estimates(cls, error: ErrorEstimates) -> "TransitionTable":
        """Table computed on demand from the per-base error model."""
        return cls(error=error)

    @classmethod
    def from_tsv(cls, filepath: Union[str, Path]) -> "TransitionTable":
        """Load a table with columns ``from``, ``to`` and ``probability``.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If required columns are missing
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Transition table not found: {filepath}")

        df = pd.read_csv(path, sep="\t", dtype={"from": str, "to": str})
        missing = {"from", "to", "probability"} - set(df.columns)
        if missing:
            raise ValueError(f"Transition table {filepath} is missing columns: {sorted(missing)}")

        probabilities = {
            (row["from"].upper(), row["to"].upper()): float(row["probability"])
            for _, row in df.iterrows()
        }
        logger.info(f"Loaded {len(probabilities)} codon transitions from {path.name}")
        return cls(probabilities=probabilities)

    def lookup(self, true_codon: str, observed_codon: str) -> Optional[float]:
        if PAD in observed_codon or PAD in true_codon:
            return None

        if (true_codon, observed_codon) in self.probabilities:
            return self.probabilities[(true_codon, observed_codon)]

        if self.error is None:
            return None
        allowed = NUCLEOTIDES + GAP
        if any(base not in allowed for base in true_codon + observed_codon):
            return None
        return codon_probability(true_codon, observed_codon, self.error)


def joint_transition_probability(
    filtered: Haplotype,
    generator: Haplotype,
    table: TransitionTable,
) -> float:
    """Product of codon transition probabilities over all positions."""
    p = 1.0
    for true_codon, observed_codon in zip(generator.codons, filtered.codons):
        factor = table.lookup(true_codon, observed_codon)
        if factor is None:
            continue
        p *= factor
    return p


def posterior_weights(
    filtered: Haplotype,
    generators: List[Haplotype],
    table: TransitionTable,
) -> np.ndarray:
    """Posterior probability that ``filtered`` originates from each generator.

    Weights sum to 1. If no generator can explain the haplotype, the read
    share prior is returned.
    """
    sizes = np.array([g.size for g in generators], dtype=float)
    prior = sizes / sizes.sum()
    likelihood = np.array(
        [joint_transition_probability(filtered, g, table) for g in generators],
        dtype=float,
    )
    joint = prior * likelihood
    total = joint.sum()
    if total <= 0.0 or not np.isfinite(total):
        logger.debug(f"No generator explains haplotype {filtered.codons}; using prior")
        return prior
    return joint / total


def soft_collapse(
    filtered: List[Haplotype],
    generators: List[Haplotype],
    table: TransitionTable,
) -> List[np.ndarray]:
    """Distribute every filtered haplotype's size onto the generators.

    Returns:
        One contribution vector per filtered haplotype, aligned with
        ``generators``; each vector sums to the haplotype's size.
    """
    if not generators:
        if filtered:
            logger.warning(f"No generators to collapse {len(filtered)} filtered haplotype(s) onto")
        return []

    contributions = []
    for haplotype in filtered:
        shares = posterior_weights(haplotype, generators, table) * haplotype.size
        for generator, share in zip(generators, shares):
            generator.soft_collapses += float(share)
        contributions.append(shares)
    return contributions
