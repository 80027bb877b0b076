"""
Data models for codon-level variant calling and haplotype phasing.

This module defines the records shared by the scanner, the statistical tester,
the haplotype clusterer and the reporter. Rows, variant positions and
haplotypes are stored in plain lists and referenced elsewhere by index.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple


@dataclass(frozen=True)
class ErrorEstimates:
    """Per-base error model of the sequencing chemistry.

    Attributes:
        match: Probability that a base is read correctly
        substitution: Probability of a substitution
        deletion: Probability of a deletion
    """
    match: float
    substitution: float
    deletion: float

    def __post_init__(self):
        for name in ("match", "substitution", "deletion"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Error estimate {name} must be between 0 and 1, got {value}")

    @classmethod
    def from_rates(cls, substitution: float = 0.005, deletion: float = 0.01) -> "ErrorEstimates":
        """Build estimates from substitution and deletion rates.

        Raises:
            ValueError: If a rate is outside [0, 1] or the rates sum above 1
        """
        if substitution + deletion > 1.0:
            raise ValueError(
                f"Substitution ({substitution}) and deletion ({deletion}) rates sum above 1"
            )
        return cls(
            match=max(0.0, 1.0 - substitution - deletion),
            substitution=substitution,
            deletion=deletion,
        )


@dataclass(frozen=True)
class MinorVariant:
    """An expected minor variant used as ground truth."""
    position: int
    amino_acid: str
    codon: str


@dataclass(frozen=True)
class DRMMutation:
    """One reference amino acid, codon position, alternate amino acid triple."""
    ref_aa: str
    position: int
    alt_aa: str


_DRM_PATTERN = re.compile(r"^([A-Z*])(\d+)([A-Z*]+)$")


@dataclass(frozen=True)
class DRMSignature:
    """A named drug resistance mutation signature."""
    name: str
    mutations: FrozenSet[DRMMutation] = frozenset()

    @property
    def positions(self) -> Set[int]:
        return {m.position for m in self.mutations}

    @classmethod
    def from_notation(cls, name: str, notations: List[str]) -> "DRMSignature":
        """Parse notations like ``K103N`` or ``K103NS`` into a signature.

        Each trailing amino acid expands to its own triple.

        Raises:
            ValueError: If a notation is malformed
        """
        mutations = set()
        for notation in notations:
            match = _DRM_PATTERN.match(notation.strip().upper())
            if not match:
                raise ValueError(f"Malformed DRM notation '{notation}' in '{name}'")
            ref_aa, position, alts = match.groups()
            for alt_aa in alts:
                mutations.add(DRMMutation(ref_aa, int(position), alt_aa))
        return cls(name=name, mutations=frozenset(mutations))


@dataclass
class TargetGene:
    """A gene to call variants on.

    Attributes:
        name: Gene name
        begin: 0-based absolute start of the first codon
        end: Absolute end, exclusive
        minors: Expected minor variants
        drms: Known drug resistance mutation signatures
    """
    name: str
    begin: int
    end: int
    minors: List[MinorVariant] = field(default_factory=list)
    drms: List[DRMSignature] = field(default_factory=list)


@dataclass
class TargetConfig:
    """Genes of interest plus an optional reference sequence."""
    genes: List[TargetGene] = field(default_factory=list)
    reference_sequence: str = ""

    @property
    def num_expected_minors(self) -> int:
        return sum(len(gene.minors) for gene in self.genes)

    @property
    def has_reference(self) -> bool:
        return bool(self.reference_sequence)


@dataclass
class VariantCodon:
    """An accepted (or, in debug mode, recorded) non-reference codon."""
    codon: str
    amino_acid: str
    count: int
    frequency: float
    p_value: float
    known_drm: str = ""
    haplotype_hits: List[bool] = field(default_factory=list)


@dataclass
class VariantPosition:
    """One codon locus of a gene with its calls.

    Attributes:
        gene_name: Owning gene
        position: 1-based codon index relative to the gene begin
        abs_position: 0-based absolute position of the first codon base
        ref_codon: Reference (or majority) codon
        ref_amino_acid: Translation of ref_codon
        alt_ref_codon: Dominant codon differing from the reference, if any
        alt_ref_amino_acid: Translation of alt_ref_codon
        coverage: Reads contributing a gap-free, in-window, valid codon
        amino_acid_to_codons: Calls grouped by amino acid
        msa: Column counts around the locus for reporting
    """
    gene_name: str
    position: int
    abs_position: int
    ref_codon: str
    ref_amino_acid: str
    alt_ref_codon: Optional[str] = None
    alt_ref_amino_acid: Optional[str] = None
    coverage: int = 0
    amino_acid_to_codons: Dict[str, List[VariantCodon]] = field(default_factory=dict)
    msa: List[Dict] = field(default_factory=list)

    @property
    def has_calls(self) -> bool:
        return any(self.amino_acid_to_codons.values())

    def iter_codons(self):
        """Yield accepted codons ordered by amino acid, then call order."""
        for amino_acid in sorted(self.amino_acid_to_codons):
            yield from self.amino_acid_to_codons[amino_acid]

    def find_codon(self, codon: str) -> Optional[VariantCodon]:
        for variant_codon in self.iter_codons():
            if variant_codon.codon == codon:
                return variant_codon
        return None

    def is_reference(self, codon: str) -> bool:
        return codon == self.ref_codon or codon == self.alt_ref_codon


@dataclass
class VariantGene:
    """Variant positions of one gene keyed by 1-based codon index."""
    gene_name: str
    gene_offset: int
    positions: Dict[int, VariantPosition] = field(default_factory=dict)


class HaplotypeFlag(Enum):
    """Reasons a group of reads is not reported as a haplotype."""
    OFFTARGET = "offtarget"
    LOW_COV = "low_coverage"
    WITH_GAP = "with_gap"
    WITH_HETERODUPLEX = "with_heteroduplex"
    PARTIAL = "partial"


@dataclass
class Haplotype:
    """Reads sharing one codon vector over all variant positions.

    Attributes:
        codons: One codon per globally accepted variant position
        read_names: Names of the contributing reads
        read_indices: Indices of the contributing rows in the MSA
        flags: Classification reasons; empty for generators
        soft_collapses: Fractional read mass received from filtered haplotypes
        name: Label assigned after ranking
        global_frequency: Share of all generator reads
    """
    codons: Tuple[str, ...]
    read_names: List[str] = field(default_factory=list)
    read_indices: List[int] = field(default_factory=list)
    flags: Set[HaplotypeFlag] = field(default_factory=set)
    soft_collapses: float = 0.0
    name: str = ""
    global_frequency: float = 0.0

    @property
    def size(self) -> int:
        return len(self.read_names)

    @property
    def is_generator(self) -> bool:
        return not self.flags

    @property
    def is_offtarget(self) -> bool:
        return HaplotypeFlag.OFFTARGET in self.flags

    @property
    def is_low_coverage(self) -> bool:
        return HaplotypeFlag.LOW_COV in self.flags

    @property
    def has_gap(self) -> bool:
        return HaplotypeFlag.WITH_GAP in self.flags

    @property
    def has_heteroduplex(self) -> bool:
        return HaplotypeFlag.WITH_HETERODUPLEX in self.flags

    @property
    def is_partial(self) -> bool:
        return HaplotypeFlag.PARTIAL in self.flags

    def add_read(self, name: str, index: int) -> None:
        self.read_names.append(name)
        self.read_indices.append(index)


@dataclass
class ReadCounts:
    """Read accounting over all haplotypes, bucketed by rejection reason."""
    healthy_reported: int = 0
    healthy_low_coverage: int = 0
    all_damaged: int = 0
    marginal_with_gaps: int = 0
    marginal_with_heteroduplexes: int = 0
    marginal_partial_reads: int = 0

    @property
    def total(self) -> int:
        return (
            self.healthy_reported
            + self.healthy_low_coverage
            + self.all_damaged
            + self.marginal_with_gaps
            + self.marginal_with_heteroduplexes
            + self.marginal_partial_reads
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "healthy_reported": self.healthy_reported,
            "healthy_low_coverage": self.healthy_low_coverage,
            "all_damaged": self.all_damaged,
            "marginal_with_gaps": self.marginal_with_gaps,
            "marginal_with_heteroduplexes": self.marginal_with_heteroduplexes,
            "marginal_partial_reads": self.marginal_partial_reads,
        }


@dataclass
class PerformanceSummary:
    """Validation of calls against expected minor variants."""
    true_positive_rate: float
    false_positive_rate: float
    num_tests: int
    num_false_positives: int
    accuracy: float

    def to_dict(self) -> Dict:
        return {
            "true_positive_rate": self.true_positive_rate,
            "false_positive_rate": self.false_positive_rate,
            "num_tests": self.num_tests,
            "num_false_positives": self.num_false_positives,
            "accuracy": self.accuracy,
        }
