"""
By-row and by-column views of an aligned read set.

Reads are stored as rows spanning the whole alignment window. Positions a read
does not cover hold the pad character ``' '``; deletions hold ``'-'``. Each
row remembers the absolute span it covers so codon extraction can reject
positions outside it without touching the bases.

Aligned FASTA files are read with Biopython; leading and trailing gap runs of
each record are converted to pads since they mark the read boundaries rather
than deletions.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from Bio import SeqIO

from .codons import GAP, PAD

logger = logging.getLogger(__name__)

COLUMN_ALPHABET = ("A", "C", "G", "T", "-", "N")


@dataclass
class MSARow:
    """A single aligned read.

    Attributes:
        name: Read identity
        bases: Aligned bases across the whole window (pads outside the read)
        begin: Absolute position of the first covered base
        end: Absolute position after the last covered base
    """
    name: str
    bases: str
    begin: int
    end: int

    def __len__(self) -> int:
        return len(self.bases)


@dataclass
class MSAByRows:
    """Rows of an alignment window ``[begin_pos, end_pos)``."""
    rows: List[MSARow] = field(default_factory=list)
    begin_pos: int = 0
    end_pos: int = 0

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def num_rows(self) -> int:
        return len(self.rows)

    @classmethod
    def from_sequences(
        cls,
        sequences: Iterable[Tuple[str, str]],
        begin_pos: int = 0,
    ) -> "MSAByRows":
        """Build rows from ``(name, aligned_sequence)`` pairs.

        Sequences must already share the window coordinates; terminal gap runs
        become pads.

        Raises:
            ValueError: If no sequences are given
        """
        rows: List[MSARow] = []
        width = 0
        for name, sequence in sequences:
            bases, begin, end = _pad_terminal_gaps(sequence.upper())
            rows.append(MSARow(name=name, bases=bases, begin=begin_pos + begin, end=begin_pos + end))
            width = max(width, len(bases))

        if not rows:
            raise ValueError("No aligned reads provided")

        # Shorter rows are padded to the common window width
        for row in rows:
            if len(row.bases) < width:
                row.bases = row.bases.ljust(width, PAD)

        return cls(rows=rows, begin_pos=begin_pos, end_pos=begin_pos + width)

    def codon_at(self, row_index: int, position: int) -> Optional[str]:
        """Return the three bases of a row starting at absolute ``position``.

        Returns None when the triplet lies outside the window or the row.
        """
        row = self.rows[row_index]
        offset = position - self.begin_pos
        if offset < 0 or offset + 3 > len(row.bases):
            return None
        return row.bases[offset:offset + 3]


def _pad_terminal_gaps(sequence: str) -> Tuple[str, int, int]:
    """Replace leading/trailing gaps by pads; return bases and covered span."""
    stripped = sequence.strip(GAP + PAD)
    if not stripped:
        return PAD * len(sequence), 0, 0
    begin = len(sequence) - len(sequence.lstrip(GAP + PAD))
    end = begin + len(stripped)
    bases = PAD * begin + stripped + PAD * (len(sequence) - end)
    return bases, begin, end


def parse_aligned_fasta(
    filepath: Union[str, Path],
    begin_pos: int = 0,
) -> MSAByRows:
    """Parse an aligned FASTA file of reads into an MSAByRows.

    Args:
        filepath: Path to the aligned reads
        begin_pos: Absolute coordinate of the first alignment column

    Returns:
        MSAByRows over all records

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file has no records
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Alignment file not found: {filepath}")

    records = [(record.id, str(record.seq)) for record in SeqIO.parse(str(path), "fasta")]
    if not records:
        raise ValueError(f"No sequences found in alignment file: {filepath}")

    msa = MSAByRows.from_sequences(records, begin_pos=begin_pos)
    logger.info(
        f"Loaded {msa.num_rows} aligned reads over window "
        f"[{msa.begin_pos}, {msa.end_pos}) from {path.name}"
    )
    return msa


@dataclass
class MSAColumn:
    """Base counts at one absolute position."""
    position: int
    counts: Dict[str, int] = field(default_factory=dict)

    def __getitem__(self, base: str) -> int:
        return self.counts.get(base, 0)

    @property
    def depth(self) -> int:
        return sum(self.counts.values())

    @property
    def majority_base(self) -> str:
        """Most frequent base; ties resolve in ``A C G T - N`` order."""
        best = COLUMN_ALPHABET[0]
        for base in COLUMN_ALPHABET:
            if self[base] > self[best]:
                best = base
        return best


class MSAByColumns:
    """Per-position base counts derived from an MSAByRows."""

    def __init__(self, msa: MSAByRows):
        self.begin_pos = msa.begin_pos
        self.end_pos = msa.end_pos
        width = msa.end_pos - msa.begin_pos
        counters = [Counter() for _ in range(width)]

        for row in msa.rows:
            for offset, base in enumerate(row.bases[:width]):
                if base == PAD:
                    continue
                counters[offset][base if base in COLUMN_ALPHABET else "N"] += 1

        self.columns: List[MSAColumn] = [
            MSAColumn(
                position=self.begin_pos + offset,
                counts={base: counter.get(base, 0) for base in COLUMN_ALPHABET},
            )
            for offset, counter in enumerate(counters)
        ]

    def __len__(self) -> int:
        return len(self.columns)

    def __contains__(self, position: int) -> bool:
        return self.begin_pos <= position < self.end_pos

    def __getitem__(self, position: int) -> MSAColumn:
        if position not in self:
            raise IndexError(f"Position {position} outside window [{self.begin_pos}, {self.end_pos})")
        return self.columns[position - self.begin_pos]
