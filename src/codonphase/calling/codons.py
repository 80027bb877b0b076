"""
Codon translation helpers backed by the Biopython standard codon table.

Only fully specified DNA triplets are recognised; stop codons translate to
``*``. Triplets containing gaps, pads or ambiguity codes are not codons.
"""

from typing import Dict, Optional

from Bio.Data import CodonTable

NUCLEOTIDES = "ACGT"
GAP = "-"
PAD = " "


def _build_codon_table(table_id: int = 1) -> Dict[str, str]:
    table = CodonTable.unambiguous_dna_by_id[table_id]
    codon_to_aa = dict(table.forward_table)
    for stop in table.stop_codons:
        codon_to_aa[stop] = "*"
    return codon_to_aa


FROM_CODON: Dict[str, str] = _build_codon_table()


def is_valid_codon(codon: Optional[str]) -> bool:
    """Return True if codon is a translatable triplet."""
    return codon is not None and codon in FROM_CODON


def translate_codon(codon: str) -> str:
    """Translate a codon to its one-letter amino acid.

    Raises:
        KeyError: If the codon is not in the translation table
    """
    return FROM_CODON[codon]


def is_ambiguous(codon: str) -> bool:
    """True if the triplet is covered and gap-free but not plain ACGT."""
    return any(base not in NUCLEOTIDES for base in codon if base not in (GAP, PAD))
