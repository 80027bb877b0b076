"""
Input validation for calling runs.

Problems that would otherwise surface deep inside the scan (genes outside the
alignment window, malformed expected minors, ragged rows) are reported here
before any computation starts.
"""

from typing import List, Optional, Tuple

from codonphase.calling.codons import FROM_CODON
from codonphase.calling.models import TargetConfig
from codonphase.calling.msa import MSAByRows


def validate_target_config(
    target_config: TargetConfig,
    msa: Optional[MSAByRows] = None,
) -> Tuple[bool, List[str], List[str]]:
    """
    Validate genes, expected minors and the reference of a target configuration.

    Args:
        target_config: Configuration to validate
        msa: Optional alignment; genes are checked against its window

    Returns:
        Tuple of (is_valid, errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []
    seen_names = set()

    for gene in target_config.genes:
        label = f"Gene '{gene.name}'"

        if gene.name in seen_names:
            errors.append(f"{label}: duplicate gene name")
        seen_names.add(gene.name)

        if gene.begin < 0:
            errors.append(f"{label}: begin must be >= 0, got {gene.begin}")
        if gene.end - gene.begin < 3:
            errors.append(f"{label}: [{gene.begin}, {gene.end}) is shorter than one codon")
        elif (gene.end - gene.begin) % 3 != 0:
            warnings.append(f"{label}: length {gene.end - gene.begin} is not a multiple of 3")

        if msa is not None and (gene.end <= msa.begin_pos or gene.begin >= msa.end_pos):
            warnings.append(
                f"{label}: [{gene.begin}, {gene.end}) does not overlap the alignment "
                f"window [{msa.begin_pos}, {msa.end_pos})"
            )

        num_codons = (gene.end - gene.begin) // 3
        for minor in gene.minors:
            prefix = f"{label}: expected minor {minor.amino_acid}{minor.position}/{minor.codon}"
            if not 1 <= minor.position <= max(num_codons, 0):
                errors.append(f"{prefix}: position outside 1..{num_codons}")
            if minor.codon not in FROM_CODON:
                errors.append(f"{prefix}: '{minor.codon}' is not a codon")
            elif FROM_CODON[minor.codon] != minor.amino_acid:
                errors.append(
                    f"{prefix}: codon translates to {FROM_CODON[minor.codon]}, "
                    f"not {minor.amino_acid}"
                )

        for drm in gene.drms:
            if not drm.mutations:
                warnings.append(f"{label}: DRM '{drm.name}' lists no mutations")
            for mutation in drm.mutations:
                if not 1 <= mutation.position <= max(num_codons, 0):
                    warnings.append(
                        f"{label}: DRM '{drm.name}' position {mutation.position} "
                        f"outside 1..{num_codons}"
                    )

        if target_config.reference_sequence and gene.end > len(target_config.reference_sequence):
            warnings.append(
                f"{label}: end {gene.end} exceeds reference length "
                f"{len(target_config.reference_sequence)}"
            )

    if target_config.reference_sequence:
        invalid = set(target_config.reference_sequence) - set("ACGTN")
        if invalid:
            warnings.append(f"Reference contains unexpected characters: {sorted(invalid)}")

    return len(errors) == 0, errors, warnings


def validate_msa_rows(msa: MSAByRows) -> Tuple[bool, List[str], List[str]]:
    """
    Validate an alignment before calling.

    Returns:
        Tuple of (is_valid, errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []
    width = msa.end_pos - msa.begin_pos

    if not msa.rows:
        errors.append("Alignment contains no reads")
        return False, errors, warnings

    ragged = [(row.name, len(row)) for row in msa.rows if len(row) != width]
    if ragged:
        errors.append(
            f"Rows differ from window width {width}: "
            f"{ragged[:5]}{'...' if len(ragged) > 5 else ''}"
        )

    names = [row.name for row in msa.rows]
    if len(set(names)) != len(names):
        warnings.append("Alignment contains duplicate read names")

    empty = [row.name for row in msa.rows if row.end <= row.begin]
    if empty:
        warnings.append(f"{len(empty)} read(s) cover no position of the window")

    return len(errors) == 0, errors, warnings
