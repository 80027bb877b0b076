"""
Result documents for variant calls and haplotypes.

The JSON document lists, per gene, every variant position with its accepted
codons and MSA context, the ranked haplotypes and the read accounting. A flat
table of calls is also available as a pandas DataFrame for TSV export.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from ..config import CallerConfig, get_config
from .caller import CallingResult
from .models import Haplotype, PerformanceSummary, VariantGene, VariantPosition

logger = logging.getLogger(__name__)

CALL_COLUMNS = [
    "GENE",
    "POSITION",
    "ABS_POSITION",
    "REF_CODON",
    "REF_AA",
    "ALT_CODON",
    "ALT_AA",
    "FREQUENCY",
    "P_VALUE",
    "COVERAGE",
    "DRM",
    "HAPLOTYPES",
]


def variant_position_to_dict(position: VariantPosition) -> Dict[str, Any]:
    document = {
        "position": position.position,
        "ref_codon": position.ref_codon,
        "ref_aa": position.ref_amino_acid,
        "codons": [
            {
                "codon": codon.codon,
                "aa": codon.amino_acid,
                "frequency": codon.frequency,
                "p_value": codon.p_value,
                "drm": codon.known_drm,
                "haplotype_hits": list(codon.haplotype_hits),
            }
            for codon in position.iter_codons()
        ],
        "coverage": position.coverage,
        "msa_context": [dict(column) for column in position.msa],
    }
    if position.alt_ref_codon:
        document["alt_ref_codon"] = position.alt_ref_codon
        document["alt_ref_aa"] = position.alt_ref_amino_acid
    return document


def variant_gene_to_dict(gene: VariantGene) -> Optional[Dict[str, Any]]:
    """Gene section, or None if the gene has no variant positions."""
    positions = [
        variant_position_to_dict(position)
        for position in gene.positions.values()
        if position.has_calls
    ]
    if not positions:
        return None
    return {"gene_name": gene.gene_name, "variant_positions": positions}


def haplotype_to_dict(haplotype: Haplotype, include_soft_collapses: bool = False) -> Dict[str, Any]:
    document = {
        "name": haplotype.name,
        "frequency": haplotype.global_frequency,
        "size": haplotype.size,
        "codons": list(haplotype.codons),
    }
    if include_soft_collapses:
        document["soft_collapses"] = haplotype.soft_collapses
    return document


def filtered_haplotype_to_dict(haplotype: Haplotype) -> Dict[str, Any]:
    return {
        "name": "-",
        "size": haplotype.size,
        "codons": list(haplotype.codons),
        "flags": sorted(flag.value for flag in haplotype.flags),
    }


def build_document(result: CallingResult, config: Optional[CallerConfig] = None) -> Dict[str, Any]:
    """Assemble the result document of one run."""
    config = config or get_config()

    genes = []
    for gene in result.variant_genes:
        gene_document = variant_gene_to_dict(gene)
        if gene_document is not None:
            genes.append(gene_document)

    document: Dict[str, Any] = {
        "genes": genes,
        "haplotypes": [
            haplotype_to_dict(h, include_soft_collapses=config.merge_outliers)
            for h in result.generators
        ],
        "haplotype_read_counts": result.read_counts.to_dict(),
    }
    if config.verbose:
        document["filtered_haplotypes"] = [filtered_haplotype_to_dict(h) for h in result.filtered]
    return document


def write_json(document: Dict[str, Any], path: Union[str, Path]) -> None:
    """Write a document as deterministic, indented JSON."""
    path = Path(path)
    with open(path, "w") as f:
        json.dump(document, f, indent=2, sort_keys=True)
        f.write("\n")
    logger.info(f"Wrote {path}")


def calls_dataframe(result: CallingResult) -> pd.DataFrame:
    """One row per accepted codon."""
    rows: List[Dict[str, Any]] = []
    for gene in result.variant_genes:
        for position in gene.positions.values():
            for codon in position.iter_codons():
                carriers = [
                    haplotype.name
                    for haplotype, hit in zip(result.generators, codon.haplotype_hits)
                    if hit
                ]
                rows.append(
                    {
                        "GENE": gene.gene_name,
                        "POSITION": position.position,
                        "ABS_POSITION": position.abs_position,
                        "REF_CODON": position.ref_codon,
                        "REF_AA": position.ref_amino_acid,
                        "ALT_CODON": codon.codon,
                        "ALT_AA": codon.amino_acid,
                        "FREQUENCY": codon.frequency,
                        "P_VALUE": codon.p_value,
                        "COVERAGE": position.coverage,
                        "DRM": codon.known_drm,
                        "HAPLOTYPES": ",".join(carriers),
                    }
                )
    return pd.DataFrame(rows, columns=CALL_COLUMNS)


def write_calls_tsv(result: CallingResult, path: Union[str, Path]) -> pd.DataFrame:
    df = calls_dataframe(result)
    df.to_csv(path, sep="\t", index=False)
    logger.info(f"Wrote {len(df)} call(s) to {path}")
    return df


def write_performance(summary: PerformanceSummary, path: Union[str, Path]) -> None:
    """Write the validation summary against expected minors."""
    write_json(summary.to_dict(), path)
