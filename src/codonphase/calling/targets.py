"""
Loading of target configurations and reference sequences.

A target configuration is a JSON document::

    {
      "genes": [
        {
          "name": "RT",
          "begin": 2550,
          "end": 3870,
          "minors": [{"position": 103, "aminoacid": "N", "codon": "AAC"}],
          "drms": [{"name": "NNRTI", "positions": ["K103NS", "Y181C"]}]
        }
      ],
      "reference_sequence": "optional, same coordinates as the MSA window"
    }
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from Bio import SeqIO

from .models import DRMSignature, MinorVariant, TargetConfig, TargetGene

logger = logging.getLogger(__name__)


def target_gene_from_dict(data: Dict[str, Any]) -> TargetGene:
    """Build a TargetGene from its JSON representation.

    Raises:
        ValueError: If required keys are missing or malformed
    """
    try:
        name = str(data["name"])
        begin = int(data["begin"])
        end = int(data["end"])
    except KeyError as e:
        raise ValueError(f"Target gene is missing key {e}") from e
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid coordinates for target gene: {e}") from e

    minors = []
    for minor in data.get("minors", []):
        try:
            minors.append(
                MinorVariant(
                    position=int(minor["position"]),
                    amino_acid=str(minor["aminoacid"]).upper(),
                    codon=str(minor["codon"]).upper(),
                )
            )
        except KeyError as e:
            raise ValueError(f"Minor variant of gene '{name}' is missing key {e}") from e

    drms = [
        DRMSignature.from_notation(str(drm["name"]), list(drm.get("positions", [])))
        for drm in data.get("drms", [])
    ]

    return TargetGene(name=name, begin=begin, end=end, minors=minors, drms=drms)


def target_config_from_dict(data: Dict[str, Any]) -> TargetConfig:
    """Build a TargetConfig from its JSON representation."""
    genes = [target_gene_from_dict(gene) for gene in data.get("genes", [])]
    reference = str(data.get("reference_sequence", "")).upper()
    return TargetConfig(genes=genes, reference_sequence=reference)


def load_target_config(
    filepath: Union[str, Path],
    reference_path: Optional[Union[str, Path]] = None,
) -> TargetConfig:
    """Load a target configuration file.

    Args:
        filepath: Path to the JSON target configuration
        reference_path: Optional FASTA whose first record replaces the
            configured reference sequence

    Raises:
        FileNotFoundError: If a file doesn't exist
        ValueError: If the file is not valid JSON or malformed
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Target configuration not found: {filepath}")

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse target configuration {filepath}: {e}") from e

    config = target_config_from_dict(data)
    if reference_path is not None:
        config.reference_sequence = load_reference_sequence(reference_path)

    logger.info(
        f"Loaded {len(config.genes)} target gene(s), "
        f"{config.num_expected_minors} expected minor(s) from {path.name}"
    )
    return config


def load_reference_sequence(filepath: Union[str, Path]) -> str:
    """Return the first sequence of a FASTA file, uppercased.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file has no records
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Reference file not found: {filepath}")

    record = next(SeqIO.parse(str(path), "fasta"), None)
    if record is None:
        raise ValueError(f"No sequences found in reference file: {filepath}")
    return str(record.seq).upper()
