"""
codonphase: amino-acid minority variant calling and haplotype phasing

Calls codon-level minority variants from an alignment of sequencing reads over
one or more genes and reconstructs read-backed haplotypes from the calls.
"""

__version__ = "0.3.0"

from codonphase.config import CallerConfig, get_config
from codonphase.validation import validate_msa_rows, validate_target_config
from codonphase.logging import setup_logging, get_logger

__all__ = [
    "CallerConfig",
    "get_config",
    "validate_msa_rows",
    "validate_target_config",
    "setup_logging",
    "get_logger",
    "__version__",
]
