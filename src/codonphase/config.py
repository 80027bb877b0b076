"""
codonphase configuration module.

Thresholds and switches of a calling run live on a single dataclass instead of
module constants.

Configuration Priority (highest to lowest):
1. Explicit constructor arguments / CLI flags
2. Environment variables
3. Defaults

Environment Variables:
    CODONPHASE_ALPHA          - Significance level after correction
    CODONPHASE_MIN_PERCENT    - Minimal call frequency in percent
    CODONPHASE_MAX_PERCENT    - Majority share above which a codon becomes alt reference
    CODONPHASE_LOW_COV_READS  - Haplotypes with fewer reads are flagged low coverage
"""

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_config_instance: Optional["CallerConfig"] = None

# Environment variable, attribute, type and default of the overridable fields
_ENV_FIELDS = {
    "CODONPHASE_ALPHA": ("alpha", float, 0.01),
    "CODONPHASE_MIN_PERCENT": ("minimal_percent", float, 0.0),
    "CODONPHASE_MAX_PERCENT": ("maximal_percent", float, 100.0),
    "CODONPHASE_LOW_COV_READS": ("low_coverage_reads", int, 10),
}


@dataclass
class CallerConfig:
    """
    Configuration of one variant calling and phasing run.

    Attributes:
        alpha: Significance level applied to corrected p-values
        variable_site_fraction: Codons with a share below this are variable
        low_coverage_reads: Haplotypes with fewer reads are flagged LOW_COV
        label_alphabet_size: Number of letters used for haplotype names
        msa_context_flank: Columns reported on either side of a codon
        minimal_percent: Calls below this frequency (percent) are dropped
        maximal_percent: Majority share (percent) above which a codon that
            differs from the reference becomes the alternate reference
        drm_only: Only report calls matching a known DRM
        merge_outliers: Soft collapse filtered haplotypes onto generators
        debug: Report every tested codon, bypassing all policies
        verbose: Debug logging and filtered haplotypes in the report

    alpha, low_coverage_reads, minimal_percent and maximal_percent left as
    None are taken from the environment, else from their defaults.
    """

    alpha: Optional[float] = None
    variable_site_fraction: float = 0.8
    low_coverage_reads: Optional[int] = None
    label_alphabet_size: int = 26
    msa_context_flank: int = 3
    minimal_percent: Optional[float] = None
    maximal_percent: Optional[float] = None

    drm_only: bool = False
    merge_outliers: bool = False
    debug: bool = False
    verbose: bool = False

    use_environment: bool = field(default=True, repr=False)

    def __post_init__(self):
        # Fields left as None were not passed explicitly
        for env_name, (attr, cast, default) in _ENV_FIELDS.items():
            if getattr(self, attr) is not None:
                continue
            value = self._load_from_environment(env_name, cast) if self.use_environment else None
            setattr(self, attr, default if value is None else value)

    @staticmethod
    def _load_from_environment(env_name: str, cast: type) -> Optional[Any]:
        """Read one override from the environment; None if unset or invalid."""
        raw = os.environ.get(env_name)
        if not raw:
            return None
        try:
            return cast(raw)
        except ValueError:
            logger.warning(f"Ignoring {env_name}={raw!r}: not a valid {cast.__name__}")
            return None

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        if not 0.0 < self.alpha <= 1.0:
            errors.append(f"alpha must be in (0, 1], got {self.alpha}")
        if not 0.0 < self.variable_site_fraction <= 1.0:
            errors.append(
                f"variable_site_fraction must be in (0, 1], got {self.variable_site_fraction}"
            )
        if self.low_coverage_reads < 0:
            errors.append(f"low_coverage_reads must be >= 0, got {self.low_coverage_reads}")
        if not 1 <= self.label_alphabet_size <= 26:
            errors.append(
                f"label_alphabet_size must be between 1 and 26, got {self.label_alphabet_size}"
            )
        if self.msa_context_flank < 0:
            errors.append(f"msa_context_flank must be >= 0, got {self.msa_context_flank}")
        for name in ("minimal_percent", "maximal_percent"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                errors.append(f"{name} must be between 0 and 100, got {value}")
        if self.minimal_percent > self.maximal_percent:
            errors.append(
                f"minimal_percent ({self.minimal_percent}) exceeds "
                f"maximal_percent ({self.maximal_percent})"
            )

        return len(errors) == 0, errors

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "use_environment"
        }


def get_config() -> CallerConfig:
    """
    Get the global configuration instance.

    Returns:
        CallerConfig: The singleton configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = CallerConfig()
    return _config_instance


def reset_config() -> None:
    """Reset the global configuration instance (useful for testing)."""
    global _config_instance
    _config_instance = None
