"""
Statistical testing of non-reference codons.

The count expected from sequencing errors alone is derived from a per-base
error model. Observed and expected counts are compared with Fisher's exact
test and the p-value is multiplied by the global number of tests
(Bonferroni correction).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from scipy.stats import fisher_exact

from .codons import GAP
from .models import ErrorEstimates, PerformanceSummary, TargetGene

logger = logging.getLogger(__name__)


def codon_probability(ref_codon: str, codon: str, error: ErrorEstimates) -> float:
    """Probability that ``ref_codon`` is read as ``codon`` by error alone."""
    p = 1.0
    for a, b in zip(ref_codon, codon):
        if a == GAP or b == GAP:
            p *= error.deletion
        elif a != b:
            p *= error.substitution
        else:
            p *= error.match
    return p


def expected_count(coverage: int, ref_codon: str, codon: str, error: ErrorEstimates) -> float:
    return coverage * codon_probability(ref_codon, codon, error)


def corrected_p_value(observed: int, coverage: int, expected: float, num_tests: int) -> float:
    """Bonferroni corrected one-sided Fisher exact p-value.

    Tests whether ``observed`` out of ``coverage`` exceeds the count expected
    from errors; the result is clamped to 1.
    """
    expected_int = int(round(expected))
    table = [
        [observed, coverage - observed],
        [expected_int, coverage - expected_int],
    ]
    _, p = fisher_exact(table, alternative="greater")
    p = float(p) * num_tests
    return min(p, 1.0)


def is_variable_site(count: int, coverage: int, threshold: float = 0.8) -> bool:
    """A codon is at a variable site if its share of coverage is below threshold."""
    if coverage <= 0:
        return False
    return count / coverage < threshold


def find_drms(gene: TargetGene, ref_aa: str, position: int, alt_aa: str) -> str:
    """Names of the gene's DRM signatures that contain this call, joined by ``' + '``."""
    names = []
    for drm in gene.drms:
        for mutation in drm.mutations:
            if (
                mutation.position == position
                and mutation.alt_aa == alt_aa
                and mutation.ref_aa == ref_aa
            ):
                names.append(drm.name)
                break
    return " + ".join(names)


def matches_expected_minor(gene: TargetGene, position: int, amino_acid: str, codon: str) -> bool:
    return any(
        minor.position == position and minor.amino_acid == amino_acid and minor.codon == codon
        for minor in gene.minors
    )


class AcceptReason(Enum):
    """Why a tested codon was recorded or rejected."""
    DEBUG = "debug"
    EXPECTED_MINOR = "expected_minor"
    SIGNIFICANT = "significant"
    NOT_SIGNIFICANT = "not_significant"
    NOT_VARIABLE = "not_variable"
    KNOWN_DRM = "known_drm"
    NOT_DRM = "not_drm"
    BELOW_MINIMAL_PERCENT = "below_minimal_percent"


@dataclass(frozen=True)
class AcceptDecision:
    accepted: bool
    reason: AcceptReason


def accept_call(
    p_value: float,
    frequency: float,
    variable_site: bool,
    is_expected_minor: bool,
    known_drm: str,
    has_expected_minors: bool,
    alpha: float,
    drm_only: bool = False,
    debug: bool = False,
    minimal_percent: float = 0.0,
) -> AcceptDecision:
    """Apply the acceptance policy to one tested codon.

    Debug mode records everything. Otherwise an expected minor is always
    accepted; in DRM-only mode a call is accepted exactly when it names a
    known DRM; with expected minors configured the site must be
    variable and significant; without, significance alone suffices.
    The minimal-percent floor applies to every call outside debug mode.
    """
    if debug:
        return AcceptDecision(True, AcceptReason.DEBUG)

    if is_expected_minor:
        decision = AcceptDecision(True, AcceptReason.EXPECTED_MINOR)
    elif drm_only:
        if known_drm:
            decision = AcceptDecision(True, AcceptReason.KNOWN_DRM)
        else:
            decision = AcceptDecision(False, AcceptReason.NOT_DRM)
    elif has_expected_minors and not variable_site:
        decision = AcceptDecision(False, AcceptReason.NOT_VARIABLE)
    elif p_value < alpha:
        decision = AcceptDecision(True, AcceptReason.SIGNIFICANT)
    else:
        decision = AcceptDecision(False, AcceptReason.NOT_SIGNIFICANT)

    if decision.accepted and frequency * 100.0 < minimal_percent:
        return AcceptDecision(False, AcceptReason.BELOW_MINIMAL_PERCENT)
    return decision


@dataclass
class PerformanceTally:
    """Confusion counts of the statistical decision against expected minors."""
    true_positives: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    true_negatives: int = 0

    def record(self, significant: bool, is_expected_minor: bool) -> None:
        if significant:
            if is_expected_minor:
                self.true_positives += 1
            else:
                self.false_positives += 1
        else:
            if is_expected_minor:
                self.false_negatives += 1
            else:
                self.true_negatives += 1

    @property
    def total(self) -> int:
        return self.true_positives + self.false_positives + self.false_negatives + self.true_negatives

    def summary(self, num_tests: int, num_expected_minors: int) -> Optional[PerformanceSummary]:
        """Rates over all tests; None when no expected minors are configured."""
        if num_expected_minors <= 0:
            return None

        negatives = num_tests - num_expected_minors
        if negatives > 0:
            false_positive_rate = self.false_positives / negatives
        else:
            logger.warning(
                f"{num_tests} test(s) for {num_expected_minors} expected minor(s); "
                "false positive rate is undefined"
            )
            false_positive_rate = 0.0

        accuracy = (self.true_positives + self.true_negatives) / self.total if self.total else 0.0

        return PerformanceSummary(
            true_positive_rate=self.true_positives / num_expected_minors,
            false_positive_rate=false_positive_rate,
            num_tests=num_tests,
            num_false_positives=self.false_positives,
            accuracy=accuracy,
        )


def significant_call(
    p_value: float,
    variable_site: bool,
    has_expected_minors: bool,
    alpha: float,
) -> bool:
    """Statistical decision used for performance measurement."""
    if has_expected_minors and not variable_site:
        return False
    return p_value < alpha
