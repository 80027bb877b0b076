"""
Tests for haplotype clustering and soft collapsing.

Tests cover:
- Variant position collection
- Per-codon classification flags
- Exact-signature clustering and partial reads
- Generator ranking and labels
- Haplotype hit marking and read accounting
- Posterior reweighting and mass conservation
"""

import sys
from pathlib import Path

import pytest

# Add src to path for codonphase imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from codonphase.calling import (
    ErrorEstimates,
    Haplotype,
    HaplotypeFlag,
    MSAByRows,
    TransitionTable,
    VariantCodon,
    VariantGene,
    VariantPosition,
    cluster_reads,
    haplotype_label,
    posterior_weights,
    rank_generators,
    soft_collapse,
)
from codonphase.calling.phasing import (
    classify_codon,
    collect_variant_positions,
    count_reads,
    mark_haplotype_hits,
    split_haplotypes,
)
from codonphase.calling.reweight import joint_transition_probability

ERROR = ErrorEstimates.from_rates(substitution=0.005, deletion=0.01)


def make_position(position, abs_position, ref_codon, ref_aa, calls):
    variant_position = VariantPosition(
        gene_name="g",
        position=position,
        abs_position=abs_position,
        ref_codon=ref_codon,
        ref_amino_acid=ref_aa,
        coverage=100,
    )
    for codon, aa in calls:
        variant_position.amino_acid_to_codons.setdefault(aa, []).append(
            VariantCodon(codon=codon, amino_acid=aa, count=10, frequency=0.1, p_value=0.001)
        )
    return variant_position


def two_positions():
    return [
        make_position(1, 0, "AAA", "K", [("AAC", "N")]),
        make_position(2, 3, "GGG", "G", [("GGA", "G")]),
    ]


def make_msa(sequences):
    return MSAByRows.from_sequences([(f"read{i}", seq) for i, seq in enumerate(sequences)])


class TestVariantPositions:
    """Tests for the global set of variant positions."""

    def test_collect_only_positions_with_calls(self):
        """Positions without accepted codons do not take part in phasing."""
        with_calls = make_position(1, 0, "AAA", "K", [("AAC", "N")])
        without_calls = make_position(2, 3, "GGG", "G", [])
        gene = VariantGene(gene_name="g", gene_offset=0, positions={1: with_calls, 2: without_calls})

        assert collect_variant_positions([gene]) == [with_calls]

    def test_classify_codon(self):
        """Each kind of damage raises its own flag."""
        position = make_position(1, 0, "AAA", "K", [("AAC", "N")])

        assert classify_codon("AAA", position) == set()
        assert classify_codon("AAC", position) == set()
        assert classify_codon("AAT", position) == {HaplotypeFlag.OFFTARGET}
        assert classify_codon("A-A", position) == {HaplotypeFlag.WITH_GAP}
        assert classify_codon("ANA", position) == {HaplotypeFlag.WITH_HETERODUPLEX}
        assert classify_codon("   ", position) == {HaplotypeFlag.PARTIAL}

    def test_alternate_reference_is_not_offtarget(self):
        """Reads carrying the alternate reference are legitimate."""
        position = make_position(1, 0, "AAA", "K", [("AAC", "N")])
        position.alt_ref_codon = "AAG"
        assert classify_codon("AAG", position) == set()


class TestClustering:
    """Tests for exact-signature read clustering."""

    def test_identical_reads_collapse(self):
        """Two full-length reads with identical codons form one haplotype."""
        msa = make_msa(["AACGGA", "AACGGA"])
        haplotypes = cluster_reads(msa, two_positions(), low_coverage_reads=2)

        assert len(haplotypes) == 1
        assert haplotypes[0].size == 2
        assert haplotypes[0].codons == ("AAC", "GGA")
        assert haplotypes[0].read_names == ["read0", "read1"]
        assert haplotypes[0].read_indices == [0, 1]
        assert haplotypes[0].is_generator

    def test_partial_read_never_merges(self):
        """A read spanning one of two positions stays in its own bucket."""
        msa = make_msa(["AACGGA", "AACGGA", "AAC---"])
        haplotypes = cluster_reads(msa, two_positions(), low_coverage_reads=2)

        assert [h.size for h in haplotypes] == [2, 1]
        partial = haplotypes[1]
        assert len(partial.codons) == 2
        assert partial.is_partial
        assert partial.is_low_coverage
        assert not partial.is_generator

    def test_codon_vector_length(self):
        """Every haplotype has one codon per variant position."""
        msa = make_msa(["AACGGA", "AAC", "AAAGGG"])
        positions = two_positions()
        for haplotype in cluster_reads(msa, positions):
            assert len(haplotype.codons) == len(positions)

    def test_flags(self):
        """Damaged reads are flagged by reason."""
        msa = make_msa(["AATGGG", "A-CGGG", "ANCGGG", "AAAGGG"])
        haplotypes = cluster_reads(msa, two_positions(), low_coverage_reads=1)

        assert haplotypes[0].flags == {HaplotypeFlag.OFFTARGET}
        assert haplotypes[1].flags == {HaplotypeFlag.WITH_GAP}
        assert haplotypes[2].flags == {HaplotypeFlag.WITH_HETERODUPLEX}
        assert haplotypes[3].is_generator

    def test_low_coverage(self):
        """Buckets below the read threshold are flagged LOW_COV."""
        msa = make_msa(["AACGGA"] * 9 + ["AAAGGG"] * 10)
        haplotypes = cluster_reads(msa, two_positions(), low_coverage_reads=10)

        assert haplotypes[0].flags == {HaplotypeFlag.LOW_COV}
        assert haplotypes[1].is_generator

    def test_every_read_counted_once(self):
        """Haplotype sizes add up to the number of scanned reads."""
        msa = make_msa(["AACGGA", "AAC", "AAAGGG", "A-AGGG", "AATGGA", "AACGGA"])
        haplotypes = cluster_reads(msa, two_positions())

        assert sum(h.size for h in haplotypes) == msa.num_rows

    def test_no_variant_positions(self):
        """Without variant positions all reads share the empty signature."""
        haplotypes = cluster_reads(make_msa(["AAA", "CCC"]), [], low_coverage_reads=1)
        assert len(haplotypes) == 1
        assert haplotypes[0].codons == ()
        assert haplotypes[0].size == 2


class TestRanking:
    """Tests for generator ranking and naming."""

    def test_labels(self):
        """Single capitals first, then capital plus lower-case letter."""
        assert haplotype_label(0) == "A"
        assert haplotype_label(25) == "Z"
        assert haplotype_label(26) == "Aa"
        assert haplotype_label(29) == "Ad"
        assert haplotype_label(51) == "Az"
        assert haplotype_label(52) == "Ba"

    def test_label_negative_index(self):
        """Negative indices are rejected."""
        with pytest.raises(ValueError):
            haplotype_label(-1)

    def test_thirty_generators(self):
        """Thirty generators are named A..Z, Aa, Ab, Ac, Ad."""
        generators = [
            Haplotype(codons=(f"{i:03d}",), read_names=[f"r{i}_{j}" for j in range(100 - i)])
            for i in range(30)
        ]
        ranked = rank_generators(generators)

        expected = [chr(ord("A") + i) for i in range(26)] + ["Aa", "Ab", "Ac", "Ad"]
        assert [h.name for h in ranked] == expected

    def test_small_alphabet(self):
        """The alphabet size is configurable."""
        assert haplotype_label(2, alphabet_size=2) == "Aa"
        assert haplotype_label(3, alphabet_size=2) == "Ab"
        assert haplotype_label(4, alphabet_size=2) == "Ba"

    def test_rank_by_size_and_frequency(self):
        """Generators are sorted by size and get their share of reads."""
        small = Haplotype(codons=("AAC",), read_names=["a"] * 10)
        large = Haplotype(codons=("AAA",), read_names=["b"] * 30)

        ranked = rank_generators([small, large])

        assert ranked == [large, small]
        assert large.name == "A"
        assert large.global_frequency == pytest.approx(0.75)
        assert small.global_frequency == pytest.approx(0.25)

    def test_split(self):
        """Flagged haplotypes are filtered."""
        clean = Haplotype(codons=("AAA",))
        flagged = Haplotype(codons=("AAT",), flags={HaplotypeFlag.OFFTARGET})

        generators, filtered = split_haplotypes([clean, flagged])

        assert generators == [clean]
        assert filtered == [flagged]

    def test_haplotype_hits(self):
        """Every accepted codon records which generators carry it."""
        positions = two_positions()
        generators = [
            Haplotype(codons=("AAA", "GGG")),
            Haplotype(codons=("AAC", "GGA")),
            Haplotype(codons=("AAC", "GGG")),
        ]

        mark_haplotype_hits(generators, positions)

        assert positions[0].find_codon("AAC").haplotype_hits == [False, True, True]
        assert positions[1].find_codon("GGA").haplotype_hits == [False, True, False]

    def test_count_reads(self):
        """Reads are bucketed once by the most severe reason."""
        generators = [Haplotype(codons=("AAA",), read_names=["r"] * 20)]
        filtered = [
            Haplotype(codons=("AAC",), read_names=["r"] * 3, flags={HaplotypeFlag.LOW_COV}),
            Haplotype(codons=("AAT",), read_names=["r"] * 4,
                      flags={HaplotypeFlag.OFFTARGET, HaplotypeFlag.LOW_COV}),
            Haplotype(codons=("A-A",), read_names=["r"] * 5,
                      flags={HaplotypeFlag.WITH_GAP, HaplotypeFlag.LOW_COV}),
            Haplotype(codons=("ANA",), read_names=["r"] * 6,
                      flags={HaplotypeFlag.WITH_HETERODUPLEX, HaplotypeFlag.LOW_COV}),
            Haplotype(codons=("   ",), read_names=["r"] * 7,
                      flags={HaplotypeFlag.PARTIAL, HaplotypeFlag.LOW_COV}),
        ]

        counts = count_reads(generators, filtered)

        assert counts.healthy_reported == 20
        assert counts.healthy_low_coverage == 3
        assert counts.all_damaged == 4
        assert counts.marginal_with_gaps == 5
        assert counts.marginal_with_heteroduplexes == 6
        assert counts.marginal_partial_reads == 7
        assert counts.total == 45


class TestSoftCollapse:
    """Tests for transition-probability reweighting."""

    def setup_method(self):
        self.table = TransitionTable.from_error_estimates(ERROR)
        self.generators = [
            Haplotype(codons=("AAC", "GGA"), read_names=["g1"] * 30),
            Haplotype(codons=("AAA", "GGG"), read_names=["g2"] * 10),
        ]

    def test_joint_probability_skips_uncovered(self):
        """Uncovered codons contribute no factor."""
        partial = Haplotype(codons=("   ", "GGA"))
        p = joint_transition_probability(partial, self.generators[0], self.table)
        assert p == pytest.approx(ERROR.match ** 3)

    def test_posterior_sums_to_one(self):
        """Posterior weights are normalized."""
        filtered = Haplotype(codons=("AAT", "GGA"), read_names=["f"] * 3)
        weights = posterior_weights(filtered, self.generators, self.table)

        assert weights.sum() == pytest.approx(1.0)
        assert weights[0] > weights[1]

    def test_mass_conservation(self):
        """Each filtered haplotype spreads exactly its size."""
        filtered = [
            Haplotype(codons=("AAT", "GGA"), read_names=["f"] * 3),
            Haplotype(codons=("   ", "GGG"), read_names=["p"] * 7),
            Haplotype(codons=("A-C", "GGA"), read_names=["d"] * 2),
        ]

        contributions = soft_collapse(filtered, self.generators, self.table)

        for haplotype, shares in zip(filtered, contributions):
            assert abs(shares.sum() - haplotype.size) < 1e-9
        total = sum(g.soft_collapses for g in self.generators)
        assert total == pytest.approx(12.0, abs=1e-9)

    def test_zero_likelihood_falls_back_to_prior(self):
        """When no generator explains a haplotype the read share is used."""
        table = TransitionTable(probabilities={
            ("AAC", "TTT"): 0.0,
            ("AAA", "TTT"): 0.0,
        })
        filtered = Haplotype(codons=("TTT", "   "), read_names=["f"] * 4)

        contributions = soft_collapse([filtered], self.generators, table)

        assert contributions[0][0] == pytest.approx(3.0)
        assert contributions[0][1] == pytest.approx(1.0)

    def test_membership_unchanged(self):
        """Soft collapsing never moves reads between groups."""
        filtered = [Haplotype(codons=("AAT", "GGA"), read_names=["f"] * 3)]
        soft_collapse(filtered, self.generators, self.table)

        assert [g.size for g in self.generators] == [30, 10]
        assert filtered[0].size == 3

    def test_no_generators(self):
        """Without generators nothing is distributed."""
        filtered = [Haplotype(codons=("AAT",), read_names=["f"])]
        assert soft_collapse(filtered, [], self.table) == []

    def test_table_from_tsv(self, tmp_path):
        """Transition tables load from TSV."""
        tsv = tmp_path / "transitions.tsv"
        tsv.write_text("from\tto\tprobability\nAAA\tAAC\t0.25\n")

        table = TransitionTable.from_tsv(tsv)

        assert table.lookup("AAA", "AAC") == 0.25
        assert table.lookup("AAA", "AAT") is None

    def test_table_missing_columns(self, tmp_path):
        """Tables without the required columns are rejected."""
        tsv = tmp_path / "bad.tsv"
        tsv.write_text("a\tb\n1\t2\n")
        with pytest.raises(ValueError, match="missing columns"):
            TransitionTable.from_tsv(tsv)
