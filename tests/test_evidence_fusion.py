"""Tests for footprint × co-expression interaction matching."""

import warnings

import pandas as pd

from tissue_grn.errors import DataQualityWarning
from tissue_grn.evidence_fusion import (
    confirm_interactions,
    fuse_evidence,
    interaction_table,
)


def filtered(tf_gene_pairs, tissue="liver"):
    return pd.DataFrame({
        "TF": [tf for tf, _ in tf_gene_pairs],
        "gene_name": [g for _, g in tf_gene_pairs],
        "tissue": tissue,
    })


def pruned(pairs):
    return pd.DataFrame({
        "TF": [tf for tf, _ in pairs],
        "target": [t for _, t in pairs],
        "importance": 1.0,
        "regulation": "positive",
    })


def test_interaction_confirmed_only_with_coexpression_support() -> None:
    footprints = {"liver": filtered([("CTCF", "MYC"), ("CTCF", "G1")])}

    confirmed, _ = fuse_evidence(footprints, pruned([("Ctcf", "Myc")]))

    assert confirmed["liver"]["interaction"].tolist() == ["CTCF_MYC"]
    assert confirmed["liver"]["tissue"].tolist() == ["liver"]


def test_keys_are_case_normalized_on_both_sides() -> None:
    table = interaction_table(pd.DataFrame({"TF": ["Hnf4a"], "target": ["Apoa1"]}))

    assert table.to_dict("records") == [
        {"TF": "HNF4A", "target": "APOA1", "interaction": "HNF4A_APOA1"}
    ]


def test_duplicate_footprints_count_once() -> None:
    footprints = filtered([("CTCF", "MYC"), ("Ctcf", "MYC"), ("CTCF", "myc")])

    got = confirm_interactions(footprints, {"CTCF_MYC"}, "liver")

    assert len(got) == 1


def test_summary_counts_distinct_members() -> None:
    footprints = {"liver": filtered([("CTCF", "A"), ("CTCF", "B"), ("GATA4", "A")])}
    edges = pruned([("CTCF", "A"), ("CTCF", "B"), ("GATA4", "A")])

    _, summary = fuse_evidence(footprints, edges)

    assert summary.loc["liver"].to_dict() == {"n_interactions": 3, "n_tfs": 2, "n_targets": 2}


def test_fusion_is_deterministic() -> None:
    footprints = {
        "liver": filtered([("GATA4", "B"), ("CTCF", "A"), ("CTCF", "B")]),
        "kidney": filtered([("CTCF", "B"), ("CTCF", "A")], tissue="kidney"),
    }
    edges = pruned([("CTCF", "A"), ("CTCF", "B"), ("GATA4", "B")])

    first, _ = fuse_evidence(footprints, edges)
    second, _ = fuse_evidence(footprints, edges, n_workers=2)

    for tissue in footprints:
        assert first[tissue].to_csv(index=False) == second[tissue].to_csv(index=False)
    assert first["liver"]["interaction"].tolist() == ["CTCF_A", "CTCF_B", "GATA4_B"]


def test_tissue_without_support_is_empty_and_does_not_warn() -> None:
    footprints = {
        "liver": filtered([("CTCF", "MYC")]),
        "brain": filtered([("GATA4", "G30")], tissue="brain"),
    }

    with warnings.catch_warnings():
        warnings.simplefilter("error", DataQualityWarning)
        confirmed, summary = fuse_evidence(footprints, pruned([("CTCF", "MYC")]))

    assert confirmed["brain"].empty
    assert summary.loc["brain", "n_interactions"] == 0
    assert len(confirmed["liver"]) == 1
