"""Tests for quantile pruning of co-expression modules."""

import numpy as np
import pandas as pd
import pytest

from tissue_grn.module_pruning import (
    add_regulation_sign,
    normalize_regulation,
    prune_modules,
    summarize_modules,
)


def adj(rows):
    return pd.DataFrame(rows, columns=["TF", "target", "importance", "regulation"])


def test_median_quantile_keeps_upper_half() -> None:
    edges = adj([("Ctcf", f"T{i}", float(i), "positive") for i in range(1, 11)])

    got = prune_modules(edges, quantile=0.50)

    # linear-interpolated median of 1..10 is 5.5
    assert sorted(got["importance"]) == [6.0, 7.0, 8.0, 9.0, 10.0]


def test_singleton_group_is_never_pruned() -> None:
    edges = adj([
        ("Ctcf", "T1", 1.0, 1),
        ("Ctcf", "T2", 2.0, 1),
        ("Ctcf", "T3", 3.0, 1),
        ("Ctcf", "T4", 0.1, -1),
        ("Gata4", "T5", 0.01, 1),
    ])

    for q in (0.25, 0.5, 0.9, 1.0):
        got = prune_modules(edges, quantile=q)
        assert ("Ctcf", "T4") in set(zip(got["TF"], got["target"]))
        assert ("Gata4", "T5") in set(zip(got["TF"], got["target"]))


def test_groups_are_split_by_sign() -> None:
    edges = adj([
        ("Ctcf", "T1", 1.0, 1),
        ("Ctcf", "T2", 2.0, 1),
        ("Ctcf", "T3", 3.0, 1),
        ("Ctcf", "T4", 0.5, -1),
        ("Ctcf", "T5", 0.7, -1),
    ])

    got = prune_modules(edges, quantile=0.5)

    assert got[got["regulation"] == "positive"]["target"].tolist() == ["T2", "T3"]
    assert got[got["regulation"] == "negative"]["target"].tolist() == ["T5"]


def test_self_loop_stays_in_its_group() -> None:
    edges = adj(
        [("Ctcf", f"T{i}", float(i), 1) for i in range(1, 10)]
        + [("Ctcf", "Ctcf", 10.0, 1)]
    )

    got = prune_modules(edges, quantile=0.5)

    assert sorted(got["importance"]) == [6.0, 7.0, 8.0, 9.0, 10.0]
    assert ("Ctcf", "Ctcf") in set(zip(got["TF"], got["target"]))


def test_tf_case_variants_share_one_group() -> None:
    edges = adj([
        ("Ctcf", "T1", 1.0, 1),
        ("CTCF", "T2", 2.0, 1),
        ("ctcf", "T3", 3.0, 1),
        ("Ctcf", "T4", 4.0, 1),
    ])

    got = prune_modules(edges, quantile=0.5)

    # one group: median of 1..4 is 2.5
    assert got["target"].tolist() == ["T3", "T4"]
    assert summarize_modules(got)["n_tfs"] == 1


def test_unsigned_edges_are_discarded() -> None:
    edges = adj([
        ("Ctcf", "T1", 9.0, 0),
        ("Ctcf", "T2", 1.0, 1),
        ("Ctcf", "T3", 5.0, np.nan),
    ])

    got = prune_modules(edges)

    assert got["target"].tolist() == ["T2"]


def test_missing_regulation_column_raises() -> None:
    edges = pd.DataFrame({"TF": ["Ctcf"], "target": ["T1"], "importance": [1.0]})

    with pytest.raises(ValueError, match="regulation"):
        prune_modules(edges)


def test_normalize_regulation_accepts_numbers_and_text() -> None:
    assert normalize_regulation(pd.Series([1, -1, 0, 2.5])).tolist() == [
        "positive", "negative", "none", "positive",
    ]
    assert normalize_regulation(pd.Series(["positive", "-", "None", "weird"])).tolist() == [
        "positive", "negative", "none", "none",
    ]


def test_add_regulation_sign_from_correlation() -> None:
    expression = pd.DataFrame({
        "TF1": [1, 2, 3, 4, 5],
        "UP": [2, 4, 6, 8, 10],
        "DOWN": [5, 4, 3, 2, 1],
        "FLAT": [1, 1, 1, 1, 1],
    })
    edges = pd.DataFrame({
        "TF": ["TF1"] * 4,
        "target": ["UP", "DOWN", "FLAT", "ABSENT"],
        "importance": [1.0, 1.0, 1.0, 1.0],
    })

    got = add_regulation_sign(edges, expression, rho_threshold=0.03)

    assert got["rho"].iloc[0] == pytest.approx(1.0)
    assert got["rho"].iloc[1] == pytest.approx(-1.0)
    assert got["regulation"].tolist() == [1, -1, 0, 0]
    assert "regulation" not in edges.columns


def test_add_regulation_sign_matches_symbols_case_insensitively() -> None:
    rng = np.random.default_rng(1)
    ctcf = rng.normal(size=20)
    expression = pd.DataFrame({"CTCF": ctcf, "MYC": 2.0 * ctcf + 1.0})
    edges = pd.DataFrame({"TF": ["Ctcf"], "target": ["Myc"], "importance": [1.0]})

    got = add_regulation_sign(edges, expression, rho_threshold=0.03)

    assert got["regulation"].tolist() == [1]
    assert got["rho"].iloc[0] == pytest.approx(1.0)
    assert got["TF"].tolist() == ["Ctcf"]


def test_summarize_modules() -> None:
    edges = adj([("Ctcf", "T1", 1.0, 1), ("Ctcf", "T2", 1.0, 1), ("Gata4", "T1", 1.0, 1)])

    assert summarize_modules(prune_modules(edges)) == {"n_tfs": 2, "n_edges": 3}
