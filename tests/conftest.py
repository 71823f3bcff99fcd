"""Shared fixtures: small synthetic footprint, co-expression and expression tables."""

import numpy as np
import pandas as pd
import pytest

HNF4A_TARGETS = [f"G{i}" for i in range(1, 26)]
CTCF_TARGETS = [f"G{i}" for i in range(1, 7)]


@pytest.fixture
def gene_symbols() -> set:
    return {f"G{i}" for i in range(1, 31)} | {"SHARED1", "MYC", "A", "B", "C", "D", "LINC00473"}


@pytest.fixture
def tf_list() -> set:
    return {"CTCF", "HNF4A", "GATA4"}


def footprint_frame(tissue: str, pairs: list[tuple[str, str]], bound: int = 1) -> pd.DataFrame:
    """Footprint-caller rows for (TF, gene) pairs in one tissue."""
    return pd.DataFrame({
        "TFBS_name": [f"{tf}_MA0000.1" for tf, _ in pairs],
        "gene_name": [gene for _, gene in pairs],
        "bound": [bound] * len(pairs),
        "tissue": tissue,
    })


@pytest.fixture
def footprints() -> dict:
    liver = footprint_frame(
        "liver",
        [("HNF4A", g) for g in HNF4A_TARGETS]
        + [("CTCF", g) for g in CTCF_TARGETS]
        + [("CTCF", "SHARED1")],
    )
    kidney = footprint_frame("kidney", [("CTCF", "SHARED1")])
    brain = footprint_frame("brain", [("GATA4", "G30")])
    return {"liver": liver, "kidney": kidney, "brain": brain}


@pytest.fixture
def adjacencies() -> pd.DataFrame:
    pairs = (
        [("Hnf4a", g) for g in HNF4A_TARGETS]
        + [("Ctcf", g) for g in CTCF_TARGETS]
        + [("Ctcf", "SHARED1")]
    )
    return pd.DataFrame({
        "TF": [tf for tf, _ in pairs],
        "target": [t for _, t in pairs],
        "importance": 1.0,
        "regulation": 1,
    })


@pytest.fixture
def expression() -> pd.DataFrame:
    genes = [f"G{i}" for i in range(1, 31)] + ["SHARED1"]
    rng = np.random.default_rng(0)
    values = rng.integers(0, 10, size=(6, len(genes))).astype(float)
    return pd.DataFrame(values, index=[f"cell{i}" for i in range(6)], columns=genes)


@pytest.fixture
def make_footprints():
    return footprint_frame
