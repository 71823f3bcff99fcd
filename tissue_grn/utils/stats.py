"""Shared statistical functions used across analysis modules."""

from typing import Optional
import numpy as np
import pandas as pd


def compute_zscore_matrix(
    aucell_df: pd.DataFrame,
    celltype_col: str,
    obs_df: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """Compute per-cell-type z-scored AUCell activity.

    For each regulon, calculates the mean AUCell score within each cell type,
    then normalizes relative to the global mean and standard deviation across
    all cells. This produces a z-score that reflects how enriched a regulon is
    in a given cell type compared to the full dataset.

    Formula: z = (celltype_mean - global_mean) / global_std

    Regulons with zero variance across cells (e.g. all-zero activity) get a
    z-score of 0 instead of NaN.

    Args:
        aucell_df: DataFrame of shape (n_cells × n_regulons). Index must be
            cell IDs matching obs_df if provided.
        celltype_col: Column name in obs_df containing cell type labels. If
            obs_df is None, aucell_df must already contain this column.
        obs_df: Optional metadata DataFrame with cell type annotations.
            If provided, the celltype_col is joined onto aucell_df by index.

    Returns:
        DataFrame of shape (n_celltypes × n_regulons) with z-scores.
    """
    df = aucell_df.copy()
    if obs_df is not None:
        df[celltype_col] = df.index.map(obs_df[celltype_col])

    regulon_cols = [c for c in df.columns if c != celltype_col]
    global_mean = df[regulon_cols].mean()
    global_std = df[regulon_cols].std().replace(0, np.nan)

    z_matrix = (df.groupby(celltype_col)[regulon_cols].mean() - global_mean) / global_std
    return z_matrix.fillna(0.0)


def jaccard_similarity(set_a: set, set_b: set) -> float:
    """Compute Jaccard similarity between two sets.

    Measures overlap between two tissues' interaction, target or TF sets.
    A value of 1 indicates identical sets; 0 indicates no overlap.

    Args:
        set_a: First set of elements.
        set_b: Second set of elements.

    Returns:
        Jaccard index in [0, 1]. Returns 0 if both sets are empty.
    """
    if not set_a and not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def compute_rss(
    aucell_df: pd.DataFrame,
    cell_labels: pd.Series,
) -> pd.DataFrame:
    """Compute Regulon Specificity Scores (RSS) for each regulon × cell group.

    RSS is 1 minus the Jensen-Shannon distance between the regulon's activity
    distribution across cells and the ideal distribution confined to one
    group. A score of 1 indicates perfect specificity.

    Implements pyscenic.rss.regulon_specificity_scores() on the cells present
    in both inputs.

    Args:
        aucell_df: Activity matrix of shape (n_cells × n_regulons).
        cell_labels: Series mapping cell IDs → group labels.

    Returns:
        RSS matrix of shape (n_groups × n_regulons).
    """
    from pyscenic.rss import regulon_specificity_scores

    shared_idx = aucell_df.index.intersection(cell_labels.index)
    return regulon_specificity_scores(aucell_df.loc[shared_idx], cell_labels.loc[shared_idx])
