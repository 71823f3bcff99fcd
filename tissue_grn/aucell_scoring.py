"""Regulon activity scoring using AUCell.

AUCell (Area Under the Curve) scores quantify how active each regulon is in
each individual cell. For a given regulon, AUCell ranks all genes by their
expression in a cell and computes the AUC for the regulon's target gene set
in that ranking — a high AUC indicates the target genes are disproportionately
among the most highly expressed genes.

Pipeline:
  1. Restrict the cells × genes expression matrix to genes that belong to at
     least one regulon (symbols upper-cased on both sides).
  2. Rank genes within every cell by descending expression. Ties keep the
     matrix column order, so identical input always gives identical ranks.
     The ranking is built once and shared read-only by all regulons.
  3. For each (cell, regulon) compute the area under the recovery curve
     (fraction of targets recovered vs. rank position) up to the rank cutoff
     round(auc_threshold × n_genes), normalized so that targets occupying
     the top ranks score 1 and no target inside the cutoff scores 0.
     Targets absent from the expression matrix are ignored.
  4. Optionally summarize activity per cell group: z-scores relative to all
     cells and Regulon Specificity Scores (RSS).

Usage:
    python -m tissue_grn.aucell_scoring --expression data/atlas.h5ad \\
        --regulons results/regulons.csv --output-dir results/aucell/
"""

import argparse
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import numpy as np
import pandas as pd

from .errors import ConfigurationError
from .utils.io import load_expression, load_h5ad, load_regulons, save_table
from .utils.stats import compute_rss, compute_zscore_matrix

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
log = logging.getLogger(__name__)


# ── Expression preparation ────────────────────────────────────────────────────

def regulon_genes(regulons: Mapping[str, frozenset]) -> set[str]:
    """Union of all regulon targets, upper-cased."""
    return {g.upper() for targets in regulons.values() for g in targets}


def restrict_expression(
    expression: pd.DataFrame,
    genes: set[str],
) -> pd.DataFrame:
    """Keep only expression columns whose upper-cased symbol is in `genes`.

    Column order of the input is preserved; if two columns collapse to the
    same upper-case symbol, the first one is kept.

    Raises:
        ConfigurationError: If no column matches, or the retained values
            are negative or missing.
    """
    expr = expression.copy()
    expr.columns = expr.columns.astype(str).str.upper()
    expr = expr.loc[:, ~expr.columns.duplicated()]
    expr = expr.loc[:, expr.columns.isin(genes)]

    if expr.shape[1] == 0:
        raise ConfigurationError(
            "Expression matrix shares no genes with any regulon; cannot rank cells."
        )
    values = expr.to_numpy(dtype=float)
    if np.isnan(values).any() or (values < 0).any():
        raise ConfigurationError("Expression values must be non-negative and non-missing.")
    log.info(
        "Expression restricted to %d / %d genes across %d cells",
        expr.shape[1], expression.shape[1], expr.shape[0],
    )
    return expr


# ── Rankings ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CellRankings:
    """Per-cell gene rankings.

    order[i] lists gene column indices of cell i from highest to lowest
    expression; ranks[i, j] is the 0-based position of gene j in that list.
    Both arrays are read-only.
    """

    cells: pd.Index
    genes: pd.Index
    order: np.ndarray
    ranks: np.ndarray

    @property
    def n_genes(self) -> int:
        return len(self.genes)


def _rank_block(values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    order = np.argsort(-values, axis=1, kind="stable")
    ranks = np.empty_like(order)
    positions = np.broadcast_to(np.arange(values.shape[1]), order.shape)
    np.put_along_axis(ranks, order, positions, axis=1)
    return order, ranks


def _chunks(n: int, n_chunks: int) -> list[slice]:
    bounds = np.linspace(0, n, min(n_chunks, max(n, 1)) + 1).astype(int)
    return [slice(a, b) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]


def build_rankings(expression: pd.DataFrame, n_workers: int = 1) -> CellRankings:
    """Rank genes by descending expression within every cell.

    Equal values keep their column order (stable sort), so ties are broken
    by a fixed priority and repeated runs are identical.

    Args:
        expression: Cells × genes matrix (already restricted).
        n_workers: Threads used to rank blocks of cells.

    Returns:
        CellRankings for the matrix.
    """
    values = expression.to_numpy(dtype=float)
    blocks = _chunks(values.shape[0], n_workers)

    if n_workers > 1 and len(blocks) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            parts = list(ex.map(lambda s: _rank_block(values[s]), blocks))
    else:
        parts = [_rank_block(values[s]) for s in blocks]

    if parts:
        order = np.vstack([p[0] for p in parts])
        ranks = np.vstack([p[1] for p in parts])
    else:
        order = ranks = np.empty((0, values.shape[1]), dtype=np.intp)
    order.flags.writeable = False
    ranks.flags.writeable = False
    return CellRankings(
        cells=expression.index.copy(),
        genes=expression.columns.copy(),
        order=order,
        ranks=ranks,
    )


# ── AUC ───────────────────────────────────────────────────────────────────────

def derive_rank_cutoff(n_genes: int, auc_threshold: float = 0.05) -> int:
    """Number of top-ranked genes the recovery curve is evaluated over."""
    return max(1, int(round(auc_threshold * n_genes)))


def auc_from_ranks(target_ranks: np.ndarray, rank_cutoff: int) -> np.ndarray:
    """Normalized recovery-curve AUC from the ranks of a cell's targets.

    For a cell, the recovery curve counts how many targets have rank ≤ x for
    x = 0 … rank_cutoff − 1; its area equals Σ max(rank_cutoff − r, 0) over
    the target ranks r. It is divided by the area obtained when the targets
    occupy ranks 0, 1, 2, …

    Args:
        target_ranks: Array (n_cells × n_targets) of 0-based ranks.
        rank_cutoff: Rank cutoff (≥ 1).

    Returns:
        Array of n_cells scores in [0, 1]. All zeros if there are no targets.
    """
    n_cells, n_targets = target_ranks.shape
    if n_targets == 0:
        return np.zeros(n_cells)
    area = np.clip(rank_cutoff - target_ranks, 0, None).sum(axis=1)
    best = np.arange(min(n_targets, rank_cutoff))
    max_area = float(np.sum(rank_cutoff - best))
    return area / max_area


def score_regulon(
    rankings: CellRankings,
    targets: frozenset,
    rank_cutoff: int,
    rows: slice = slice(None),
) -> np.ndarray:
    """AUC of one regulon for the cells in `rows`.

    Targets not present in the ranking are ignored; with no overlap at all
    every cell scores 0.
    """
    wanted = {t.upper() for t in targets}
    cols = np.flatnonzero(rankings.genes.isin(wanted))
    return auc_from_ranks(rankings.ranks[rows][:, cols], rank_cutoff)


def score_regulons(
    rankings: CellRankings,
    regulons: Mapping[str, frozenset],
    auc_threshold: float = 0.05,
    n_workers: int = 1,
) -> pd.DataFrame:
    """Score every regulon in every cell.

    Cells are split into blocks scored on a thread pool; each block writes
    its own rows of the output, so no locking is needed.

    Args:
        rankings: Output of build_rankings().
        regulons: TF → target genes.
        auc_threshold: Fraction of ranked genes forming the rank cutoff.
        n_workers: Thread pool size.

    Returns:
        Activity matrix (n_cells × n_regulons) with TF column names in
        sorted order.
    """
    tfs = sorted(regulons)
    cutoff = derive_rank_cutoff(rankings.n_genes, auc_threshold)
    scores = np.zeros((len(rankings.cells), len(tfs)))

    for tf in tfs:
        if not rankings.genes.isin({t.upper() for t in regulons[tf]}).any():
            log.warning("Regulon %s has no target in the expression matrix; scoring 0", tf)

    def _score_block(rows: slice) -> None:
        for j, tf in enumerate(tfs):
            scores[rows, j] = score_regulon(rankings, regulons[tf], cutoff, rows)

    blocks = _chunks(len(rankings.cells), n_workers)
    if n_workers > 1 and len(blocks) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            list(ex.map(_score_block, blocks))
    else:
        for rows in blocks:
            _score_block(rows)

    return pd.DataFrame(scores, index=rankings.cells, columns=pd.Index(tfs, name="regulon"))


def run_aucell(
    expression: pd.DataFrame,
    regulons_by_tissue: Mapping[str, Mapping[str, frozenset]],
    auc_threshold: float = 0.05,
    n_workers: int = 1,
) -> dict[str, pd.DataFrame]:
    """Score each tissue's regulons against one shared ranking.

    The expression matrix is restricted to genes of any tissue's regulons
    and ranked once; every tissue is then scored from that ranking.

    Args:
        expression: Cells × genes expression matrix.
        regulons_by_tissue: Tissue → (TF → targets).
        auc_threshold: Fraction of ranked genes forming the rank cutoff.
        n_workers: Thread pool size for ranking and scoring.

    Returns:
        Tissue → activity matrix (cells × TFs). A tissue without regulons
        maps to a matrix with no columns.

    Raises:
        ConfigurationError: If no regulon gene is present in the matrix.
    """
    genes = set().union(*(regulon_genes(r) for r in regulons_by_tissue.values()))
    expr = restrict_expression(expression, genes)
    rankings = build_rankings(expr, n_workers=n_workers)
    log.info(
        "Rankings built: %d cells × %d genes (rank cutoff %d)",
        len(rankings.cells), rankings.n_genes,
        derive_rank_cutoff(rankings.n_genes, auc_threshold),
    )
    return {
        tissue: score_regulons(rankings, regs, auc_threshold, n_workers=n_workers)
        for tissue, regs in regulons_by_tissue.items()
    }


# ── Group summaries ───────────────────────────────────────────────────────────

def activity_zscores(
    aucell_df: pd.DataFrame,
    obs_df: pd.DataFrame,
    celltype_col: str = "cell_type",
) -> pd.DataFrame:
    """Normalize per-cell activity to cell-group z-scores.

    Formula: z = (group_mean − global_mean) / global_std.

    Args:
        aucell_df: Activity matrix of shape (n_cells × n_regulons).
        obs_df: Cell metadata DataFrame (index = cell IDs).
        celltype_col: Column in obs_df with group labels.

    Returns:
        Z-score DataFrame of shape (n_groups × n_regulons).
    """
    return compute_zscore_matrix(aucell_df, celltype_col, obs_df=obs_df)


def activity_specificity(
    aucell_df: pd.DataFrame,
    obs_df: pd.DataFrame,
    celltype_col: str = "cell_type",
) -> pd.DataFrame:
    """Regulon Specificity Scores of activity per cell group."""
    return compute_rss(aucell_df, obs_df[celltype_col])


# ── CLI ───────────────────────────────────────────────────────────────────────

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Score regulon activity per cell with AUCell."
    )
    parser.add_argument("--expression", required=True, help="Cells × genes .h5ad or CSV.")
    parser.add_argument(
        "--regulons", required=True,
        help="Regulon CSV with columns TF,target (and optionally tissue).",
    )
    parser.add_argument("--output-dir", required=True, help="Output directory.")
    parser.add_argument("--auc-threshold", type=float, default=0.05)
    parser.add_argument("--n-workers", type=int, default=1)
    parser.add_argument(
        "--celltype-col",
        help="obs column of an .h5ad input; writes group z-scores and RSS.",
    )
    args = parser.parse_args()

    output_dir = Path(args.output_dir)
    reg_df = pd.read_csv(args.regulons)
    if "tissue" in reg_df.columns:
        regulons_by_tissue = {
            tissue: {tf: frozenset(g["target"]) for tf, g in sub.groupby("TF")}
            for tissue, sub in reg_df.groupby("tissue")
        }
    else:
        regulons_by_tissue = {"all": load_regulons(args.regulons)}

    expression = load_expression(args.expression)
    activity = run_aucell(
        expression, regulons_by_tissue,
        auc_threshold=args.auc_threshold, n_workers=args.n_workers,
    )

    obs: Optional[pd.DataFrame] = None
    if args.celltype_col and str(args.expression).endswith(".h5ad"):
        obs = load_h5ad(args.expression).obs

    for tissue, auc_df in activity.items():
        save_table(auc_df, output_dir / f"aucell_{tissue}.csv", index=True)
        log.info("AUCell matrix saved: %s", output_dir / f"aucell_{tissue}.csv")
        if obs is not None and auc_df.shape[1]:
            z_df = activity_zscores(auc_df, obs, celltype_col=args.celltype_col)
            save_table(z_df, output_dir / f"aucell_zscore_{tissue}.csv", index=True)
            rss = activity_specificity(auc_df, obs, celltype_col=args.celltype_col)
            save_table(rss, output_dir / f"rss_{tissue}.csv", index=True)


if __name__ == "__main__":
    main()
