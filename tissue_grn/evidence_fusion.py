"""Cross-evidence matching of footprint and co-expression interactions.

A TF → target interaction is confirmed for a tissue only when both lines
of evidence agree:

  (a) chromatin: the TF has a bound footprint near the target gene in that
      tissue (filtered footprint table), and
  (b) expression: the edge survives quantile pruning of the co-expression
      network inferred across the multi-tissue single-cell reference.

Both sides are reduced to an interaction key "TF_TARGET" in upper case
before the join, so that symbol capitalisation ('Ctcf' vs 'CTCF') cannot
silently drop evidence. The join is exact set membership; there is no
fuzzy matching or coordinate proximity at this stage.

Key orientation is always TF first. Keys are only compared, never parsed
back: TF and target stay available as columns of every interaction table.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pandas as pd

log = logging.getLogger(__name__)

INTERACTION_COLUMNS = ["tissue", "TF", "target", "interaction"]


# ── Interaction keys ──────────────────────────────────────────────────────────

def interaction_keys(tfs: pd.Series, targets: pd.Series) -> pd.Series:
    """Build upper-case 'TF_TARGET' keys from aligned TF and target columns."""
    return tfs.astype(str).str.upper() + "_" + targets.astype(str).str.upper()


def interaction_table(
    df: pd.DataFrame,
    tf_col: str = "TF",
    target_col: str = "target",
) -> pd.DataFrame:
    """Normalize a TF/target table to unique, sorted upper-case interactions.

    Args:
        df: Any table holding a TF column and a target column.
        tf_col: Name of the TF column.
        target_col: Name of the target gene column.

    Returns:
        DataFrame with columns ['TF', 'target', 'interaction'], one row per
        distinct interaction key, sorted by key.
    """
    out = pd.DataFrame({
        "TF": df[tf_col].astype(str).str.upper().to_numpy(),
        "target": df[target_col].astype(str).str.upper().to_numpy(),
    })
    out["interaction"] = interaction_keys(out["TF"], out["target"])
    return (
        out.drop_duplicates("interaction")
        .sort_values("interaction", kind="mergesort")
        .reset_index(drop=True)
    )


# ── Fusion ────────────────────────────────────────────────────────────────────

def confirm_interactions(
    footprints: pd.DataFrame,
    coexpression_keys: set,
    tissue: str,
) -> pd.DataFrame:
    """Confirm one tissue's footprint interactions against co-expression.

    Args:
        footprints: Filtered footprint table with 'TF' and 'gene_name'.
        coexpression_keys: Interaction keys of the pruned co-expression edges.
        tissue: Tissue label written to the output.

    Returns:
        DataFrame with columns ['tissue', 'TF', 'target', 'interaction'],
        deduplicated and sorted by interaction key.
    """
    if footprints.empty:
        return pd.DataFrame(columns=INTERACTION_COLUMNS)

    candidates = interaction_table(footprints, tf_col="TF", target_col="gene_name")
    confirmed = candidates[candidates["interaction"].isin(coexpression_keys)].copy()
    confirmed.insert(0, "tissue", tissue)
    log.info(
        "%s: %d / %d footprint interactions confirmed by co-expression",
        tissue, len(confirmed), len(candidates),
    )
    return confirmed.reset_index(drop=True)


def summarize_interactions(confirmed: pd.DataFrame) -> dict:
    """Count distinct interactions, TFs and targets in a confirmed table."""
    return {
        "n_interactions": int(confirmed["interaction"].nunique()),
        "n_tfs": int(confirmed["TF"].nunique()),
        "n_targets": int(confirmed["target"].nunique()),
    }


def fuse_evidence(
    footprints_by_tissue: dict[str, pd.DataFrame],
    pruned_adj: pd.DataFrame,
    n_workers: int = 1,
) -> tuple[dict[str, pd.DataFrame], pd.DataFrame]:
    """Confirm footprint interactions for every tissue.

    The pruned co-expression network is shared by all tissues. Tissues are
    independent of each other and are processed on a thread pool when
    n_workers > 1.

    A tissue with no confirmed interaction is not an error: it gets an
    empty table; the pipeline reports it in the tissue status.

    Args:
        footprints_by_tissue: Tissue → filtered footprint table.
        pruned_adj: Output of module_pruning.prune_modules().
        n_workers: Thread pool size.

    Returns:
        Tuple of (tissue → confirmed interaction table, summary DataFrame
        indexed by tissue with n_interactions / n_tfs / n_targets).
    """
    coexpression_keys = set(interaction_table(pruned_adj)["interaction"])
    tissues = sorted(footprints_by_tissue)

    def _confirm(tissue):
        return confirm_interactions(footprints_by_tissue[tissue], coexpression_keys, tissue)

    if n_workers > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            tables = list(ex.map(_confirm, tissues))
    else:
        tables = [_confirm(t) for t in tissues]

    confirmed = dict(zip(tissues, tables))
    summary = pd.DataFrame(
        [{"tissue": t, **summarize_interactions(confirmed[t])} for t in tissues],
        columns=["tissue", "n_interactions", "n_tfs", "n_targets"],
    ).set_index("tissue")
    return confirmed, summary
