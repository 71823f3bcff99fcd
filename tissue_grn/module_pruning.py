"""Quantile pruning of TF–target co-expression modules.

The co-expression network (TF, target, importance, regulation) is inferred
upstream across a multi-tissue single-cell reference. Before it is used as
evidence, each TF's edges are split by regulation sign and only the edges
at or above the sign-specific importance quantile are kept:

  1. Drop edges without a regulation sign (|rho| below threshold).
  2. Group the rest by (TF, regulation), TF compared upper-cased.
  3. Within each group keep edges with importance ≥ the p-th quantile
     (linear interpolation, p = 0.50 by default).

A group with a single edge always keeps that edge, since the quantile of
one value is the value itself. A TF that targets itself is an ordinary
member of its group.
"""

import logging

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)

POSITIVE = "positive"
NEGATIVE = "negative"
NONE = "none"

_SIGN_ALIASES = {
    "positive": POSITIVE, "pos": POSITIVE, "+": POSITIVE, "activating": POSITIVE,
    "1": POSITIVE, "1.0": POSITIVE,
    "negative": NEGATIVE, "neg": NEGATIVE, "-": NEGATIVE, "repressing": NEGATIVE,
    "-1": NEGATIVE, "-1.0": NEGATIVE,
    "none": NONE, "0": NONE, "0.0": NONE, "": NONE, "nan": NONE,
}


# ── Regulation sign ───────────────────────────────────────────────────────────

def normalize_regulation(values: pd.Series) -> pd.Series:
    """Map a regulation column to 'positive' / 'negative' / 'none'.

    Numeric input follows the sign of the value (pySCENIC writes 1, -1, 0).
    Text input accepts common aliases; anything unrecognized becomes 'none'.
    """
    if pd.api.types.is_numeric_dtype(values):
        signs = np.sign(values.fillna(0).to_numpy(dtype=float))
        return pd.Series(
            np.select([signs > 0, signs < 0], [POSITIVE, NEGATIVE], default=NONE),
            index=values.index,
        )
    text = values.astype(str).str.strip().str.lower()
    return text.map(_SIGN_ALIASES).fillna(NONE)


def add_regulation_sign(
    adj: pd.DataFrame,
    expression: pd.DataFrame,
    rho_threshold: float = 0.03,
) -> pd.DataFrame:
    """Annotate edges with TF–target correlation and a regulation sign.

    Delegates to pyscenic.utils.add_correlation: rho > threshold → positive
    (1), rho < −threshold → negative (−1), otherwise 0. Gene symbols are
    upper-cased on both sides before matching, so 'Ctcf' in the adjacency
    pairs with a 'CTCF' expression column. Edges whose TF or target is
    missing from the expression matrix get rho = NaN and regulation 0.

    Args:
        adj: Adjacency DataFrame with columns ['TF', 'target', 'importance'].
        expression: Cells × genes expression matrix.
        rho_threshold: Minimum |rho| for a signed edge (must be > 0).

    Returns:
        Copy of adj with 'rho' and 'regulation' columns, in input order.
    """
    from pyscenic.utils import add_correlation

    df = adj.copy()
    ex_mtx = expression.copy()
    ex_mtx.columns = ex_mtx.columns.astype(str).str.upper()
    ex_mtx = ex_mtx.loc[:, ~ex_mtx.columns.duplicated()]

    keys = pd.DataFrame({
        "TF": df["TF"].astype(str).str.upper(),
        "target": df["target"].astype(str).str.upper(),
        "importance": df["importance"],
    }, index=df.index)
    present = keys["TF"].isin(ex_mtx.columns) & keys["target"].isin(ex_mtx.columns)

    df["rho"] = np.nan
    df["regulation"] = 0
    if present.any():
        signed = add_correlation(keys[present], ex_mtx, rho_threshold=rho_threshold)
        df.loc[present, "rho"] = signed["rho"].to_numpy()
        df.loc[present, "regulation"] = signed["regulation"].to_numpy()
    df["regulation"] = df["regulation"].astype(int)

    n_missing = int((~present).sum())
    if n_missing:
        log.info("%d edge(s) with TF or target absent from expression left unsigned",
                 n_missing)
    return df


# ── Pruning ───────────────────────────────────────────────────────────────────

def prune_modules(adj: pd.DataFrame, quantile: float = 0.50) -> pd.DataFrame:
    """Keep edges at or above the per-(TF, sign) importance quantile.

    Args:
        adj: Adjacency DataFrame with columns ['TF', 'target', 'importance',
            'regulation'].
        quantile: Quantile probability p in (0, 1].

    Returns:
        Pruned adjacency with 'regulation' normalized to 'positive' /
        'negative', in input order.

    Raises:
        ValueError: If the regulation column is absent.
    """
    if "regulation" not in adj.columns:
        raise ValueError(
            "Adjacency has no 'regulation' column; derive it with add_regulation_sign()."
        )

    df = adj.copy()
    df["regulation"] = normalize_regulation(df["regulation"])
    n_unsigned = int((df["regulation"] == NONE).sum())
    df = df[df["regulation"] != NONE]
    if df.empty:
        log.warning("No signed co-expression edges left (%d unsigned dropped)", n_unsigned)
        return df.reset_index(drop=True)

    tf_key = df["TF"].astype(str).str.upper()
    thresholds = df.groupby([tf_key, df["regulation"]])["importance"].transform(
        lambda s: s.quantile(quantile)
    )
    pruned = df[df["importance"] >= thresholds].reset_index(drop=True)

    log.info(
        "Module pruning (p=%.2f): %d edges → %d edges across %d TFs "
        "(%d unsigned dropped)",
        quantile, len(adj), len(pruned), pruned["TF"].str.upper().nunique(), n_unsigned,
    )
    return pruned


def summarize_modules(pruned: pd.DataFrame) -> dict:
    """Count distinct TFs (case-insensitive) and retained edges in a pruned adjacency."""
    return {"n_tfs": int(pruned["TF"].astype(str).str.upper().nunique()), "n_edges": len(pruned)}
