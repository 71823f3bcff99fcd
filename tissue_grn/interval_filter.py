"""Replicate concordance of accessibility peaks and footprint filtering.

Chromatin evidence for a tissue is checked in two steps:

  1. Replicate concordance: peaks called in replicate 1 are matched against
     replicate 2 by exact region identity ("chrom:start-end"). The number of
     reproduced peaks is reported as a per-tissue quality metric.
  2. Footprint filtering: footprint-caller rows are reduced to bound sites
     whose target gene is a known, protein-coding-looking symbol and whose
     TF is in the curated transcription factor list.

Matching is exact on the formatted identity string; overlapping but not
identical coordinates do not count as the same region.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from .errors import ConfigurationError

log = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "1.0", "true", "t", "yes", "bound"}


# ── Genomic intervals ─────────────────────────────────────────────────────────

def interval_ids(df: pd.DataFrame) -> pd.Series:
    """Format intervals as 'chrom:start-end' identity strings."""
    return (
        df["chrom"].astype(str)
        + ":" + df["start"].astype(np.int64).astype(str)
        + "-" + df["end"].astype(np.int64).astype(str)
    )


def parse_intervals(df: pd.DataFrame) -> pd.DataFrame:
    """Validate and coordinate-sort a chrom/start/end table.

    Args:
        df: DataFrame with columns ['chrom', 'start', 'end'].

    Returns:
        New DataFrame sorted by (chrom, start, end) with an 'interval_id'
        column added.

    Raises:
        ConfigurationError: If columns are missing or any interval has
            start >= end.
    """
    missing = {"chrom", "start", "end"} - set(df.columns)
    if missing:
        raise ConfigurationError(f"Interval table missing columns: {missing}")

    out = df[["chrom", "start", "end"]].copy()
    out["start"] = pd.to_numeric(out["start"], errors="coerce")
    out["end"] = pd.to_numeric(out["end"], errors="coerce")
    bad = out["start"].isna() | out["end"].isna() | (out["start"] >= out["end"])
    if bad.any():
        first = df.loc[bad].iloc[0]
        raise ConfigurationError(
            f"{int(bad.sum())} malformed interval(s), e.g. "
            f"{first['chrom']}:{first['start']}-{first['end']} (start must be < end)"
        )

    out["start"] = out["start"].astype(np.int64)
    out["end"] = out["end"].astype(np.int64)
    out = out.sort_values(["chrom", "start", "end"], kind="mergesort").reset_index(drop=True)
    out["interval_id"] = interval_ids(out)
    return out


def replicate_concordance(
    rep1: pd.DataFrame,
    rep2: pd.DataFrame,
) -> tuple[pd.DataFrame, dict]:
    """Match replicate-1 peaks against replicate-2 peaks.

    Left-outer join on the interval identity string: every distinct
    replicate-1 interval appears once, flagged by whether replicate 2 holds
    the identical region.

    Args:
        rep1: Replicate-1 intervals (chrom/start/end).
        rep2: Replicate-2 intervals (chrom/start/end).

    Returns:
        Tuple of (table, stats). The table has columns ['chrom', 'start',
        'end', 'interval_id', 'in_replicate2'] in coordinate order. Stats
        has keys 'n_rep1', 'n_rep2', 'n_shared' and 'fraction_reproduced'.
    """
    a = parse_intervals(rep1).drop_duplicates("interval_id")
    b = parse_intervals(rep2).drop_duplicates("interval_id")

    merged = a.merge(
        b[["interval_id"]], on="interval_id", how="left", indicator=True, sort=False
    )
    merged["in_replicate2"] = merged["_merge"] == "both"
    table = merged.drop(columns="_merge").reset_index(drop=True)

    n_shared = int(table["in_replicate2"].sum())
    stats = {
        "n_rep1": len(a),
        "n_rep2": len(b),
        "n_shared": n_shared,
        "fraction_reproduced": n_shared / len(a) if len(a) else 0.0,
    }
    log.info(
        "Replicate concordance: %d / %d replicate-1 peaks reproduced",
        n_shared, len(a),
    )
    return table, stats


# ── Footprint filtering ───────────────────────────────────────────────────────

def derive_tf(binding_site_ids: pd.Series, motif_suffix_pattern: str) -> pd.Series:
    """Strip the motif-instance suffix from raw binding-site identifiers.

    Example: 'CTCF_MA0139.1' → 'CTCF' with the default pattern '_[^_]*$'.
    """
    return binding_site_ids.astype(str).str.replace(motif_suffix_pattern, "", regex=True)


def bound_mask(values: pd.Series) -> pd.Series:
    """Interpret a footprint 'bound' column (bool, 0/1 or text) as booleans."""
    if values.dtype == bool:
        return values
    if pd.api.types.is_numeric_dtype(values):
        return values.fillna(0) != 0
    return values.astype(str).str.strip().str.lower().isin(_TRUE_STRINGS)


def filter_footprints(
    footprints: pd.DataFrame,
    gene_symbols: Optional[set],
    tf_list: Optional[set],
    motif_suffix_pattern: str = r"_[^_]*$",
    noncoding_pattern: Optional[str] = None,
) -> pd.DataFrame:
    """Reduce a footprint-caller table to bound, valid TF → gene records.

    Filters applied in order:
      1. bound flag is true
      2. gene_name is not null
      3. gene_name (uppercased) is in the reference symbol set
      4. gene_name does not look like a non-coding annotation
      5. TF (uppercased) is in the curated TF list

    Args:
        footprints: Table with 'TFBS_name', 'gene_name', 'bound' and
            'tissue' columns.
        gene_symbols: Reference gene symbols (uppercase).
        tf_list: Curated transcription factor symbols (uppercase).
        motif_suffix_pattern: Regex stripped from TFBS_name to derive TF.
        noncoding_pattern: Regex of non-coding gene names to exclude.

    Returns:
        Filtered copy of the input with an added 'TF' column.

    Raises:
        ConfigurationError: If the reference gene list or TF list is missing.
    """
    if not gene_symbols:
        raise ConfigurationError("Reference gene symbol list is missing or empty.")
    if not tf_list:
        raise ConfigurationError("Curated transcription factor list is missing or empty.")

    tissue = (
        footprints["tissue"].iloc[0]
        if "tissue" in footprints.columns and len(footprints)
        else "unlabelled"
    )
    genes_upper = {g.upper() for g in gene_symbols}
    tfs_upper = {t.upper() for t in tf_list}

    df = footprints[bound_mask(footprints["bound"])].copy()
    n_bound = len(df)
    df["TF"] = derive_tf(df["TFBS_name"], motif_suffix_pattern)

    df = df[df["gene_name"].notna()]
    names = df["gene_name"].astype(str).str.upper()
    keep = names.isin(genes_upper)
    if noncoding_pattern:
        keep &= ~names.str.match(noncoding_pattern, na=False)
    df = df[keep]
    df = df[df["TF"].str.upper().isin(tfs_upper)]

    log.info(
        "Footprints (%s): %d rows → %d bound → %d after gene/TF filters",
        tissue, len(footprints), n_bound, len(df),
    )
    return df.reset_index(drop=True)
