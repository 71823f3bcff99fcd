"""I/O helpers for loading and saving analysis data."""

from pathlib import Path

import bioframe as bf
import pandas as pd
import scanpy as sc
import yaml


def load_h5ad(path: str | Path) -> sc.AnnData:
    """Load an AnnData object from an h5ad file.

    Args:
        path: Path to the .h5ad file.

    Returns:
        AnnData object with cells × genes expression matrix.
    """
    return sc.read_h5ad(str(path))


def load_expression(path: str | Path) -> pd.DataFrame:
    """Load a cells × genes expression matrix as a dense DataFrame.

    Accepts an .h5ad file (read with scanpy) or a CSV with cell IDs in the
    first column and gene symbols as the header.

    Args:
        path: Path to the expression file.

    Returns:
        DataFrame indexed by cell ID with one column per gene.
    """
    path = Path(path)
    if path.suffix == ".h5ad":
        adata = load_h5ad(path)
        X = adata.X.toarray() if hasattr(adata.X, "toarray") else adata.X
        return pd.DataFrame(X, index=adata.obs_names, columns=adata.var_names)
    return pd.read_csv(path, index_col=0)


def load_gene_list(path: str | Path) -> set[str]:
    """Load a one-symbol-per-line gene or TF list as an uppercase set.

    Blank lines and lines starting with '#' are skipped.

    Raises:
        FileNotFoundError: If the list does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Gene list not found: {path}")
    with open(path) as f:
        return {
            line.strip().upper()
            for line in f
            if line.strip() and not line.startswith("#")
        }


def load_intervals(path: str | Path) -> pd.DataFrame:
    """Load a BED file of peaks as a chrom/start/end DataFrame.

    Args:
        path: BED file (extra columns beyond the first three are dropped).

    Returns:
        DataFrame with columns ['chrom', 'start', 'end'].
    """
    df = bf.read_table(str(path), schema="bed3", usecols=[0, 1, 2], comment="#")
    return df[["chrom", "start", "end"]]


def load_footprints(path: str | Path, tissue: str) -> pd.DataFrame:
    """Load a footprint-caller table for one tissue.

    Args:
        path: Tab-separated table with at least 'TFBS_name', 'gene_name'
            and 'bound' columns.
        tissue: Tissue label stored in a 'tissue' column.

    Raises:
        ValueError: If required columns are missing.
    """
    df = pd.read_csv(path, sep="\t")
    required = {"TFBS_name", "gene_name", "bound"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Footprint file {path} missing columns: {missing}")
    df["tissue"] = tissue
    return df


def load_adj(path: str | Path) -> pd.DataFrame:
    """Load a GRN adjacency file (TF–target–importance table).

    A 'regulation' column is carried through when present.

    Args:
        path: Path to a CSV or TSV with columns ['TF', 'target', 'importance'].

    Returns:
        DataFrame with columns ['TF', 'target', 'importance'] and, if present
        in the file, 'regulation'.

    Raises:
        ValueError: If required columns are missing.
    """
    sep = "\t" if str(path).endswith((".tsv", ".txt")) else ","
    df = pd.read_csv(path, sep=sep)
    required = {"TF", "target", "importance"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Adjacency file missing columns: {missing}")
    cols = ["TF", "target", "importance"]
    if "regulation" in df.columns:
        cols.append("regulation")
    return df[cols]


def save_adj(df: pd.DataFrame, path: str | Path) -> None:
    """Save a GRN adjacency DataFrame to CSV.

    Args:
        df: DataFrame with columns ['TF', 'target', 'importance'] and an
            optional 'regulation' column.
        path: Output path for the CSV file.
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    cols = [c for c in ["TF", "target", "importance", "regulation"] if c in df.columns]
    df[cols].to_csv(path, index=False)


def load_regulons(path: str | Path) -> dict[str, frozenset]:
    """Load a long-format regulon table (TF, target) into TF → targets."""
    df = pd.read_csv(path)
    missing = {"TF", "target"} - set(df.columns)
    if missing:
        raise ValueError(f"Regulon file missing columns: {missing}")
    return {tf: frozenset(g["target"]) for tf, g in df.groupby("TF", sort=True)}


def save_table(df: pd.DataFrame, path: str | Path, index: bool = False) -> None:
    """Write a DataFrame to CSV, creating parent directories."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=index)


def load_config(path: str | Path) -> dict:
    """Load a YAML configuration file.

    Args:
        path: Path to a YAML config file.

    Returns:
        Dictionary of configuration parameters.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        return yaml.safe_load(f) or {}
