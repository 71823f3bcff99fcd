"""End-to-end tissue-specific regulon pipeline.

Pipeline overview:
  1. Validate ground truth: the reference gene list and curated TF list must
     be present, and replicate peak files (if given) must hold well-formed
     intervals. Any failure aborts before a tissue is processed.
  2. Replicate concordance per tissue (count of peaks reproduced in both
     replicates) as a quality metric.
  3. Filter each tissue's footprints to bound, valid TF → gene records.
  4. Prune the shared co-expression network by per-(TF, sign) importance
     quantile.
  5. Confirm footprint interactions that the pruned network also supports.
  6. Reduce confirmed interactions / targets / TFs to tissue-unique sets.
  7. Group tissue-unique interactions into regulons; keep regulons with at
     least `min_regulon_size` targets.
  8. Rank genes per cell once and score every regulon with AUCell.

Every tissue ends with a status (completed, skipped_no_overlap, degenerate)
and a reason, written to tissue_status.csv.

Usage:
    python -m tissue_grn.pipeline --config configs/default_config.yaml \\
        --output-dir results/
"""

import argparse
import dataclasses
import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from .aucell_scoring import run_aucell
from .config import PipelineConfig
from .errors import ConfigurationError, DataQualityWarning, TissueStatus
from .evidence_fusion import fuse_evidence
from .interval_filter import filter_footprints, parse_intervals, replicate_concordance
from .module_pruning import (
    add_regulation_sign,
    prune_modules,
    summarize_modules,
)
from .tissue_specificity import (
    regulons_from_interactions,
    regulons_table,
    specific_sets_table,
    tissue_overlap_matrix,
    tissue_sets,
    tissue_specific_sets,
)
from .utils.io import (
    load_adj,
    load_expression,
    load_footprints,
    load_gene_list,
    load_intervals,
    save_adj,
    save_table,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
log = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything the pipeline produces, keyed by tissue where applicable."""

    pruned_adj: pd.DataFrame
    module_summary: dict
    replicate_stats: dict[str, dict]
    filtered_footprints: dict[str, pd.DataFrame]
    confirmed: dict[str, pd.DataFrame]
    interaction_summary: pd.DataFrame
    specific: dict[str, dict[str, frozenset]]
    regulons: dict[str, dict[str, frozenset]]
    excluded_regulons: dict[str, dict[str, int]]
    activity: dict[str, pd.DataFrame]
    status: pd.DataFrame = field(default_factory=pd.DataFrame)


# ── Stages ────────────────────────────────────────────────────────────────────

def _map_tissues(func, tissues: list, n_workers: int) -> dict:
    if n_workers > 1 and len(tissues) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            return dict(zip(tissues, ex.map(func, tissues)))
    return {t: func(t) for t in tissues}


def _tissue_status(
    tissue: str,
    confirmed: pd.DataFrame,
    specific: dict[str, dict[str, frozenset]],
    regulons: dict[str, frozenset],
    excluded: dict[str, int],
    min_size: int,
) -> tuple[TissueStatus, str]:
    if confirmed.empty:
        return TissueStatus.SKIPPED_NO_OVERLAP, "no footprint interaction confirmed by co-expression"
    if not specific["interaction"][tissue]:
        return TissueStatus.DEGENERATE, "all confirmed interactions are shared with other tissues"
    if not regulons:
        return (
            TissueStatus.DEGENERATE,
            f"{len(excluded)} tissue-specific regulon(s), none with >= {min_size} targets",
        )
    return TissueStatus.COMPLETED, f"{len(regulons)} regulon(s) scored"


def run_pipeline(
    config: PipelineConfig,
    footprints: dict[str, pd.DataFrame],
    adjacencies: pd.DataFrame,
    gene_symbols: Optional[set],
    tf_list: Optional[set],
    expression: pd.DataFrame,
    replicates: Optional[dict[str, tuple[pd.DataFrame, pd.DataFrame]]] = None,
) -> PipelineResult:
    """Run all stages on in-memory inputs.

    Args:
        config: Thresholds and worker settings.
        footprints: Tissue → raw footprint-caller table.
        adjacencies: Co-expression network (TF, target, importance and
            optionally regulation). Without a regulation column the sign is
            derived from `expression`.
        gene_symbols: Reference gene symbols.
        tf_list: Curated transcription factor symbols.
        expression: Cells × genes expression matrix.
        replicates: Optional tissue → (replicate-1, replicate-2) peak tables.

    Returns:
        PipelineResult with per-tissue outputs and a status table.

    Raises:
        ConfigurationError: Missing reference lists, malformed intervals, or
            no overlap between expression genes and regulon targets.
    """
    if not gene_symbols:
        raise ConfigurationError("Reference gene symbol list is missing or empty.")
    if not tf_list:
        raise ConfigurationError("Curated transcription factor list is missing or empty.")
    replicates = replicates or {}
    for rep1, rep2 in replicates.values():
        parse_intervals(rep1)
        parse_intervals(rep2)

    tissues = sorted(footprints)
    n_workers = config.n_workers
    log.info("=== Processing %d tissue(s): %s ===", len(tissues), ", ".join(tissues))

    replicate_stats = {
        tissue: replicate_concordance(rep1, rep2)[1]
        for tissue, (rep1, rep2) in sorted(replicates.items())
    }

    filtered = _map_tissues(
        lambda t: filter_footprints(
            footprints[t], gene_symbols, tf_list,
            motif_suffix_pattern=config.motif_suffix_pattern,
            noncoding_pattern=config.noncoding_pattern,
        ),
        tissues, n_workers,
    )

    adj = adjacencies
    if "regulation" not in adj.columns:
        log.info("No regulation column; deriving signs from expression (rho ≥ %.2f)",
                 config.rho_threshold)
        adj = add_regulation_sign(adj, expression, rho_threshold=config.rho_threshold)
    pruned = prune_modules(adj, quantile=config.quantile)
    module_summary = summarize_modules(pruned)

    confirmed, interaction_summary = fuse_evidence(filtered, pruned, n_workers=n_workers)
    specific = tissue_specific_sets(confirmed)

    regulons, excluded = {}, {}
    for tissue in tissues:
        regulons[tissue], excluded[tissue] = regulons_from_interactions(
            confirmed[tissue],
            specific["interaction"][tissue], min_size=config.min_regulon_size
        )
        if excluded[tissue]:
            log.info(
                "%s: %d regulon(s) below %d targets excluded from scoring",
                tissue, len(excluded[tissue]), config.min_regulon_size,
            )

    if any(regulons.values()):
        activity = run_aucell(
            expression, regulons,
            auc_threshold=config.auc_threshold, n_workers=n_workers,
        )
    else:
        activity = {
            t: pd.DataFrame(index=expression.index, columns=pd.Index([], name="regulon"),
                            dtype=float)
            for t in tissues
        }

    records = []
    for tissue in tissues:
        status, reason = _tissue_status(
            tissue, confirmed[tissue], specific, regulons[tissue], excluded[tissue],
            config.min_regulon_size,
        )
        if status is not TissueStatus.COMPLETED:
            msg = f"{tissue}: {status.value} ({reason})"
            log.warning(msg)
            warnings.warn(msg, DataQualityWarning, stacklevel=2)
        records.append({
            "tissue": tissue,
            "status": status.value,
            "reason": reason,
            "n_footprints": len(filtered[tissue]),
            **interaction_summary.loc[tissue].to_dict(),
            "n_specific_interactions": len(specific["interaction"][tissue]),
            "n_specific_targets": len(specific["target"][tissue]),
            "n_specific_tfs": len(specific["tf"][tissue]),
            "n_regulons": len(regulons[tissue]),
            "n_regulons_excluded": len(excluded[tissue]),
            "n_shared_peaks": replicate_stats.get(tissue, {}).get("n_shared"),
        })
    status_df = pd.DataFrame(records).set_index("tissue")

    return PipelineResult(
        pruned_adj=pruned,
        module_summary=module_summary,
        replicate_stats=replicate_stats,
        filtered_footprints=filtered,
        confirmed=confirmed,
        interaction_summary=interaction_summary,
        specific=specific,
        regulons=regulons,
        excluded_regulons=excluded,
        activity=activity,
        status=status_df,
    )


# ── File-based driver ─────────────────────────────────────────────────────────

def load_inputs(config: PipelineConfig) -> dict:
    """Read every input named in config.paths.

    Raises:
        ConfigurationError: If a required path is not configured or the
            reference gene / TF list file does not exist.
    """
    paths = config.paths
    for name in ("gene_list", "tf_list", "adjacencies", "expression"):
        if getattr(paths, name) is None:
            raise ConfigurationError(f"paths.{name} is not configured")
    if not paths.footprints:
        raise ConfigurationError("paths.footprints lists no tissue")

    try:
        gene_symbols = load_gene_list(paths.gene_list)
        tf_list = load_gene_list(paths.tf_list)
    except FileNotFoundError as e:
        raise ConfigurationError(str(e)) from e

    replicates = {}
    for tissue, files in paths.replicates.items():
        if len(files) != 2:
            raise ConfigurationError(f"{tissue}: expected 2 replicate files, got {len(files)}")
        replicates[tissue] = (load_intervals(files[0]), load_intervals(files[1]))

    return {
        "footprints": {t: load_footprints(p, t) for t, p in paths.footprints.items()},
        "adjacencies": load_adj(paths.adjacencies),
        "gene_symbols": gene_symbols,
        "tf_list": tf_list,
        "expression": load_expression(paths.expression),
        "replicates": replicates,
    }


def save_results(result: PipelineResult, output_dir: str | Path) -> None:
    """Write pipeline outputs as CSV files under output_dir."""
    output_dir = Path(output_dir)
    save_adj(result.pruned_adj, output_dir / "coexpression_pruned.csv")
    for tissue, table in result.confirmed.items():
        save_table(table, output_dir / tissue / "confirmed_interactions.csv")
    save_table(result.interaction_summary, output_dir / "interaction_summary.csv", index=True)
    save_table(specific_sets_table(result.specific), output_dir / "tissue_specific_sets.csv")
    for level, sets in tissue_sets(result.confirmed).items():
        save_table(
            tissue_overlap_matrix(sets), output_dir / f"tissue_overlap_{level}.csv", index=True
        )
    save_table(regulons_table(result.regulons), output_dir / "regulons.csv")
    for tissue, auc_df in result.activity.items():
        save_table(auc_df, output_dir / tissue / "aucell.csv", index=True)
    save_table(result.status, output_dir / "tissue_status.csv", index=True)
    log.info("Results written to %s", output_dir)


# ── CLI ───────────────────────────────────────────────────────────────────────

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Infer tissue-specific regulons from footprints and co-expression."
    )
    parser.add_argument("--config", required=True, help="Path to YAML config file.")
    parser.add_argument("--output-dir", help="Output directory (overrides paths.output_dir).")
    parser.add_argument("--quantile", type=float)
    parser.add_argument("--min-regulon-size", type=int)
    parser.add_argument("--auc-threshold", type=float)
    parser.add_argument("--n-workers", type=int)
    args = parser.parse_args()

    config = PipelineConfig.from_yaml(args.config)
    overrides = {
        k: v for k, v in {
            "quantile": args.quantile,
            "min_regulon_size": args.min_regulon_size,
            "auc_threshold": args.auc_threshold,
            "n_workers": args.n_workers,
        }.items() if v is not None
    }
    if overrides:
        config = dataclasses.replace(config, **overrides)

    output_dir = args.output_dir or config.paths.output_dir
    if output_dir is None:
        parser.error("--output-dir is required when paths.output_dir is not configured")

    result = run_pipeline(config, **load_inputs(config))
    save_results(result, output_dir)
    log.info("\n%s", result.status[["status", "reason"]].to_string())


if __name__ == "__main__":
    main()
