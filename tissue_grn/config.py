"""Pipeline configuration.

Every threshold the pipeline applies is a named field of `PipelineConfig`:

    quantile              Per-(TF, regulation sign) importance quantile a
                          co-expression edge must reach to survive pruning.
                          Higher values keep fewer, stronger edges.
    min_regulon_size      Minimum number of target genes a tissue-specific
                          regulon needs before it is scored. Smaller regulons
                          are excluded and counted in the tissue summary.
    auc_threshold         Fraction of the ranked genes that forms the AUC
                          rank cutoff. Lower values reward only targets at
                          the very top of a cell's ranking.
    motif_suffix_pattern  Regex removed from a raw binding-site identifier to
                          obtain the TF symbol ("CTCF_MA0139.1" → "CTCF").
    noncoding_pattern     Regex of non-coding / unannotated gene names that
                          are never accepted as footprint targets.
    rho_threshold         Minimum |rho| (> 0) for a TF–target pair to get
                          a regulation sign when signs are derived from
                          expression rather than read from the input.
    n_workers             Worker pool size for per-tissue stages and
                          per-cell scoring (1 = run in-process).

The YAML layout mirrors the field names; file locations live under `paths`:

    quantile: 0.5
    min_regulon_size: 20
    auc_threshold: 0.05
    paths:
      gene_list: ref/hgnc_symbols.txt
      tf_list: ref/tfs.txt
      adjacencies: grn/adjacencies.csv
      expression: data/atlas.h5ad
      output_dir: results/
      footprints:
        liver: footprints/liver_bound.tsv
      replicates:
        liver: [peaks/liver_rep1.bed, peaks/liver_rep2.bed]
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .utils.io import load_config

DEFAULT_NONCODING_PATTERN = (
    r"^(?:LINC\d+|LOC\d+|MIR\d+\w*|SNOR[AD]\d+\w*|SCARNA\d+|ENS[A-Z]*G\d+"
    r"|A[CLP]\d{6}\.\d+|RP\d+-\S+|CT[ABCD]-\S+|.+-AS\d*|.+-IT\d*|.+-DT)$"
)


@dataclass(frozen=True)
class PipelinePaths:
    """Input and output locations used by the CLI driver."""

    gene_list: Optional[Path] = None
    tf_list: Optional[Path] = None
    adjacencies: Optional[Path] = None
    expression: Optional[Path] = None
    output_dir: Optional[Path] = None
    footprints: dict = field(default_factory=dict)
    replicates: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict, base_dir: Optional[Path] = None) -> "PipelinePaths":
        def resolve(p):
            if p is None:
                return None
            p = Path(p)
            if base_dir is not None and not p.is_absolute():
                return base_dir / p
            return p

        unknown = set(raw) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigurationError(f"Unknown path keys: {sorted(unknown)}")
        return cls(
            gene_list=resolve(raw.get("gene_list")),
            tf_list=resolve(raw.get("tf_list")),
            adjacencies=resolve(raw.get("adjacencies")),
            expression=resolve(raw.get("expression")),
            output_dir=resolve(raw.get("output_dir")),
            footprints={t: resolve(p) for t, p in (raw.get("footprints") or {}).items()},
            replicates={
                t: [resolve(p) for p in reps]
                for t, reps in (raw.get("replicates") or {}).items()
            },
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Thresholds and options for a pipeline run. See module docstring."""

    quantile: float = 0.50
    min_regulon_size: int = 20
    auc_threshold: float = 0.05
    motif_suffix_pattern: str = r"_[^_]*$"
    noncoding_pattern: str = DEFAULT_NONCODING_PATTERN
    rho_threshold: float = 0.03
    n_workers: int = 1
    paths: PipelinePaths = field(default_factory=PipelinePaths)

    def __post_init__(self) -> None:
        if not 0 < self.quantile <= 1:
            raise ConfigurationError(f"quantile must be in (0, 1], got {self.quantile}")
        if not 0 < self.auc_threshold <= 1:
            raise ConfigurationError(
                f"auc_threshold must be in (0, 1], got {self.auc_threshold}"
            )
        if self.min_regulon_size < 1:
            raise ConfigurationError(
                f"min_regulon_size must be >= 1, got {self.min_regulon_size}"
            )
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")
        if not 0 < self.rho_threshold < 1:
            raise ConfigurationError(
                f"rho_threshold must be in (0, 1), got {self.rho_threshold}"
            )

    @classmethod
    def from_dict(cls, raw: dict, base_dir: Optional[Path] = None) -> "PipelineConfig":
        """Build a config from a plain dict (e.g. parsed YAML).

        Raises:
            ConfigurationError: On unknown keys or out-of-range values.
        """
        raw = dict(raw or {})
        paths = PipelinePaths.from_dict(raw.pop("paths", None) or {}, base_dir=base_dir)
        known = {f.name for f in fields(cls)} - {"paths"}
        unknown = set(raw) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(paths=paths, **raw)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PipelineConfig":
        """Load a config from YAML; relative paths resolve against its folder."""
        path = Path(path)
        return cls.from_dict(load_config(path), base_dir=path.parent)
