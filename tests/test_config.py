"""Tests for pipeline configuration loading and validation."""

from pathlib import Path

import pytest

from tissue_grn.config import PipelineConfig
from tissue_grn.errors import ConfigurationError


def test_defaults() -> None:
    cfg = PipelineConfig()

    assert cfg.quantile == 0.50
    assert cfg.min_regulon_size == 20
    assert cfg.auc_threshold == 0.05
    assert cfg.n_workers == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"quantile": 0.0},
        {"quantile": 1.5},
        {"auc_threshold": 0},
        {"min_regulon_size": 0},
        {"n_workers": 0},
        {"rho_threshold": 1.0},
        {"rho_threshold": 0.0},
    ],
)
def test_out_of_range_values_are_rejected(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        PipelineConfig(**kwargs)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="quantil"):
        PipelineConfig.from_dict({"quantil": 0.4})


def test_from_yaml_resolves_relative_paths(tmp_path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        """
quantile: 0.75
min_regulon_size: 10
paths:
  gene_list: ref/genes.txt
  tf_list: /abs/tfs.txt
  footprints:
    liver: fp/liver.tsv
  replicates:
    liver: [peaks/rep1.bed, peaks/rep2.bed]
""".strip()
    )

    cfg = PipelineConfig.from_yaml(config_file)

    assert cfg.quantile == 0.75
    assert cfg.min_regulon_size == 10
    assert cfg.paths.gene_list == tmp_path / "ref/genes.txt"
    assert cfg.paths.tf_list == Path("/abs/tfs.txt")
    assert cfg.paths.footprints == {"liver": tmp_path / "fp/liver.tsv"}
    assert cfg.paths.replicates["liver"][1] == tmp_path / "peaks/rep2.bed"


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        PipelineConfig.from_yaml(tmp_path / "absent.yaml")
