"""Tissue-specific interactions, targets and TFs.

For every tissue T:

    unique(T) = set(T) − ∪ set(T')  for all T' ≠ T

computed independently at three granularities: interaction keys, target
genes and TFs. The result sets are pairwise disjoint; anything observed in
two or more tissues is absent from every unique set.

The complement of each tissue is folded from an immutable mapping, so no
accumulator is shared across tissues.
"""

import logging
from functools import reduce
from typing import Mapping

import pandas as pd

from .utils.stats import jaccard_similarity

log = logging.getLogger(__name__)

GRANULARITIES = {"interaction": "interaction", "target": "target", "tf": "TF"}


def unique_per_tissue(sets: Mapping[str, frozenset]) -> dict[str, frozenset]:
    """Return, for each tissue, the members found in no other tissue.

    Args:
        sets: Tissue → set of members (interaction keys, genes or TFs).

    Returns:
        Tissue → frozenset of tissue-unique members.
    """
    def others(tissue):
        return reduce(
            frozenset.union,
            (frozenset(s) for t, s in sets.items() if t != tissue),
            frozenset(),
        )

    return {tissue: frozenset(members) - others(tissue) for tissue, members in sets.items()}


def tissue_sets(confirmed: Mapping[str, pd.DataFrame]) -> dict[str, dict[str, frozenset]]:
    """Collect per-tissue member sets at each granularity.

    Args:
        confirmed: Tissue → confirmed interaction table
            (columns 'TF', 'target', 'interaction').

    Returns:
        Granularity ('interaction', 'target', 'tf') → tissue → frozenset.
    """
    return {
        level: {tissue: frozenset(df[col]) for tissue, df in confirmed.items()}
        for level, col in GRANULARITIES.items()
    }


def tissue_specific_sets(
    confirmed: Mapping[str, pd.DataFrame],
) -> dict[str, dict[str, frozenset]]:
    """Tissue-unique sets at interaction, target and TF granularity."""
    specific = {
        level: unique_per_tissue(sets)
        for level, sets in tissue_sets(confirmed).items()
    }
    for tissue in sorted(confirmed):
        log.info(
            "%s: %d specific interactions, %d specific targets, %d specific TFs",
            tissue,
            len(specific["interaction"][tissue]),
            len(specific["target"][tissue]),
            len(specific["tf"][tissue]),
        )
    return specific


def tissue_overlap_matrix(sets: Mapping[str, frozenset]) -> pd.DataFrame:
    """Pairwise Jaccard similarity between tissue member sets."""
    tissues = sorted(sets)
    return pd.DataFrame(
        [[jaccard_similarity(set(sets[a]), set(sets[b])) for b in tissues] for a in tissues],
        index=tissues,
        columns=tissues,
        dtype=float,
    )


def specific_sets_table(specific: Mapping[str, Mapping[str, frozenset]]) -> pd.DataFrame:
    """Flatten specificity sets to long format (granularity, tissue, member)."""
    records = [
        {"granularity": level, "tissue": tissue, "member": member}
        for level in sorted(specific)
        for tissue in sorted(specific[level])
        for member in sorted(specific[level][tissue])
    ]
    return pd.DataFrame(records, columns=["granularity", "tissue", "member"])


# ── Regulons ──────────────────────────────────────────────────────────────────

def regulons_from_interactions(
    confirmed: pd.DataFrame,
    interaction_keys: frozenset,
    min_size: int = 20,
) -> tuple[dict[str, frozenset], dict[str, int]]:
    """Group selected interactions into regulons and apply the size threshold.

    TF and target come from the confirmed table's own columns, never from
    splitting the key, so symbols containing '_' keep their identity.

    Args:
        confirmed: Confirmed interaction table of one tissue
            (columns 'TF', 'target', 'interaction').
        interaction_keys: Keys to include, e.g. the tissue-unique set.
        min_size: Minimum number of targets a regulon needs to be kept.

    Returns:
        Tuple of (TF → frozenset of targets for kept regulons,
        TF → target count for regulons excluded as too small).
    """
    selected = confirmed[confirmed["interaction"].isin(interaction_keys)]
    grouped = {
        tf: frozenset(targets)
        for tf, targets in selected.groupby("TF", sort=True)["target"]
    }

    kept, excluded = {}, {}
    for tf in sorted(grouped):
        if len(grouped[tf]) >= min_size:
            kept[tf] = grouped[tf]
        else:
            excluded[tf] = len(grouped[tf])
    return kept, excluded


def regulons_table(regulons: Mapping[str, Mapping[str, frozenset]]) -> pd.DataFrame:
    """Long-format regulon table with columns ['tissue', 'TF', 'target']."""
    records = [
        {"tissue": tissue, "TF": tf, "target": target}
        for tissue in sorted(regulons)
        for tf in sorted(regulons[tissue])
        for target in sorted(regulons[tissue][tf])
    ]
    return pd.DataFrame(records, columns=["tissue", "TF", "target"])
