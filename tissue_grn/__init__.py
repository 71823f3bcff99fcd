"""
tissue_grn: Tissue-specific gene regulatory networks from chromatin
footprints and single-cell co-expression.

Analyses:
    1. interval_filter     — Replicate concordance and footprint filtering
    2. module_pruning      — Quantile pruning of co-expression modules
    3. evidence_fusion     — Footprint × co-expression interaction matching
    4. tissue_specificity  — Tissue-unique interactions, targets and TFs
    5. aucell_scoring      — Per-cell regulon activity (AUCell)
    6. pipeline            — End-to-end driver and CLI
"""

__version__ = "0.1.0"
