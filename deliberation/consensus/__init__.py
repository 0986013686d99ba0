"""
Polis-style consensus detection for forum discussions.

This module projects participants by their agree/disagree votes on
posts, groups them into opinion clusters and finds the posts every group
agrees on as well as the posts that set each group apart.
"""

from .matrix_builder import Vote, build_vote_matrix, matrix_sparsity
from .pca import compute_projection, truncate_rows
from .kmeans import cluster_participants, compute_cluster_sizes
from .stats import (
    two_proportion_test,
    normal_two_proportion_test,
    exact_two_proportion_test,
    p_value_to_z,
    benjamini_hochberg,
)
from .representativeness import (
    compute_representativeness,
    select_representative_comments,
)
from .consensus import compute_group_aware_consensus
from .analysis import (
    ConsensusResult,
    empty_result,
    run_analysis,
    participant_clusters,
)

__all__ = [
    'Vote',
    'build_vote_matrix',
    'matrix_sparsity',
    'compute_projection',
    'truncate_rows',
    'cluster_participants',
    'compute_cluster_sizes',
    'two_proportion_test',
    'normal_two_proportion_test',
    'exact_two_proportion_test',
    'p_value_to_z',
    'benjamini_hochberg',
    'compute_representativeness',
    'select_representative_comments',
    'compute_group_aware_consensus',
    'ConsensusResult',
    'empty_result',
    'run_analysis',
    'participant_clusters',
]
