"""
End-to-end consensus analysis over a list of votes.

Each call builds its own matrix, projection and clustering; nothing is
kept between calls.
"""

from typing import NamedTuple
import numpy as np
import logging

from .matrix_builder import build_vote_matrix
from .pca import compute_projection
from .kmeans import cluster_participants
from .representativeness import (
    DEFAULT_TOP_N,
    DEFAULT_Z_THRESHOLD,
    compute_representativeness,
    select_representative_comments,
)
from .consensus import compute_group_aware_consensus

logger = logging.getLogger(__name__)


class ConsensusResult(NamedTuple):
    group_aware_consensus: dict
    group_representative_comments: dict
    # Diagnostics, aligned with participant_ids
    participant_ids: list
    topic_ids: list
    projection: np.ndarray
    projection_method: str
    cluster_labels: np.ndarray


def empty_result():
    """Result returned when there is not enough data to analyze."""
    return ConsensusResult(
        group_aware_consensus={},
        group_representative_comments={},
        participant_ids=[],
        topic_ids=[],
        projection=np.zeros((0, 0)),
        projection_method=None,
        cluster_labels=np.zeros(0, dtype=int),
    )


def run_analysis(
    votes,
    n_components=2,
    max_clusters=10,
    z_threshold=DEFAULT_Z_THRESHOLD,
    top_n=DEFAULT_TOP_N,
    fdr_alpha=None,
    random_state=42,
):
    """
    Cluster participants and detect consensus and representative topics.

    Args:
        votes: iterable of Vote / (participant_id, topic_id, value) tuples
        n_components: projection dimensions (default 2)
        max_clusters: upper bound for automatic k selection (default 10)
        z_threshold: significance threshold for representative comments
        top_n: representative comments kept per cluster
        fdr_alpha: optional false discovery rate filter
        random_state: k-means seed

    Returns:
        ConsensusResult; empty_result() when there are fewer than
        2 participants or 2 topics.
    """
    vote_matrix, participant_ids, topic_ids = build_vote_matrix(votes)

    if vote_matrix.size == 0:
        logger.warning("Insufficient data, skipping analysis")
        return empty_result()

    projection_result = compute_projection(vote_matrix, n_components)
    projection = projection_result['projection']

    labels, n_groups, _ = cluster_participants(
        projection,
        max_clusters=max_clusters,
        random_state=random_state,
    )

    group_aware_consensus = compute_group_aware_consensus(
        vote_matrix, labels, topic_ids
    )

    records = compute_representativeness(vote_matrix, labels, topic_ids)
    group_representative_comments = select_representative_comments(
        records,
        z_threshold=z_threshold,
        top_n=top_n,
        fdr_alpha=fdr_alpha,
        cluster_ids=np.unique(labels),
    )

    logger.info(
        f"Analysis complete: {len(participant_ids)} participants, "
        f"{len(topic_ids)} topics, {n_groups} groups "
        f"(projection: {projection_result['method']})"
    )

    return ConsensusResult(
        group_aware_consensus=group_aware_consensus,
        group_representative_comments=group_representative_comments,
        participant_ids=participant_ids,
        topic_ids=topic_ids,
        projection=projection,
        projection_method=projection_result['method'],
        cluster_labels=labels,
    )


def participant_clusters(result):
    """
    Map participant id to cluster label.

    Args:
        result: ConsensusResult

    Returns:
        dict: {participant_id: cluster_id}
    """
    return {
        participant_id: int(label)
        for participant_id, label in zip(
            result.participant_ids, result.cluster_labels
        )
    }
