"""
Group-aware consensus detection.

A topic only scores high when every opinion group, taken on its own,
tends to agree with it. Per group the agreement probability is smoothed
with a uniform prior, and the per-group probabilities are multiplied, so
a single dissenting group pulls the score down no matter how large the
other groups are.

Key insight: "We agree more than we think."

References:
- Polis implementation: github.com/compdemocracy/polis
  (math/src/polismath/math/conversation.clj - group-aware-consensus)
"""

import numpy as np
import logging

logger = logging.getLogger(__name__)


def smoothed_agree_probability(agree_count, vote_count):
    """Laplace-smoothed agreement probability: (A + 1) / (S + 2)."""
    return (agree_count + 1) / (vote_count + 2)


def compute_group_aware_consensus(vote_matrix, labels, topic_ids):
    """
    Consensus score for each topic across all clusters.

    Args:
        vote_matrix: numpy array (N_participants × N_topics)
        labels: cluster assignments (N_participants,)
        topic_ids: topic ids aligned with matrix columns

    Returns:
        dict: {topic_id: score}, score in (0, 1)

        Clusters without any vote on a topic are left out of that topic's
        product; topics nobody voted on are left out entirely.
    """
    labels = np.asarray(labels)
    clusters = np.unique(labels)
    consensus = {}

    for topic_idx, topic_id in enumerate(topic_ids):
        score = 1.0
        n_groups = 0

        for cluster_id in clusters:
            votes = vote_matrix[labels == cluster_id, topic_idx]
            votes = votes[votes != 0]
            if votes.size == 0:
                continue

            agree_count = int(np.sum(votes == 1))
            score *= smoothed_agree_probability(agree_count, votes.size)
            n_groups += 1

        if n_groups == 0:
            logger.debug(f"Topic {topic_id}: no votes in any cluster")
            continue

        consensus[topic_id] = score

    logger.info(
        f"Computed group-aware consensus for {len(consensus)} topics "
        f"across {len(clusters)} clusters"
    )
    return consensus
