"""
Group representativeness of topics.

For every opinion group and topic, compares the group's agree/disagree
rates with those of everyone outside the group and weights the gap by
statistical confidence. The topics where a group stands out the most are
that group's representative comments.

References:
- Polis implementation: github.com/compdemocracy/polis
  (math/src/polismath/math/repness.clj)
"""

import numpy as np
import logging

from .stats import benjamini_hochberg, p_value_to_z, two_proportion_test

logger = logging.getLogger(__name__)

DEFAULT_Z_THRESHOLD = 1.28  # ~ p = 0.10 one-sided
DEFAULT_TOP_N = 5

VOTE_AGREE = 'agree'
VOTE_DISAGREE = 'disagree'


def compute_representativeness(vote_matrix, labels, topic_ids):
    """
    Representativeness of every topic for every cluster.

    Ratios use the group size as denominator: participants who did not
    vote on a topic count as neither agreeing nor disagreeing.

    Args:
        vote_matrix: numpy array (N_participants × N_topics)
        labels: cluster assignments (N_participants,)
        topic_ids: topic ids aligned with matrix columns

    Returns:
        dict: {
            (cluster_id, topic_id): {
                'agree_ratio': float,
                'disagree_ratio': float,
                'repness_agree': float,
                'repness_disagree': float,
                'p_agree': float,
                'p_disagree': float,
            }
        }

        Clusters with nobody outside them (single-cluster runs) get no
        records.
    """
    labels = np.asarray(labels)
    records = {}

    for cluster_id in np.unique(labels):
        in_mask = labels == cluster_id
        out_mask = ~in_mask
        n_in = int(in_mask.sum())
        n_out = int(out_mask.sum())

        if n_in == 0 or n_out == 0:
            logger.debug(f"Cluster {cluster_id}: no out-group, skipping")
            continue

        in_votes = vote_matrix[in_mask]
        out_votes = vote_matrix[out_mask]

        for topic_idx, topic_id in enumerate(topic_ids):
            in_agree = int(np.sum(in_votes[:, topic_idx] == 1))
            in_disagree = int(np.sum(in_votes[:, topic_idx] == -1))
            out_agree = int(np.sum(out_votes[:, topic_idx] == 1))
            out_disagree = int(np.sum(out_votes[:, topic_idx] == -1))

            agree_ratio = in_agree / n_in
            disagree_ratio = in_disagree / n_in

            p_agree = two_proportion_test(in_agree, n_in, out_agree, n_out)
            p_disagree = two_proportion_test(
                in_disagree, n_in, out_disagree, n_out
            )

            repness_agree = (agree_ratio - out_agree / n_out) * (1 - p_agree)
            repness_disagree = (
                (disagree_ratio - out_disagree / n_out) * (1 - p_disagree)
            )

            records[(int(cluster_id), topic_id)] = {
                'agree_ratio': agree_ratio,
                'disagree_ratio': disagree_ratio,
                'repness_agree': repness_agree,
                'repness_disagree': repness_disagree,
                'p_agree': p_agree,
                'p_disagree': p_disagree,
            }

    logger.info(
        f"Computed representativeness: {len(records)} cluster/topic pairs"
    )
    return records


def select_representative_comments(
    records,
    z_threshold=DEFAULT_Z_THRESHOLD,
    top_n=DEFAULT_TOP_N,
    fdr_alpha=None,
    cluster_ids=None,
):
    """
    Rank each cluster's most representative topics.

    For each (cluster, topic) the direction with the higher score is
    kept (disagree on ties). Entries need a positive score and a z-score
    of at least z_threshold.

    Args:
        records: output of compute_representativeness
        z_threshold: minimum z-score (default 1.28)
        top_n: max entries per cluster (default 5)
        fdr_alpha: when set, also require a Benjamini-Hochberg adjusted
            p-value below this level
        cluster_ids: clusters to report, so a cluster without records
            maps to an empty list (default: clusters found in records)

    Returns:
        dict: {
            cluster_id: [
                {
                    'topic_id': str,
                    'score': float,
                    'z_score': float,
                    'p_value': float,
                    'adjusted_p_value': float,
                    'vote_type': 'agree'|'disagree',
                    'agree_ratio': float,
                    'disagree_ratio': float,
                },
                ...
            ]
        }
    """
    keys = list(records)

    # Adjust over every test run, both directions
    raw_p_values = []
    for key in keys:
        raw_p_values.append(records[key]['p_agree'])
        raw_p_values.append(records[key]['p_disagree'])
    adjusted = benjamini_hochberg(raw_p_values)

    if cluster_ids is None:
        cluster_ids = [cluster_id for cluster_id, _ in keys]
    selected = {int(cluster_id): [] for cluster_id in cluster_ids}

    for i, (cluster_id, topic_id) in enumerate(keys):
        record = records[(cluster_id, topic_id)]
        comments = selected.setdefault(cluster_id, [])

        if record['repness_agree'] > record['repness_disagree']:
            vote_type = VOTE_AGREE
            score = record['repness_agree']
            p_value = record['p_agree']
            adjusted_p_value = adjusted[2 * i]
        else:
            vote_type = VOTE_DISAGREE
            score = record['repness_disagree']
            p_value = record['p_disagree']
            adjusted_p_value = adjusted[2 * i + 1]

        z_score = p_value_to_z(p_value)

        if score <= 0 or z_score < z_threshold:
            continue
        if fdr_alpha is not None and adjusted_p_value >= fdr_alpha:
            continue

        comments.append({
            'topic_id': topic_id,
            'score': float(score),
            'z_score': z_score,
            'p_value': float(p_value),
            'adjusted_p_value': float(adjusted_p_value),
            'vote_type': vote_type,
            'agree_ratio': record['agree_ratio'],
            'disagree_ratio': record['disagree_ratio'],
        })

    for cluster_id, comments in selected.items():
        comments.sort(key=lambda c: c['score'], reverse=True)
        selected[cluster_id] = comments[:top_n]

    counts = {cid: len(c) for cid, c in selected.items()}
    logger.info(f"Selected representative comments per cluster: {counts}")
    return selected
