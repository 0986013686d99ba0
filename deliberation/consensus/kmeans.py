"""
K-means clustering of projected participants into opinion groups.

The number of groups is picked automatically: every candidate k is
scored with the Calinski-Harabasz variance ratio (between-group over
within-group dispersion) and the best scoring k is kept.

References:
- Lloyd, S.P. (1982). "Least squares quantization in PCM."
  IEEE Transactions on Information Theory, 28(2), 129-137.
- Calinski, T., Harabasz, J. (1974). "A dendrite method for cluster
  analysis." Communications in Statistics, 3(1), 1-27.
- Polis implementation: github.com/compdemocracy/polis
  (math/src/polismath/math/clusters.clj)
"""

import numpy as np
from sklearn.cluster import KMeans
from sklearn.metrics import calinski_harabasz_score
import logging

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 3
MAX_ITERS = 100
TOLERANCE = 1e-6


def single_cluster(n_participants):
    """Assign every participant to cluster 0."""
    return np.zeros(n_participants, dtype=int)


def candidate_k_range(n_participants, max_clusters=10):
    """
    Candidate cluster counts for n_participants.

    Upper bound is min(max_clusters, 2 + n // 12, n), so small
    conversations are never split into many tiny groups.
    """
    max_k = min(max_clusters, 2 + n_participants // 12, n_participants)
    return range(2, max_k + 1)


def compute_cluster_sizes(labels):
    """
    Compute size of each cluster.

    Args:
        labels: array of cluster assignments

    Returns:
        dict: {cluster_id: size}
    """
    unique, counts = np.unique(labels, return_counts=True)
    return {int(label): int(count) for label, count in zip(unique, counts)}


def has_zero_dispersion(projection, labels):
    """True when there are at least 2 groups and every group is a single point."""
    unique = np.unique(labels)
    if len(unique) < 2:
        return False
    for label in unique:
        members = projection[labels == label]
        if not np.all(members == members[0]):
            return False
    return True


def cluster_participants(projection, max_clusters=10, random_state=42):
    """
    Partition projected participants into opinion groups.

    Args:
        projection: numpy array (N_participants × n_components)
        max_clusters: upper bound for candidate k (default 10)
        random_state: seed for k-means initialization

    Returns:
        tuple: (labels, best_k, scores)
            - labels: dense cluster assignments (N_participants,)
            - best_k: number of groups found
            - scores: dict {k: variance ratio} for every candidate that ran

    Never raises for numerical problems; falls back to a single cluster.
    """
    projection = np.asarray(projection, dtype=float)
    n_participants = projection.shape[0]

    if n_participants < MIN_PARTICIPANTS:
        logger.warning(
            f"Only {n_participants} participants, assigning everyone "
            f"to a single cluster"
        )
        return single_cluster(n_participants), 1, {}

    if not np.all(np.isfinite(projection)):
        logger.error(
            "Projection contains invalid values, assigning everyone "
            "to a single cluster"
        )
        return single_cluster(n_participants), 1, {}

    k_range = candidate_k_range(n_participants, max_clusters)
    logger.info(
        f"Auto-selecting k: {n_participants} participants, "
        f"k_range=({k_range.start}, {k_range.stop - 1})"
    )

    scores = {}
    best_k = None
    best_score = None
    best_labels = None

    for k in k_range:
        try:
            kmeans = KMeans(
                n_clusters=k,
                max_iter=MAX_ITERS,
                tol=TOLERANCE,
                n_init=10,
                random_state=random_state,
            )
            labels = kmeans.fit_predict(projection)
            if has_zero_dispersion(projection, labels):
                # sklearn reports 1.0 here; a perfect split must outrank any spread
                score = float("inf")
            else:
                score = calinski_harabasz_score(projection, labels)
        except Exception as e:
            logger.warning(f"k={k}: clustering failed ({e}), skipping")
            continue

        if np.isnan(score):
            logger.warning(f"k={k}: invalid score {score}, skipping")
            continue

        scores[k] = float(score)
        logger.debug(f"k={k}: variance ratio={score:.4f}")

        # Strictly greater: the lowest k wins ties
        if best_score is None or score > best_score:
            best_k = k
            best_score = score
            best_labels = labels

    if best_labels is None:
        logger.warning(
            "No candidate k produced a valid clustering, assigning everyone "
            "to a single cluster"
        )
        return single_cluster(n_participants), 1, scores

    # k-means may leave some clusters empty; keep labels dense
    _, dense_labels = np.unique(best_labels, return_inverse=True)
    dense_labels = dense_labels.astype(int)
    n_groups = int(dense_labels.max()) + 1

    logger.info(
        f"Selected k={best_k} (variance ratio={best_score:.4f}), "
        f"sizes: {compute_cluster_sizes(dense_labels)}"
    )

    return dense_labels, n_groups, scores
