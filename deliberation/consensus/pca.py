"""
Sparsity-aware projection of participants into a low-dimensional space.

Dense vote matrices go through covariance-based PCA. Very sparse ones
(more than half the cells without a vote) go through a plain SVD of the
vote matrix instead, taking the left singular vectors as participant
coordinates: on rating matrices that sparse, the covariance structure is
dominated by missing votes and PCA becomes unstable.

Whenever neither decomposition is possible the raw rows are truncated
(or zero-padded) to the requested width, so callers always get one row
per participant.

References:
- Pearson, K. (1901). "On lines and planes of closest fit to systems of
  points in space." Philosophical Magazine, Series 6, 2(11), 559-572.
- Jolliffe, I.T. (2002). Principal Component Analysis, 2nd ed. Springer.
- Polis implementation: github.com/compdemocracy/polis
  (math/src/polismath/math/pca.clj)
"""

import numpy as np
from scipy.linalg import svd
from sklearn.decomposition import PCA
import logging

from .matrix_builder import matrix_sparsity

logger = logging.getLogger(__name__)

SPARSITY_THRESHOLD = 0.5

METHOD_PCA = 'pca'
METHOD_SVD = 'svd'
METHOD_TRUNCATE = 'truncate'


def truncate_rows(vote_matrix, n_components=2):
    """
    Degenerate projection: first n_components columns of each row.

    Rows shorter than n_components are padded with zeros, and non-finite
    values are zero-filled.

    Args:
        vote_matrix: numpy array (N_participants × N_topics)
        n_components: output width

    Returns:
        numpy array (N_participants × n_components)
    """
    vote_matrix = np.asarray(vote_matrix, dtype=float)
    n_rows = vote_matrix.shape[0]
    n_cols = vote_matrix.shape[1] if vote_matrix.ndim == 2 else 0

    projection = np.zeros((n_rows, n_components))
    width = min(n_components, n_cols)
    if width > 0:
        projection[:, :width] = vote_matrix[:, :width]

    return np.nan_to_num(projection, nan=0.0, posinf=0.0, neginf=0.0)


def _truncated_result(vote_matrix, n_components, sparsity):
    return {
        'projection': truncate_rows(vote_matrix, n_components),
        'method': METHOD_TRUNCATE,
        'sparsity': sparsity,
        'variance_explained': np.array([]),
    }


def _svd_projection(vote_matrix, n_components):
    U, S, _ = svd(vote_matrix, full_matrices=False)

    projection = np.zeros((vote_matrix.shape[0], n_components))
    width = min(n_components, U.shape[1])
    projection[:, :width] = U[:, :width]

    total_variance = np.sum(S ** 2)
    if total_variance > 0:
        variance_explained = (S[:width] ** 2) / total_variance
    else:
        variance_explained = np.zeros(width)

    return projection, variance_explained


def _pca_projection(vote_matrix, n_components):
    # PCA centers the matrix before projecting
    pca = PCA(n_components=n_components)
    projection = pca.fit_transform(vote_matrix)
    variance_explained = np.nan_to_num(pca.explained_variance_ratio_)
    return projection, variance_explained


def compute_projection(vote_matrix, n_components=2):
    """
    Project participants onto n_components dimensions.

    Args:
        vote_matrix: numpy array (N_participants × N_topics)
                     Values: +1 (agree), -1 (disagree), 0 (no vote)
        n_components: int, number of dimensions (default 2)

    Returns:
        dict with keys:
            - projection: numpy array (N_participants × n_components)
            - method: 'pca', 'svd' or 'truncate'
            - sparsity: fraction of cells without a vote
            - variance_explained: variance ratio per component
              (empty for truncation)

    Never raises for numerical problems; degrades to truncation instead.
    """
    vote_matrix = np.asarray(vote_matrix, dtype=float)

    if vote_matrix.ndim != 2 or vote_matrix.size == 0:
        logger.warning("Empty vote matrix, nothing to project")
        n_rows = vote_matrix.shape[0] if vote_matrix.ndim >= 1 else 0
        return _truncated_result(np.zeros((n_rows, 0)), n_components, 0.0)

    n_rows, n_cols = vote_matrix.shape

    if not np.all(np.isfinite(vote_matrix)):
        logger.error("Vote matrix contains invalid values, truncating rows")
        return _truncated_result(vote_matrix, n_components, 0.0)

    sparsity = matrix_sparsity(vote_matrix)

    if n_rows < n_components or n_cols < n_components:
        logger.warning(
            f"Matrix too small for projection: {n_rows}×{n_cols}, "
            f"need {n_components} rows and columns. Truncating rows."
        )
        return _truncated_result(vote_matrix, n_components, sparsity)

    logger.info(
        f"Projecting {n_rows} participants × {n_cols} topics to "
        f"{n_components} components (sparsity {sparsity * 100:.1f}%)"
    )

    if sparsity > SPARSITY_THRESHOLD:
        method = METHOD_SVD
        project = _svd_projection
    else:
        method = METHOD_PCA
        project = _pca_projection

    try:
        projection, variance_explained = project(vote_matrix, n_components)
    except Exception as e:
        logger.error(f"{method.upper()} projection failed: {e}. Truncating rows.")
        return _truncated_result(vote_matrix, n_components, sparsity)

    if not np.all(np.isfinite(projection)):
        logger.warning(
            f"{method.upper()} projection produced invalid values, zero-filling"
        )
        projection = np.nan_to_num(projection, nan=0.0, posinf=0.0, neginf=0.0)

    logger.info(
        f"{method.upper()} complete: variance explained = {variance_explained}"
    )

    return {
        'projection': projection,
        'method': method,
        'sparsity': sparsity,
        'variance_explained': variance_explained,
    }
