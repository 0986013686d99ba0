"""
Vote matrix builder for consensus analysis.

Converts (participant, topic, vote) records into a dense matrix
suitable for projection and clustering.
"""

from typing import NamedTuple
import numpy as np
import logging

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2
MIN_TOPICS = 2

VALID_VOTES = (-1, 0, 1)


class Vote(NamedTuple):
    participant_id: str
    topic_id: str
    value: int


def build_vote_matrix(votes):
    """
    Build dense vote matrix (participants × topics) from vote records.

    Args:
        votes: iterable of Vote (or plain (participant_id, topic_id, value)
            tuples)

    Returns:
        tuple: (vote_matrix, participant_ids, topic_ids)
            - vote_matrix: numpy array (N_participants × N_topics)
            - participant_ids: participant ids in first-seen order
            - topic_ids: topic ids in first-seen order

        With fewer than 2 participants or 2 topics the matrix is empty
        (0 × 0) and both id lists are empty.

    Encoding:
        agree = +1
        disagree = -1
        pass / no vote = 0
    """
    participant_index = {}
    topic_index = {}
    cells = {}

    for participant_id, topic_id, value in votes:
        if not participant_id or not topic_id:
            continue

        if value not in VALID_VOTES:
            logger.warning(
                f"Skipping vote with invalid value {value!r} "
                f"({participant_id} on {topic_id})"
            )
            continue

        if participant_id not in participant_index:
            participant_index[participant_id] = len(participant_index)
        if topic_id not in topic_index:
            topic_index[topic_id] = len(topic_index)

        # First observed vote for a cell wins
        cell = (participant_index[participant_id], topic_index[topic_id])
        if cell not in cells:
            cells[cell] = value

    n_participants = len(participant_index)
    n_topics = len(topic_index)

    if n_participants < MIN_PARTICIPANTS or n_topics < MIN_TOPICS:
        logger.warning(
            f"Insufficient data for vote matrix: {n_participants} participants, "
            f"{n_topics} topics (need {MIN_PARTICIPANTS} × {MIN_TOPICS})"
        )
        return np.zeros((0, 0)), [], []

    vote_matrix = np.zeros((n_participants, n_topics), dtype=float)
    for (row, col), value in cells.items():
        vote_matrix[row, col] = value

    density = np.count_nonzero(vote_matrix) / vote_matrix.size * 100
    logger.info(
        f"Built vote matrix: {n_participants} participants × {n_topics} topics "
        f"({np.count_nonzero(vote_matrix)} non-zero votes, {density:.1f}% density)"
    )

    return vote_matrix, list(participant_index), list(topic_index)


def matrix_sparsity(vote_matrix):
    """Fraction of cells holding no vote (0.0 for an empty matrix)."""
    if vote_matrix.size == 0:
        return 0.0
    return 1.0 - np.count_nonzero(vote_matrix) / vote_matrix.size
