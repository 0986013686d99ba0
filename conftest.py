import pytest
from deliberation.consensus import Vote
from deliberation.schemas import Evaluation, Post

BLOC_A = [f"a{i}" for i in range(6)]
BLOC_B = [f"b{i}" for i in range(6)]

# Bloc A agrees with t1/t2 and rejects t3/t4, bloc B the opposite.
# Everybody agrees with t5.
BLOC_A_VOTES = {"t1": 1, "t2": 1, "t3": -1, "t4": -1, "t5": 1}
BLOC_B_VOTES = {"t1": -1, "t2": -1, "t3": 1, "t4": 1, "t5": 1}


@pytest.fixture
def bimodal_votes():
    """Two opposing blocs of 6 participants, identical within each bloc."""
    votes = []
    for pid in BLOC_A:
        votes.extend(Vote(pid, tid, v) for tid, v in BLOC_A_VOTES.items())
    for pid in BLOC_B:
        votes.extend(Vote(pid, tid, v) for tid, v in BLOC_B_VOTES.items())
    return votes


@pytest.fixture
def make_posts():
    """Build approved posts by id."""
    def _make(*post_ids, approved=True):
        return [
            Post(id=post_id, approved=approved, content=f"Post {post_id}")
            for post_id in post_ids
        ]
    return _make


@pytest.fixture
def bimodal_evaluations(bimodal_votes):
    """Forum evaluations equivalent to bimodal_votes."""
    return [
        Evaluation(
            post_id=vote.topic_id,
            evaluator_id=vote.participant_id,
            rating="+" if vote.value == 1 else "-",
        )
        for vote in bimodal_votes
    ]
