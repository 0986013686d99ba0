from celery import shared_task
from celery.utils.log import get_task_logger
from pydantic import ValidationError

from deliberation.schemas import ConsensusAnalysisResult, Evaluation, Post
from deliberation.services import EvaluationService

logger = get_task_logger(__name__)


@shared_task
def run_consensus_analysis_task(evaluations, posts):
    """
    Run consensus analysis outside the request/response cycle.

    Args:
        evaluations: list of evaluation dicts ({postId, evaluatorId, rating})
        posts: list of post dicts ({id, approved, ...})

    Returns:
        dict: ConsensusAnalysisResult dumped with camelCase keys
    """
    try:
        evaluations = [Evaluation.model_validate(e) for e in evaluations]
        posts = [Post.model_validate(p) for p in posts]
    except ValidationError as e:
        logger.error(f"Invalid consensus analysis payload: {e}")
        return ConsensusAnalysisResult().model_dump(by_alias=True)

    logger.info(
        f"Consensus analysis task: {len(evaluations)} evaluations, "
        f"{len(posts)} posts"
    )

    result = EvaluationService().analyze_consensus(evaluations, posts)
    return result.model_dump(by_alias=True)
