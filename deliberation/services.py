"""
Consensus analysis for forum posts.

Bridges the forum's posts and evaluations to the consensus engine and
joins the numeric results back onto posts for display.
"""

from collections import Counter
from django.conf import settings
import logging

from deliberation.consensus import Vote, participant_clusters, run_analysis
from deliberation.schemas import (
    ConsensusAnalysisResult,
    ConsensusItem,
    GroupConsensusData,
    RepresentativeComment,
)

logger = logging.getLogger(__name__)

RATING_VALUES = {"+": 1, "-": -1}


class EvaluationService:
    """
    Runs group-aware consensus analysis over approved posts.

    Holds configuration only; every call is independent, so one instance
    can be shared or a new one built per call.
    """

    def __init__(self, **overrides):
        def option(name, default):
            return overrides.get(
                name, getattr(settings, f"CONSENSUS_{name.upper()}", default)
            )

        self.min_evaluations = option("min_evaluations", 5)
        self.min_posts = option("min_posts", 2)
        self.min_participants = option("min_participants", 2)
        self.min_topics = option("min_topics", 2)
        self.top_consensus = option("top_consensus", 10)
        self.top_representative = option("top_representative", 5)
        self.n_components = option("n_components", 2)
        self.max_clusters = option("max_clusters", 10)
        self.z_threshold = option("z_threshold", 1.28)
        self.fdr_alpha = option("fdr_alpha", None)
        self.random_state = option("random_state", 42)

    def _qualifying_data(self, evaluations, posts):
        """
        Approved posts and the evaluations that reference them.

        Returns:
            tuple: (approved_posts, approved_evaluations), or None when
            below any minimum data threshold.
        """
        approved_posts = [p for p in posts if p.approved]
        approved_ids = {p.id for p in approved_posts}
        approved_evaluations = [
            e for e in evaluations if e.post_id in approved_ids
        ]

        n_participants = len({e.evaluator_id for e in approved_evaluations})
        n_topics = len({e.post_id for e in approved_evaluations})

        if (
            len(approved_evaluations) < self.min_evaluations
            or len(approved_posts) < self.min_posts
            or n_participants < self.min_participants
            or n_topics < self.min_topics
        ):
            logger.warning(
                f"Not enough data for consensus analysis: "
                f"{len(approved_evaluations)} evaluations "
                f"(min {self.min_evaluations}), "
                f"{len(approved_posts)} approved posts (min {self.min_posts}), "
                f"{n_participants} participants (min {self.min_participants}), "
                f"{n_topics} posts evaluated (min {self.min_topics})"
            )
            return None

        return approved_posts, approved_evaluations

    def _run(self, evaluations):
        votes = [
            Vote(e.evaluator_id, e.post_id, RATING_VALUES[e.rating])
            for e in evaluations
        ]
        return run_analysis(
            votes,
            n_components=self.n_components,
            max_clusters=self.max_clusters,
            z_threshold=self.z_threshold,
            top_n=self.top_representative,
            fdr_alpha=self.fdr_alpha,
            random_state=self.random_state,
        )

    def analyze(self, evaluations, posts):
        """
        Run the analysis once and return both views of it.

        Args:
            evaluations: list of Evaluation
            posts: list of Post

        Returns:
            tuple: (ConsensusAnalysisResult, {evaluator_id: group_id}), both
            empty when there is not enough data or the analysis fails.
        """
        try:
            logger.info(
                f"Starting consensus analysis: {len(evaluations)} evaluations, "
                f"{len(posts)} posts"
            )

            data = self._qualifying_data(evaluations, posts)
            if data is None:
                return ConsensusAnalysisResult(), {}
            approved_posts, approved_evaluations = data

            result = self._run(approved_evaluations)
            post_map = {p.id: p for p in approved_posts}

            totals = Counter(e.post_id for e in approved_evaluations)
            agrees = Counter(
                e.post_id for e in approved_evaluations if e.rating == "+"
            )

            consensus_items = []
            for post_id, score in result.group_aware_consensus.items():
                post = post_map.get(post_id)
                if post is None:
                    continue
                consensus_items.append(ConsensusItem(
                    post_id=post_id,
                    post=post,
                    consensus_score=score,
                    overall_agree_percentage=(
                        round(agrees[post_id] / totals[post_id] * 100)
                        if totals[post_id] else 0
                    ),
                ))
            consensus_items.sort(key=lambda c: c.consensus_score, reverse=True)

            groups = []
            for group_id, comments in result.group_representative_comments.items():
                group_comments = [
                    RepresentativeComment(
                        post_id=c["topic_id"],
                        post=post_map[c["topic_id"]],
                        representativeness_score=c["score"],
                        z_score=c["z_score"],
                        p_value=c["p_value"],
                        adjusted_p_value=c["adjusted_p_value"],
                        vote_type=c["vote_type"],
                        agree_ratio=c["agree_ratio"],
                        disagree_ratio=c["disagree_ratio"],
                    )
                    for c in comments
                    if c["topic_id"] in post_map
                ][:self.top_representative]

                if group_comments:
                    groups.append(GroupConsensusData(
                        group_id=group_id, comments=group_comments
                    ))

            logger.info(
                f"Consensus analysis complete: {len(consensus_items)} posts "
                f"scored, {len(groups)} groups with representative posts"
            )

            return ConsensusAnalysisResult(
                group_aware_consensus=consensus_items[:self.top_consensus],
                group_representative_comments=groups,
            ), participant_clusters(result)
        except Exception as e:
            logger.exception(f"Consensus analysis failed: {e}")
            return ConsensusAnalysisResult(), {}

    def analyze_consensus(self, evaluations, posts):
        """
        Group-aware consensus and representative posts per opinion group.

        Returns:
            ConsensusAnalysisResult, empty when there is not enough data
            or the analysis fails.
        """
        result, _ = self.analyze(evaluations, posts)
        return result

    def get_participant_clusters(self, evaluations, posts):
        """
        Opinion group of every participant, for visualization.

        Returns:
            dict: {evaluator_id: group_id}, empty when there is not enough
            data or the analysis fails.
        """
        _, clusters = self.analyze(evaluations, posts)
        return clusters
