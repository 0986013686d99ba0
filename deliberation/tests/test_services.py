"""
Tests for the evaluation service, Celery task and management command.
"""

import json
import pytest
from io import StringIO
from unittest import mock
from django.core.management import call_command
from django.core.management.base import CommandError
from deliberation.consensus import run_analysis
from deliberation.schemas import ConsensusAnalysisResult, Evaluation, Post
from deliberation.services import EvaluationService
from deliberation.tasks import run_consensus_analysis_task


def evaluation(post_id, evaluator_id, rating):
    return Evaluation(post_id=post_id, evaluator_id=evaluator_id, rating=rating)


class TestMinimumData:
    """Below any threshold the result is empty and nothing is computed."""

    def test_four_evaluations_on_three_posts(self, make_posts):
        posts = make_posts("p1", "p2", "p3")
        evaluations = [
            evaluation("p1", "u1", "+"),
            evaluation("p2", "u1", "-"),
            evaluation("p1", "u2", "+"),
            evaluation("p3", "u2", "+"),
        ]

        with mock.patch(
            "deliberation.consensus.analysis.compute_projection"
        ) as projection, mock.patch(
            "deliberation.consensus.analysis.cluster_participants"
        ) as clustering:
            result = EvaluationService().analyze_consensus(evaluations, posts)

        assert result.group_aware_consensus == []
        assert result.group_representative_comments == []
        projection.assert_not_called()
        clustering.assert_not_called()

    def test_unapproved_posts_are_ignored(self, make_posts):
        posts = make_posts("p1") + make_posts("p2", "p3", approved=False)
        evaluations = [
            evaluation(post_id, user, "+")
            for post_id in ("p1", "p2", "p3")
            for user in ("u1", "u2", "u3")
        ]

        with mock.patch("deliberation.services.run_analysis") as run:
            result = EvaluationService().analyze_consensus(evaluations, posts)

        assert result.is_empty()
        run.assert_not_called()

    def test_evaluations_on_unapproved_posts_do_not_count(self, make_posts):
        posts = make_posts("p1", "p2") + make_posts("p3", approved=False)
        evaluations = [
            evaluation("p1", "u1", "+"),
            evaluation("p2", "u2", "+"),
            evaluation("p3", "u1", "+"),
            evaluation("p3", "u2", "-"),
            evaluation("p3", "u3", "-"),
        ]

        with mock.patch("deliberation.services.run_analysis") as run:
            result = EvaluationService().analyze_consensus(evaluations, posts)

        assert result.is_empty()
        run.assert_not_called()

    def test_single_participant(self, make_posts):
        posts = make_posts("p1", "p2", "p3", "p4", "p5")
        evaluations = [
            evaluation(p.id, "u1", "+") for p in posts
        ]

        result = EvaluationService().analyze_consensus(evaluations, posts)

        assert result.is_empty()

    def test_thresholds_from_settings(self, settings, make_posts):
        settings.CONSENSUS_MIN_EVALUATIONS = 4
        posts = make_posts("p1", "p2")
        evaluations = [
            evaluation("p1", "u1", "+"),
            evaluation("p2", "u1", "-"),
            evaluation("p1", "u2", "+"),
            evaluation("p2", "u2", "+"),
        ]

        result = EvaluationService().analyze_consensus(evaluations, posts)

        assert not result.is_empty()
        assert EvaluationService(min_evaluations=5).analyze_consensus(
            evaluations, posts
        ).is_empty()


class TestAnalyzeConsensus:

    def test_bimodal_discussion(self, bimodal_evaluations, make_posts):
        posts = make_posts("t1", "t2", "t3", "t4", "t5")

        result = EvaluationService().analyze_consensus(bimodal_evaluations, posts)

        consensus = result.group_aware_consensus
        assert [item.post_id for item in consensus][0] == "t5"
        assert consensus[0].overall_agree_percentage == 100
        assert consensus[0].post.id == "t5"
        scores = [item.consensus_score for item in consensus]
        assert scores == sorted(scores, reverse=True)

        groups = result.group_representative_comments
        assert len(groups) >= 2
        for group in groups:
            assert 0 < len(group.comments) <= 5
            for comment in group.comments:
                assert comment.post.id == comment.post_id
                assert comment.vote_type in ("agree", "disagree")
                assert comment.z_score >= 1.28

    def test_overall_agree_percentage(self, make_posts):
        posts = make_posts("p1", "p2")
        evaluations = [
            evaluation("p1", "u1", "+"),
            evaluation("p1", "u2", "+"),
            evaluation("p1", "u3", "-"),
            evaluation("p2", "u1", "-"),
            evaluation("p2", "u2", "-"),
            evaluation("p2", "u3", "-"),
        ]

        result = EvaluationService().analyze_consensus(evaluations, posts)
        percentages = {
            item.post_id: item.overall_agree_percentage
            for item in result.group_aware_consensus
        }

        assert percentages == {"p1": 67, "p2": 0}

    def test_top_ten_posts(self, make_posts):
        post_ids = [f"p{i}" for i in range(12)]
        posts = make_posts(*post_ids)
        evaluations = [
            evaluation(post_id, f"u{j}", "+" if (i + j) % 3 else "-")
            for i, post_id in enumerate(post_ids)
            for j in range(4)
        ]

        result = EvaluationService().analyze_consensus(evaluations, posts)

        assert len(result.group_aware_consensus) == 10

    def test_unexpected_failure_returns_empty(self, bimodal_evaluations, make_posts):
        posts = make_posts("t1", "t2", "t3", "t4", "t5")

        with mock.patch(
            "deliberation.services.run_analysis",
            side_effect=RuntimeError("unexpected"),
        ):
            result = EvaluationService().analyze_consensus(
                bimodal_evaluations, posts
            )

        assert result == ConsensusAnalysisResult()

    def test_participant_clusters(self, bimodal_evaluations, make_posts):
        posts = make_posts("t1", "t2", "t3", "t4", "t5")

        clusters = EvaluationService().get_participant_clusters(
            bimodal_evaluations, posts
        )

        assert len(clusters) == 12
        assert clusters["a0"] != clusters["b0"]
        assert EvaluationService().get_participant_clusters([], posts) == {}

    def test_analyze_returns_result_and_clusters(self, bimodal_evaluations, make_posts):
        posts = make_posts("t1", "t2", "t3", "t4", "t5")

        result, clusters = EvaluationService().analyze(bimodal_evaluations, posts)

        assert result.group_aware_consensus[0].post_id == "t5"
        assert len(clusters) == 12
        assert clusters["a0"] != clusters["b0"]

    def test_camel_case_output(self, bimodal_evaluations, make_posts):
        posts = make_posts("t1", "t2", "t3", "t4", "t5")

        data = EvaluationService().analyze_consensus(
            bimodal_evaluations, posts
        ).model_dump(by_alias=True)

        assert set(data) == {"groupAwareConsensus", "groupRepresentativeComments"}
        item = data["groupAwareConsensus"][0]
        assert {"postId", "post", "consensusScore", "overallAgreePercentage"} <= set(item)
        assert item["post"]["content"] == "Post t5"


class TestConsensusTask:

    def test_runs_analysis(self, bimodal_evaluations, make_posts):
        posts = make_posts("t1", "t2", "t3", "t4", "t5")

        data = run_consensus_analysis_task(
            evaluations=[e.model_dump(by_alias=True) for e in bimodal_evaluations],
            posts=[p.model_dump(by_alias=True) for p in posts],
        )

        assert data["groupAwareConsensus"][0]["postId"] == "t5"
        assert len(data["groupRepresentativeComments"]) >= 2

    def test_invalid_payload(self):
        data = run_consensus_analysis_task(
            evaluations=[{"postId": "p1", "evaluatorId": "u1", "rating": "?"}],
            posts=[{"id": "p1", "approved": True}],
        )

        assert data == {"groupAwareConsensus": [], "groupRepresentativeComments": []}


class TestAnalyzeConsensusCommand:

    @pytest.fixture
    def export_file(self, tmp_path, bimodal_evaluations, make_posts):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({
            "evaluations": [e.model_dump(by_alias=True) for e in bimodal_evaluations],
            "posts": [
                p.model_dump(by_alias=True)
                for p in make_posts("t1", "t2", "t3", "t4", "t5")
            ],
        }))
        return path

    def test_prints_results(self, export_file):
        out = StringIO()
        call_command("analyze_consensus", str(export_file), "--clusters", stdout=out)

        output = out.getvalue()
        assert "Group-aware consensus:" in output
        assert "t5: score=" in output
        assert "Participant groups:" in output
        assert "a0:" in output

    def test_clusters_reuse_the_same_run(self, export_file):
        out = StringIO()
        with mock.patch(
            "deliberation.services.run_analysis", wraps=run_analysis
        ) as run:
            call_command("analyze_consensus", str(export_file), "--clusters", stdout=out)

        assert run.call_count == 1
        assert "Participant groups:" in out.getvalue()

    def test_not_enough_data(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"evaluations": [], "posts": []}))
        out = StringIO()

        call_command("analyze_consensus", str(path), stdout=out)

        assert "Not enough data" in out.getvalue()

    def test_missing_file(self, tmp_path):
        with pytest.raises(CommandError):
            call_command("analyze_consensus", str(tmp_path / "missing.json"))

    def test_async_dispatch(self, export_file):
        out = StringIO()
        with mock.patch(
            "deliberation.management.commands.analyze_consensus"
            ".run_consensus_analysis_task"
        ) as task:
            task.delay.return_value.id = "task-123"
            call_command("analyze_consensus", str(export_file), "--async", stdout=out)

        task.delay.assert_called_once()
        assert "task-123" in out.getvalue()
