"""
Management command to run consensus analysis on exported forum data.

Usage:
    python manage.py analyze_consensus data.json
    python manage.py analyze_consensus data.json --clusters
    python manage.py analyze_consensus data.json --async

The input file holds {"evaluations": [...], "posts": [...]} using the
forum's camelCase keys.
"""

import json

from django.core.management.base import BaseCommand, CommandError
from pydantic import ValidationError

from deliberation.schemas import Evaluation, Post
from deliberation.services import EvaluationService
from deliberation.tasks import run_consensus_analysis_task


class Command(BaseCommand):
    help = 'Run group-aware consensus analysis on a JSON export'

    def add_arguments(self, parser):
        parser.add_argument(
            'path',
            help='JSON file with "evaluations" and "posts"'
        )
        parser.add_argument(
            '--clusters',
            action='store_true',
            help='Also print the opinion group of every participant'
        )
        parser.add_argument(
            '--async',
            action='store_true',
            dest='run_async',
            help='Run as Celery task (async)'
        )

    def handle(self, *args, **options):
        try:
            with open(options['path']) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CommandError(f"Could not read {options['path']}: {e}")

        raw_evaluations = data.get('evaluations', [])
        raw_posts = data.get('posts', [])

        self.stdout.write(
            f'Starting consensus analysis: '
            f'{len(raw_evaluations)} evaluations, {len(raw_posts)} posts'
        )

        if options['run_async']:
            result = run_consensus_analysis_task.delay(
                evaluations=raw_evaluations,
                posts=raw_posts,
            )
            self.stdout.write(
                self.style.SUCCESS(f'Task dispatched: {result.id}')
            )
            return

        try:
            evaluations = [Evaluation.model_validate(e) for e in raw_evaluations]
            posts = [Post.model_validate(p) for p in raw_posts]
        except ValidationError as e:
            raise CommandError(f'Invalid input data: {e}')

        service = EvaluationService()
        result, clusters = service.analyze(evaluations, posts)

        if result.is_empty():
            self.stdout.write(
                self.style.WARNING('Not enough data for consensus analysis')
            )
            return

        self.stdout.write(self.style.SUCCESS('Group-aware consensus:'))
        for item in result.group_aware_consensus:
            self.stdout.write(
                f"  {item.post_id}: score={item.consensus_score:.3f} "
                f"agree={item.overall_agree_percentage}%"
            )

        for group in result.group_representative_comments:
            self.stdout.write(
                self.style.SUCCESS(f'Group {group.group_id} representative posts:')
            )
            for comment in group.comments:
                self.stdout.write(
                    f"  {comment.post_id}: {comment.vote_type} "
                    f"score={comment.representativeness_score:.3f} "
                    f"z={comment.z_score:.2f} p={comment.p_value:.4f}"
                )

        if options['clusters']:
            self.stdout.write(self.style.SUCCESS('Participant groups:'))
            for participant_id, group_id in sorted(clusters.items()):
                self.stdout.write(f'  {participant_id}: {group_id}')
