"""
Generate synthetic forum evaluations split into opinion blocs.

Each simulated participant belongs to one of N blocs. Every bloc has its
own leaning (+ or -) on each post, plus a set of shared posts that every
bloc tends to agree with. Participants only evaluate part of the posts,
so the resulting vote matrix is realistically sparse.

The output is the JSON accepted by `manage.py analyze_consensus`:

    python scripts/simulate_evaluations.py --participants 60 --posts 15 > data.json
    python manage.py analyze_consensus data.json --clusters
"""

from __future__ import annotations

import argparse
import json
import random
import sys
from typing import Dict, List


def bloc_leanings(
    n_blocs: int, post_ids: List[str], shared_posts: int, rng: random.Random
) -> List[Dict[str, str]]:
    """Preferred rating of every bloc on every post."""
    shared = set(post_ids[:shared_posts])
    leanings = []
    for _ in range(n_blocs):
        leanings.append({
            post_id: "+" if post_id in shared else rng.choice("+-")
            for post_id in post_ids
        })
    return leanings


def simulate_participant(
    participant_id: str,
    leaning: Dict[str, str],
    participation: float,
    loyalty: float,
    rng: random.Random,
) -> List[dict]:
    """Evaluations of one participant, following the bloc with some noise."""
    evaluations = []
    for post_id, preferred in leaning.items():
        if rng.random() > participation:
            continue
        if rng.random() < loyalty:
            rating = preferred
        else:
            rating = "-" if preferred == "+" else "+"
        evaluations.append({
            "postId": post_id,
            "evaluatorId": participant_id,
            "rating": rating,
        })
    return evaluations


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate synthetic evaluations to test consensus analysis."
    )
    parser.add_argument("--participants", type=int, default=60, help="Number of participants")
    parser.add_argument("--posts", type=int, default=15, help="Number of posts")
    parser.add_argument("--blocs", type=int, default=2, help="Number of opinion blocs")
    parser.add_argument(
        "--shared-posts",
        type=int,
        default=2,
        help="Posts every bloc leans towards agreeing with",
    )
    parser.add_argument(
        "--participation",
        type=float,
        default=0.6,
        help="Probability that a participant evaluates a given post (0-1)",
    )
    parser.add_argument(
        "--loyalty",
        type=float,
        default=0.85,
        help="Probability of voting with the bloc (0-1)",
    )
    parser.add_argument(
        "--unapproved",
        type=int,
        default=0,
        help="Extra posts marked as not approved",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")

    args = parser.parse_args()
    rng = random.Random(args.seed)

    post_ids = [f"post-{i}" for i in range(args.posts)]
    leanings = bloc_leanings(args.blocs, post_ids, args.shared_posts, rng)

    evaluations = []
    for idx in range(args.participants):
        bloc = idx % args.blocs
        evaluations.extend(
            simulate_participant(
                f"participant-{idx}",
                leanings[bloc],
                args.participation,
                args.loyalty,
                rng,
            )
        )

    posts = [
        {"id": post_id, "approved": True, "content": f"Bus stop proposal {post_id}"}
        for post_id in post_ids
    ]
    posts.extend(
        {"id": f"pending-{i}", "approved": False, "content": "Awaiting moderation"}
        for i in range(args.unapproved)
    )

    print(
        f"[done] participants={args.participants}, posts={len(posts)}, "
        f"evaluations={len(evaluations)}",
        file=sys.stderr,
    )
    json.dump({"evaluations": evaluations, "posts": posts}, sys.stdout, indent=2)


if __name__ == "__main__":
    main()
