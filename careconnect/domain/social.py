# SPDX-License-Identifier: Apache-2.0

"""
Social feed enrichment.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Set

from ..models.entities import Post, Principal, User


def count_by(rows: Iterable[Dict[str, Any]], key: str) -> Counter:
    """Count relation rows by one of their keys."""
    return Counter(row[key] for row in rows if key in row)


def enrich_posts(posts: Iterable[Post], authors: Dict[str, User], like_counts: Dict[str, int],
                 comment_counts: Dict[str, int], liked_post_ids: Set[str]) -> List[Dict[str, Any]]:
    """
    Add derived counters, the viewer's like state and the author summary.

    Args:
        posts: Posts in display order
        authors: Authors by user ID
        like_counts: Likes per post ID
        comment_counts: Comments per post ID
        liked_post_ids: Post IDs the viewer liked; empty for anonymous viewers

    Returns:
        List of post dictionaries in the same order
    """
    enriched = []
    for post in posts:
        data = post.to_public()
        author = authors.get(post.author_id)
        data["author"] = author.summary() if author else None
        data["like_count"] = like_counts.get(post.id, 0)
        data["comment_count"] = comment_counts.get(post.id, 0)
        data["is_liked"] = post.id in liked_post_ids
        enriched.append(data)
    return enriched


def viewer_id(principal: Optional[Principal]) -> Optional[str]:
    return principal.user_id if principal else None
