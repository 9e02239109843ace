# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for social feed enrichment.
"""

from careconnect.domain.social import count_by, enrich_posts, viewer_id
from careconnect.models.entities import Post, User


class TestFeedEnrichment:
    """Test derived counters and viewer state."""

    def test_count_by(self):
        rows = [{"postId": "a"}, {"postId": "a"}, {"postId": "b"}, {"other": "x"}]
        counts = count_by(rows, "postId")
        assert counts["a"] == 2
        assert counts["b"] == 1
        assert counts["missing"] == 0

    def test_enrich_posts(self):
        author = User(username="vol_one", password_hash="hash", role="volunteer", name="Vera")
        first = Post(author_id=author.id, content="Great day at the park")
        second = Post(author_id="gone", content="Anyone joining?")

        enriched = enrich_posts(
            [first, second],
            {author.id: author},
            {first.id: 3},
            {second.id: 1},
            {first.id}
        )

        assert [post["id"] for post in enriched] == [first.id, second.id]
        assert enriched[0]["like_count"] == 3
        assert enriched[0]["comment_count"] == 0
        assert enriched[0]["is_liked"] is True
        assert enriched[0]["author"]["name"] == "Vera"
        assert "password_hash" not in enriched[0]["author"]
        assert enriched[1]["is_liked"] is False
        assert enriched[1]["author"] is None

    def test_viewer_id(self, volunteer_principal):
        assert viewer_id(None) is None
        assert viewer_id(volunteer_principal) == "vol-1"
