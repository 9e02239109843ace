# SPDX-License-Identifier: Apache-2.0

"""
Social feed: posts, like toggles and comments.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from opentelemetry import trace
from pymongo import ASCENDING, DESCENDING

from ..domain.authorization import authorize
from ..domain.social import count_by, enrich_posts, viewer_id
from ..middleware.error_handler import NotFoundException, ensure_allowed
from ..models.entities import Post, PostComment, Principal
from ..models.enums import Action
from ..models.requests import CreateCommentRequest, CreatePostRequest
from .mongodb import MongoDBService, POSTS, POST_COMMENTS, POST_LIKES
from .users import UserService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PostService:
    """Service for the social feed."""

    def __init__(self, mongo_service: MongoDBService, user_service: UserService):
        self.mongo_service = mongo_service
        self.user_service = user_service

    def get_post(self, post_id: str) -> Post:
        post = Post.from_document(self.mongo_service.find_one(POSTS, post_id))
        if post is None:
            raise NotFoundException(f"Post {post_id} not found")
        return post

    def _enriched(self, filters: Dict[str, Any], principal: Optional[Principal]) -> List[Dict[str, Any]]:
        with tracer.start_as_current_span("posts.enrich") as span:
            posts = [Post.from_document(doc) for doc in self.mongo_service.find(
                POSTS, filters, sort=[("createdAt", DESCENDING), ("_id", DESCENDING)]
            )]
            span.set_attribute("posts.count", len(posts))
            if not posts:
                return []

            post_ids = [post.id for post in posts]
            likes = self.mongo_service.find(POST_LIKES, {"postId": {"$in": post_ids}})
            comments = self.mongo_service.find(POST_COMMENTS, {"postId": {"$in": post_ids}})
            authors = self.user_service.users_by_ids(post.author_id for post in posts)

            viewer = viewer_id(principal)
            liked = {like["postId"] for like in likes if like.get("userId") == viewer} if viewer else set()

            return enrich_posts(posts, authors, count_by(likes, "postId"), count_by(comments, "postId"), liked)

    def feed(self, principal: Optional[Principal]) -> List[Dict[str, Any]]:
        """Global feed, newest first."""
        ensure_allowed(authorize(principal, Action.LIST_POSTS))
        return self._enriched({}, principal)

    def by_author(self, author_id: str, principal: Optional[Principal]) -> List[Dict[str, Any]]:
        ensure_allowed(authorize(principal, Action.LIST_POSTS))
        return self._enriched({"authorId": author_id}, principal)

    def create(self, principal: Optional[Principal], request: CreatePostRequest) -> Post:
        ensure_allowed(authorize(principal, Action.CREATE_POST))
        post = Post(author_id=principal.user_id, content=request.content, media_url=request.media_url)
        self.mongo_service.create(POSTS, post.to_document())
        logger.info("Post created", extra={"extra_fields": {"post_id": post.id, "author_id": post.author_id}})
        return post

    def toggle_like(self, principal: Optional[Principal], post_id: str) -> Tuple[bool, int]:
        """
        Flip the caller's like on a post.

        Returns:
            (liked after the call, like count)
        """
        with tracer.start_as_current_span("posts.toggle_like") as span:
            ensure_allowed(authorize(principal, Action.LIKE_POST))
            post = self.get_post(post_id)

            liked = self.mongo_service.toggle_relation(
                POST_LIKES, {"postId": post.id, "userId": principal.user_id}
            )
            span.set_attribute("social.liked", liked)
            return liked, self.mongo_service.count(POST_LIKES, {"postId": post.id})

    def add_comment(self, principal: Optional[Principal], post_id: str,
                    request: CreateCommentRequest) -> PostComment:
        ensure_allowed(authorize(principal, Action.COMMENT_ON_POST))
        post = self.get_post(post_id)
        comment = PostComment(post_id=post.id, author_id=principal.user_id, content=request.content)
        self.mongo_service.create(POST_COMMENTS, comment.to_document())
        return comment

    def list_comments(self, post_id: str) -> List[Dict[str, Any]]:
        """Comments oldest first, each with its author summary."""
        ensure_allowed(authorize(None, Action.LIST_COMMENTS))
        post = self.get_post(post_id)
        comments = [PostComment.from_document(doc) for doc in self.mongo_service.find(
            POST_COMMENTS, {"postId": post.id}, sort=[("createdAt", ASCENDING), ("_id", ASCENDING)]
        )]
        authors = self.user_service.users_by_ids(comment.author_id for comment in comments)

        items = []
        for comment in comments:
            data = comment.to_public()
            author = authors.get(comment.author_id)
            data["author"] = author.summary() if author else None
            items.append(data)
        return items
