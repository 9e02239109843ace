# SPDX-License-Identifier: Apache-2.0

"""
Social feed endpoints: posts, likes and comments.
"""

from flask import Blueprint, current_app, jsonify

from ..middleware.auth import current_principal, optional_auth, require_auth
from ..middleware.validation import validate_json
from ..models.requests import CreateCommentRequest, CreatePostRequest

posts_bp = Blueprint('posts', __name__, url_prefix='/api/posts')


def _post_collection(posts, path: str):
    formatter = current_app.hal_formatter
    principal = current_principal()
    items = [formatter.format_post(post, principal) for post in posts]
    return jsonify(formatter.format_collection(items, "posts", path))


@posts_bp.get('')
@optional_auth
def feed():
    """Global feed, newest first. `is_liked` reflects the viewer."""
    return _post_collection(current_app.post_service.feed(current_principal()), "/api/posts")


@posts_bp.post('')
@require_auth
@validate_json(CreatePostRequest)
def create_post(body: CreatePostRequest):
    post = current_app.post_service.create(current_principal(), body)
    data = post.to_public()
    data.update({"like_count": 0, "comment_count": 0, "is_liked": False})
    return jsonify(current_app.hal_formatter.format_post(data, current_principal())), 201


@posts_bp.get('/author/<author_id>')
@optional_auth
def posts_by_author(author_id: str):
    posts = current_app.post_service.by_author(author_id, current_principal())
    return _post_collection(posts, f"/api/posts/author/{author_id}")


@posts_bp.post('/<post_id>/like')
@require_auth
def toggle_like(post_id: str):
    liked, like_count = current_app.post_service.toggle_like(current_principal(), post_id)
    return jsonify({"liked": liked, "like_count": like_count})


@posts_bp.post('/<post_id>/comments')
@require_auth
@validate_json(CreateCommentRequest)
def add_comment(body: CreateCommentRequest, post_id: str):
    comment = current_app.post_service.add_comment(current_principal(), post_id, body)
    return jsonify(current_app.hal_formatter.format_resource(
        comment.to_public(), f"/api/posts/{post_id}/comments"
    )), 201


@posts_bp.get('/<post_id>/comments')
def list_comments(post_id: str):
    formatter = current_app.hal_formatter
    items = current_app.post_service.list_comments(post_id)
    return jsonify(formatter.format_collection(items, "comments", f"/api/posts/{post_id}/comments"))
