"""
Comment tree mutations over a Post's embedded comments and replies.

Comments and replies are addressed by (parent, local id). Lookups are linear
scans in insertion order. These functions only touch the in-memory Post; the
store persists the result.
"""

from errors import CommentNotFound, ReplyNotFound, ValidationFailed
from schemas import Comment, Post, Reply
from votes import VoteType, cast_switchable_vote


def _require_text(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationFailed("Text and commentedBy are required")
    return text


def find_comment(post: Post, comment_id: str) -> Comment:
    for comment in post.comments:
        if comment.id == comment_id:
            return comment
    raise CommentNotFound()


def find_reply(comment: Comment, reply_id: str) -> Reply:
    for reply in comment.replies:
        if reply.id == reply_id:
            return reply
    raise ReplyNotFound()


def append_comment(post: Post, text: str, author_id: str) -> Post:
    post.comments.append(Comment(text=_require_text(text), commented_by=author_id))
    return post


def append_reply(post: Post, comment_id: str, text: str, author_id: str) -> Post:
    comment = find_comment(post, comment_id)
    comment.replies.append(Reply(text=_require_text(text), commented_by=author_id))
    return post


def vote_comment(post: Post, comment_id: str, voter_id: str, vote_type: VoteType) -> Post:
    cast_switchable_vote(find_comment(post, comment_id).votes, voter_id, vote_type)
    return post


def vote_reply(post: Post, comment_id: str, reply_id: str, voter_id: str, vote_type: VoteType) -> Post:
    reply = find_reply(find_comment(post, comment_id), reply_id)
    cast_switchable_vote(reply.votes, voter_id, vote_type)
    return post
