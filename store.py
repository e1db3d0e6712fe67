"""
Entity store over the MongoDB collections.

Lockout votes are applied with a single guarded find_one_and_update. Every
write to a post's embedded comment tree goes through ``revise_post``: read the
post with its revision, apply a pure mutation, write back only if the revision
is unchanged, and retry a bounded number of times.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

import settings
from errors import (
    AlreadyVoted,
    ConcurrentModification,
    OpportunityNotFound,
    PostNotFound,
    UserNotFound,
    ValidationFailed,
)
from listing import ListingQuery, run_listing
from logging_config import get_logger
from schemas import Opportunity, Post, User, utcnow
from votes import VoteType, lockout_update

logger = get_logger(__name__)


# ---------- Utilities ----------

def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise ValidationFailed("Invalid id")


def serialize(doc: dict) -> dict:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def serialize_opportunity(doc: dict) -> dict:
    """Opportunities are addressed by their own `id`; the Mongo _id is dropped."""
    return serialize({k: v for k, v in doc.items() if k != "_id"})


def _with_tally(votes: dict) -> dict:
    return {
        **votes,
        "upvotes": len(votes.get("upvoters", [])),
        "downvotes": len(votes.get("downvoters", [])),
    }


def serialize_post(doc: dict) -> dict:
    """serialize() plus derived counts on every comment and reply ledger."""
    d = serialize(doc)
    if not d:
        return d
    comments = []
    for comment in d.get("comments", []):
        replies = [{**r, "votes": _with_tally(r.get("votes", {}))} for r in comment.get("replies", [])]
        comments.append({**comment, "votes": _with_tally(comment.get("votes", {})), "replies": replies})
    d["comments"] = comments
    return d


class Store:
    def __init__(self, db: Database, max_attempts: int = settings.MAX_REVISION_ATTEMPTS):
        self.db = db
        self.users = db["user"]
        self.posts = db["post"]
        self.opportunities = db["opportunity"]
        self.max_attempts = max_attempts

    def ensure_indexes(self) -> None:
        self.opportunities.create_index([("title", ASCENDING)], unique=True)
        self.opportunities.create_index([("id", ASCENDING)], unique=True)
        self.opportunities.create_index([("type", ASCENDING)])
        self.opportunities.create_index([("skills", ASCENDING)])
        self.posts.create_index([("posted_by", ASCENDING)])
        self.posts.create_index([("tags", ASCENDING)])

    # ---------- Users ----------

    def create_user(self, user: User) -> dict:
        doc = user.model_dump()
        res = self.users.insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info("user_created", user_id=str(res.inserted_id))
        return doc

    def get_user(self, user_id: str) -> dict:
        doc = self.users.find_one({"_id": oid(user_id)})
        if not doc:
            raise UserNotFound()
        return doc

    def user_exists(self, user_id: str) -> bool:
        return self.users.find_one({"_id": oid(user_id)}, {"_id": 1}) is not None

    def list_users(self) -> List[dict]:
        return list(self.users.find({}).sort([("created_at", ASCENDING), ("_id", ASCENDING)]))

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> dict:
        if not fields:
            return self.get_user(user_id)
        doc = self.users.find_one_and_update(
            {"_id": oid(user_id)},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise UserNotFound()
        return doc

    def delete_user(self, user_id: str) -> dict:
        # Posts keep their posted_by reference
        doc = self.users.find_one_and_delete({"_id": oid(user_id)})
        if not doc:
            raise UserNotFound()
        logger.info("user_deleted", user_id=user_id)
        return doc

    def vote_user(self, user_id: str, voter_id: str, vote_type: VoteType) -> dict:
        doc = self._lockout_vote(self.users, oid(user_id), voter_id, vote_type, UserNotFound)
        logger.info("user_voted", user_id=user_id, voter_id=voter_id, vote_type=vote_type.value)
        return doc

    # ---------- Posts ----------

    def create_post(self, post: Post) -> dict:
        if not self.user_exists(post.posted_by):
            raise UserNotFound()
        doc = post.model_dump()
        res = self.posts.insert_one(doc)
        doc["_id"] = res.inserted_id
        self.users.update_one({"_id": oid(post.posted_by)}, {"$push": {"posts": str(res.inserted_id)}})
        logger.info("post_created", post_id=str(res.inserted_id), posted_by=post.posted_by, ai_status=post.ai_status)
        return doc

    def get_post(self, post_id: str) -> dict:
        doc = self.posts.find_one({"_id": oid(post_id)})
        if not doc:
            raise PostNotFound()
        return doc

    def list_posts(self, query: ListingQuery) -> dict:
        return run_listing(self.posts, query, serialize_post)

    def update_post(self, post_id: str, fields: Dict[str, Any]) -> dict:
        if not fields:
            return self.get_post(post_id)
        doc = self.posts.find_one_and_update(
            {"_id": oid(post_id)},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise PostNotFound()
        return doc

    def delete_post(self, post_id: str) -> dict:
        doc = self.posts.find_one_and_delete({"_id": oid(post_id)})
        if not doc:
            raise PostNotFound()
        if ObjectId.is_valid(doc.get("posted_by", "")):
            self.users.update_one({"_id": ObjectId(doc["posted_by"])}, {"$pull": {"posts": str(doc["_id"])}})
        logger.info("post_deleted", post_id=post_id)
        return doc

    def vote_post(self, post_id: str, voter_id: str, vote_type: VoteType) -> dict:
        doc = self._lockout_vote(self.posts, oid(post_id), voter_id, vote_type, PostNotFound)
        logger.info("post_voted", post_id=post_id, voter_id=voter_id, vote_type=vote_type.value)
        return doc

    def revise_post(self, post_id: str, mutate: Callable[[Post], Post]) -> dict:
        """Apply ``mutate`` to the post's comment tree with optimistic concurrency.

        Raises PostNotFound if the post is missing, whatever ``mutate`` raises
        (CommentNotFound, ReplyNotFound, ...), or ConcurrentModification once
        every attempt has lost the race.
        """
        pid = oid(post_id)
        for attempt in range(1, self.max_attempts + 1):
            doc = self.posts.find_one({"_id": pid})
            if not doc:
                raise PostNotFound()
            revision = doc.get("revision")
            post = mutate(Post.model_validate(doc))
            comments = [c.model_dump() for c in post.comments]
            now = utcnow()
            guard = {"revision": revision} if revision is not None else {"revision": {"$exists": False}}
            res = self.posts.update_one(
                {"_id": pid, **guard},
                {"$set": {"comments": comments, "updated_at": now}, "$inc": {"revision": 1}},
            )
            if res.matched_count == 1:
                return {**doc, "comments": comments, "updated_at": now, "revision": (revision or 0) + 1}
            logger.warning("post_revision_conflict", post_id=post_id, attempt=attempt)
        raise ConcurrentModification()

    # ---------- Opportunities ----------

    def get_opportunity(self, opportunity_id: str) -> dict:
        doc = self.opportunities.find_one({"id": opportunity_id})
        if not doc:
            raise OpportunityNotFound()
        return doc

    def list_opportunities(self, query: ListingQuery) -> dict:
        return run_listing(self.opportunities, query, serialize_opportunity)

    def upsert_opportunity(self, listing: Opportunity) -> Optional[dict]:
        """Insert or update a listing keyed on its title. The id is only set on insert."""
        now = utcnow()
        return self.opportunities.find_one_and_update(
            {"title": listing.title},
            {
                "$set": {**listing.model_dump(), "updated_at": now},
                "$setOnInsert": {"id": str(uuid4()), "created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    # ---------- Helpers ----------

    def _lockout_vote(self, collection, entity_id: ObjectId, voter_id: str, vote_type: VoteType, not_found: type) -> dict:
        guard, update = lockout_update(voter_id, vote_type)
        doc = collection.find_one_and_update(
            {"_id": entity_id, **guard},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if doc:
            return doc
        if collection.find_one({"_id": entity_id}, {"_id": 1}) is None:
            raise not_found()
        raise AlreadyVoted()
