"""
Database Schemas for the NEST API

Each top-level Pydantic model maps to a MongoDB collection with the lowercase class name.
- User -> "user"
- Post -> "post"
- Opportunity -> "opportunity"

Comment and Reply are embedded sub-documents of Post. Their ids are local:
unique within the parent, not across the collection.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_local_id() -> str:
    return str(ObjectId())


def _check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid object id")
    return str(ObjectId(value))


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]


class LockoutLedger(BaseModel):
    """Vote ledger where the first vote of a voter is final (posts and users)."""
    upvotes: int = Field(0, ge=0)
    downvotes: int = Field(0, ge=0)
    voters: List[str] = Field(default_factory=list, description="Ids of users who have voted")


class SwitchableLedger(BaseModel):
    """Vote ledger where a voter may move between the two sets (comments and replies)."""
    upvoters: List[str] = Field(default_factory=list)
    downvoters: List[str] = Field(default_factory=list)

    @property
    def upvotes(self) -> int:
        return len(self.upvoters)

    @property
    def downvotes(self) -> int:
        return len(self.downvoters)


class Reply(BaseModel):
    id: str = Field(default_factory=new_local_id, description="Unique within the parent comment")
    text: str
    commented_by: str
    votes: SwitchableLedger = Field(default_factory=SwitchableLedger)
    created_at: datetime = Field(default_factory=utcnow)


class Comment(BaseModel):
    id: str = Field(default_factory=new_local_id, description="Unique within the parent post")
    text: str
    commented_by: str
    votes: SwitchableLedger = Field(default_factory=SwitchableLedger)
    replies: List[Reply] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class User(BaseModel):
    name: str = Field(..., min_length=1, description="Display name")
    github: Optional[str] = Field(None, description="GitHub login")
    leetcode: Optional[str] = Field(None, description="LeetCode username")
    linkedin: Optional[str] = Field(None, description="LinkedIn profile")
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    # Cached by the profile fetcher
    profile_url: Optional[str] = None
    profile_picture: Optional[str] = None
    readme: Optional[str] = None
    activity: List[int] = Field(default_factory=list, description="Daily activity counts, oldest first")
    posts: List[str] = Field(default_factory=list, description="Ids of posts authored by the user")
    votes: LockoutLedger = Field(default_factory=LockoutLedger)
    created_at: datetime = Field(default_factory=utcnow)


class Post(BaseModel):
    posted_by: str = Field(..., description="Author user id")
    content: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list, description="AI-derived tags")
    summary: str = Field("", description="AI-derived summary")
    ai_status: str = "disabled"
    votes: LockoutLedger = Field(default_factory=LockoutLedger)
    comments: List[Comment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    revision: int = Field(0, ge=0, description="Bumped on every embedded-tree write")


class Opportunity(BaseModel):
    """A scraped listing. The stored document also carries an `id` assigned once at first insert."""
    title: str = Field(..., min_length=1, description="Upsert key")
    organizer: Optional[str] = None
    type: Optional[str] = None
    registered: Optional[int] = None
    days_left: Optional[int] = None
    skills: List[str] = Field(default_factory=list)
    image: Optional[str] = None
