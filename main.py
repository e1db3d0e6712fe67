from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

import chat
import database
import settings
from analysis import STATUS_FAILED, STATUS_SUCCESS, ContentAnalyzer, DisabledAnalyzer, build_analyzer
from comment_tree import append_comment, append_reply, vote_comment, vote_reply
from errors import HubError, NotFound, Unavailable, UserNotFound
from listing import build_query, csv_values
from logging_config import get_logger, setup_logging
from profiles import ProfileFetcher
from schemas import ObjectIdStr, Post, User
from seed import seed_demo_data
from store import Store, serialize, serialize_opportunity, serialize_post
from votes import VoteType

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.analyzer = build_analyzer()
    if database.db is None:
        logger.warning("database_not_configured")
    else:
        try:
            store = Store(database.db)
            store.ensure_indexes()
            if settings.SEED_DEMO_DATA:
                seed_demo_data(store)
        except PyMongoError as e:
            logger.error("database_startup_failed", error=str(e))
    yield
    database.close()


app = FastAPI(title="NEST API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)


# ---------- Dependencies ----------

def get_store() -> Store:
    if database.db is None:
        raise Unavailable("Database not available")
    return Store(database.db)


def get_analyzer(request: Request) -> ContentAnalyzer:
    return getattr(request.app.state, "analyzer", None) or DisabledAnalyzer()


def get_profile_fetcher() -> ProfileFetcher:
    return ProfileFetcher()


# ---------- Error handlers ----------

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_failed", path=request.url.path, status=exc.status_code, error=exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info("request_invalid", path=request.url.path, errors=len(errors))
    if any(e["loc"][-1] == "voteType" and e["type"] != "missing" for e in errors):
        return _error(400, 'Invalid vote type. Use "upvote" or "downvote".')
    message = "; ".join(
        f"{'.'.join(str(p) for p in e['loc'][1:]) or e['loc'][0]}: {e['msg']}" for e in errors
    )
    return _error(400, message)


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error("database_error", path=request.url.path, error=str(exc))
    return _error(503, f"Database error: {exc}")


# ---------- Schemas (API layer) ----------

class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class UserCreate(ApiModel):
    name: str = Field(..., min_length=1)
    github: Optional[str] = None
    leetcode: Optional[str] = None
    linkedin: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)


class UserUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    github: Optional[str] = None
    leetcode: Optional[str] = None
    linkedin: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None


class UserVote(ApiModel):
    vote_type: VoteType = Field(..., alias="voteType")
    voter_id: ObjectIdStr = Field(..., alias="voterId")


class PostCreate(ApiModel):
    content: str = Field(..., min_length=1)
    user_id: ObjectIdStr = Field(..., alias="userId")


class PostUpdate(ApiModel):
    content: str = Field(..., min_length=1)


class PostVote(ApiModel):
    vote_type: VoteType = Field(..., alias="voteType")
    user_id: ObjectIdStr = Field(..., alias="userId")


class CommentCreate(ApiModel):
    text: str = Field(..., min_length=1)
    commented_by: ObjectIdStr = Field(..., alias="commentedBy")


POST_SORTABLE = {
    "created_at": "created_at", "createdAt": "created_at",
    "updated_at": "updated_at", "updatedAt": "updated_at",
    "upvotes": "votes.upvotes", "downvotes": "votes.downvotes",
}

OPPORTUNITY_SORTABLE = {
    "title": "title", "organizer": "organizer", "type": "type", "registered": "registered",
    "days_left": "days_left", "daysLeft": "days_left",
    "created_at": "created_at", "createdAt": "created_at",
    "updated_at": "updated_at", "updatedAt": "updated_at",
}


# ---------- Basic ----------

@app.get("/")
def root():
    return {"name": "NEST API", "status": "ok"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "collections": []
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Connected"
            response["collections"] = database.db.list_collection_names()
    except PyMongoError as e:
        response["database"] = f"⚠️ {str(e)[:80]}"
    return response


@app.get("/api")
def api_info():
    return {
        "name": "NEST API",
        "version": app.version,
        "description": "A skill-based collaboration hub for students.",
        "endpoints": {
            "users": "/api/users",
            "posts": "/api/posts",
            "opportunities": "/api/opportunities",
            "chat": "/ws/chat",
        },
        "listing_parameters": ["page", "limit (alias: show)", "sortBy", "sortOrder (asc|desc)"],
    }


# ---------- Users ----------

@app.post("/api/users", status_code=201)
def create_user(data: UserCreate, store: Store = Depends(get_store)):
    doc = store.create_user(User(**data.model_dump()))
    return {"success": True, "data": serialize(doc)}


@app.get("/api/users")
def list_users(store: Store = Depends(get_store)):
    users = [serialize(u) for u in store.list_users()]
    return {"success": True, "count": len(users), "data": users}


@app.post("/api/users/profiles")
def refresh_profiles(store: Store = Depends(get_store), fetcher: ProfileFetcher = Depends(get_profile_fetcher)):
    users = store.list_users()
    if not users:
        raise NotFound("No users found to update.")
    updated = 0
    for user in users:
        if not (user.get("github") or user.get("leetcode")):
            continue
        fields = fetcher.fetch(user)
        if fields:
            store.update_user(str(user["_id"]), fields)
            updated += 1
    logger.info("profiles_refreshed", users=len(users), updated=updated)
    return {"success": True, "message": "User profiles updated successfully.", "updated": updated}


@app.get("/api/users/{user_id}")
def get_user(user_id: str, store: Store = Depends(get_store)):
    return {"success": True, "data": serialize(store.get_user(user_id))}


@app.put("/api/users/{user_id}")
def update_user(user_id: str, data: UserUpdate, store: Store = Depends(get_store)):
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    return {"success": True, "data": serialize(store.update_user(user_id, fields))}


@app.delete("/api/users/{user_id}")
def delete_user(user_id: str, store: Store = Depends(get_store)):
    store.delete_user(user_id)
    return {"success": True, "message": "User deleted successfully"}


@app.post("/api/users/{user_id}/vote")
def vote_user(user_id: str, payload: UserVote, store: Store = Depends(get_store)):
    doc = store.vote_user(user_id, payload.voter_id, payload.vote_type)
    return {"success": True, "data": serialize(doc)}


@app.post("/api/users/{user_id}/profile")
def refresh_profile(user_id: str, store: Store = Depends(get_store), fetcher: ProfileFetcher = Depends(get_profile_fetcher)):
    fields = fetcher.fetch(store.get_user(user_id))
    if not fields:
        raise NotFound("No data to update.")
    return {"success": True, "data": serialize(store.update_user(user_id, fields))}


# ---------- Posts ----------

@app.post("/api/posts", status_code=201)
def create_post(data: PostCreate, store: Store = Depends(get_store), analyzer: ContentAnalyzer = Depends(get_analyzer)):
    result = analyzer.analyze(data.content)
    post = Post(
        posted_by=data.user_id,
        content=data.content,
        tags=result.tags,
        summary=result.summary,
        ai_status=result.status,
    )
    doc = store.create_post(post)
    return {"success": True, "data": serialize_post(doc), "aiStatus": result.status}


@app.get("/api/posts")
def list_posts(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    show: Optional[int] = None,
    tags: Optional[str] = None,
    posted_by: Optional[str] = Query(None, alias="postedBy"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    store: Store = Depends(get_store),
):
    query = build_query(
        page=page, limit=limit, show=show,
        sort_by=sort_by, sort_order=sort_order,
        sortable=POST_SORTABLE, default_sort=("created_at", DESCENDING),
        equals={"posted_by": posted_by},
        any_of={"tags": csv_values(tags)},
    )
    return store.list_posts(query)


@app.get("/api/posts/{post_id}")
def get_post(post_id: str, store: Store = Depends(get_store)):
    return {"success": True, "data": serialize_post(store.get_post(post_id))}


@app.put("/api/posts/{post_id}")
def update_post(post_id: str, data: PostUpdate, store: Store = Depends(get_store), analyzer: ContentAnalyzer = Depends(get_analyzer)):
    store.get_post(post_id)
    fields = {"content": data.content}
    result = analyzer.analyze(data.content)
    if result.status == STATUS_SUCCESS:
        fields.update(tags=result.tags, summary=result.summary, ai_status="updated")
    elif result.status == STATUS_FAILED:
        fields["ai_status"] = "update_failed"
    return {"success": True, "data": serialize_post(store.update_post(post_id, fields))}


@app.delete("/api/posts/{post_id}")
def delete_post(post_id: str, store: Store = Depends(get_store)):
    store.delete_post(post_id)
    return {"success": True, "message": "Post deleted successfully"}


# ---------- Voting ----------

@app.post("/api/posts/{post_id}/vote")
def vote_post(post_id: str, payload: PostVote, store: Store = Depends(get_store)):
    doc = store.vote_post(post_id, payload.user_id, payload.vote_type)
    return {"success": True, "data": serialize_post(doc)}


@app.post("/api/posts/{post_id}/comment/{comment_id}/vote")
def vote_on_comment(post_id: str, comment_id: str, payload: PostVote, store: Store = Depends(get_store)):
    doc = store.revise_post(post_id, lambda post: vote_comment(post, comment_id, payload.user_id, payload.vote_type))
    logger.info("comment_voted", post_id=post_id, comment_id=comment_id, vote_type=payload.vote_type.value)
    return {"success": True, "data": serialize_post(doc)}


@app.post("/api/posts/{post_id}/comment/{comment_id}/reply/{reply_id}/vote")
def vote_on_reply(post_id: str, comment_id: str, reply_id: str, payload: PostVote, store: Store = Depends(get_store)):
    doc = store.revise_post(
        post_id, lambda post: vote_reply(post, comment_id, reply_id, payload.user_id, payload.vote_type)
    )
    logger.info("reply_voted", post_id=post_id, comment_id=comment_id, reply_id=reply_id)
    return {"success": True, "data": serialize_post(doc)}


# ---------- Comments ----------

def _require_author(store: Store, post_id: str, author_id: str) -> None:
    store.get_post(post_id)
    if not store.user_exists(author_id):
        raise UserNotFound()


@app.post("/api/posts/{post_id}/comment", status_code=201)
def add_comment(post_id: str, payload: CommentCreate, store: Store = Depends(get_store)):
    _require_author(store, post_id, payload.commented_by)
    doc = store.revise_post(post_id, lambda post: append_comment(post, payload.text, payload.commented_by))
    logger.info("comment_added", post_id=post_id, commented_by=payload.commented_by)
    return {"success": True, "data": serialize_post(doc)}


@app.post("/api/posts/{post_id}/comment/{comment_id}/reply", status_code=201)
def add_reply(post_id: str, comment_id: str, payload: CommentCreate, store: Store = Depends(get_store)):
    _require_author(store, post_id, payload.commented_by)
    doc = store.revise_post(
        post_id, lambda post: append_reply(post, comment_id, payload.text, payload.commented_by)
    )
    logger.info("reply_added", post_id=post_id, comment_id=comment_id, commented_by=payload.commented_by)
    return {"success": True, "data": serialize_post(doc)}


# ---------- Opportunities ----------

@app.get("/api/opportunities")
def list_opportunities(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    show: Optional[int] = None,
    type_: Optional[str] = Query(None, alias="type"),
    skills: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    store: Store = Depends(get_store),
):
    query = build_query(
        page=page, limit=limit, show=show,
        sort_by=sort_by, sort_order=sort_order,
        sortable=OPPORTUNITY_SORTABLE,
        equals={"type": type_},
        any_of={"skills": csv_values(skills)},
    )
    return store.list_opportunities(query)


@app.get("/api/opportunities/{opportunity_id}")
def get_opportunity(opportunity_id: str, store: Store = Depends(get_store)):
    return {"success": True, "data": serialize_opportunity(store.get_opportunity(opportunity_id))}
