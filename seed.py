"""
Demo data for an empty database. Enabled with SEED_DEMO_DATA=true.
"""

from comment_tree import append_comment, append_reply, vote_comment
from logging_config import get_logger
from schemas import Opportunity, Post, User
from store import Store
from votes import VoteType, cast_lockout_vote

logger = get_logger(__name__)

USERS = [
    {"name": "Sagar", "github": "sagargit", "leetcode": "sagarleet", "bio": "A full-stack enthusiast."},
    {"name": "Priya", "github": "priyagithub", "leetcode": "priyaleet", "bio": "Interested in AI and ML."},
    {"name": "Rahul", "github": "rahuldev", "leetcode": "rahulcodes", "bio": "Learning cybersecurity."},
]

POSTS = [
    {"content": "Just started a new project on a blockchain-based voting system!", "tags": ["blockchain", "voting"]},
    {"content": "Looking for teammates for a hackathon on frontend technologies.", "tags": ["hackathon", "frontend"]},
    {"content": "What are the best resources to learn about cloud computing?", "tags": ["cloud"]},
]

OPPORTUNITIES = [
    {"title": "Blockchain Workshop", "organizer": "MVGR College of Engineering", "type": "Workshop",
     "registered": 120, "days_left": 4, "skills": ["Blockchain"]},
    {"title": "Smart India Hackathon", "organizer": "Government of India", "type": "Hackathon",
     "registered": 5400, "days_left": 21, "skills": ["Web Development", "Data Science"]},
]


def seed_demo_data(store: Store) -> bool:
    """Insert demo users, posts and listings. Does nothing if any user exists."""
    if store.users.count_documents({}) > 0:
        return False

    user_ids = [str(store.create_user(User(**u))["_id"]) for u in USERS]

    for i, data in enumerate(POSTS):
        author = user_ids[i % len(user_ids)]
        others = [u for u in user_ids if u != author]
        post = Post(posted_by=author, **data)
        for voter in others:
            cast_lockout_vote(post.votes, voter, VoteType.UPVOTE)
        append_comment(post, "Count me in!", others[0])
        comment_id = post.comments[0].id
        append_reply(post, comment_id, "Great, let's talk after class.", author)
        vote_comment(post, comment_id, others[1], VoteType.UPVOTE)
        store.create_post(post)

    for data in OPPORTUNITIES:
        store.upsert_opportunity(Opportunity(**data))

    logger.info("demo_data_seeded", users=len(USERS), posts=len(POSTS), opportunities=len(OPPORTUNITIES))
    return True
