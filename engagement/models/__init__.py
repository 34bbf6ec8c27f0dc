from .user import User
from .post import BlogPost, CommunityPost
from .post_view import BlogPostView
from .post_like import BlogPostLike, CommunityPostLike
from .post_stats import BlogPostStats
from .engagement import UserEngagement

__all__ = [
    "User",
    "BlogPost",
    "CommunityPost",
    "BlogPostView",
    "BlogPostLike",
    "CommunityPostLike",
    "BlogPostStats",
    "UserEngagement",
]
