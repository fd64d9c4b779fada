from app.models.social import Post, PostLike, SavedPost
from app.models.user import Account, Profile

__all__ = [
    "Account",
    "Post",
    "PostLike",
    "Profile",
    "SavedPost",
]
