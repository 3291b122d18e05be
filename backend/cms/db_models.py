# Import all models once to ensure SQLAlchemy mapper registry is fully populated.
# This prevents late-binding issues for relationship("ClassName").

from .users.models import User  # noqa: F401
from .authors.models import Author  # noqa: F401
from .posts.models import Post, PostTag  # noqa: F401
