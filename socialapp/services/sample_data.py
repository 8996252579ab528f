import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from socialapp.models.user import User
from socialapp.services import content, identity

logger = logging.getLogger(__name__)


def seed_sample_data(db: Session) -> bool:
    """Create a demo user with a welcome post on an empty database."""
    if db.scalar(select(func.count()).select_from(User)):
        return False

    user = identity.create_user(db, username="demo_user", email="demo@example.com")
    identity.update_profile(
        db,
        user.id,
        {
            "bio": "This is a demo user for testing",
            "avatar_url": "https://ui-avatars.com/api/?name=Demo+User&background=1DA1F2&color=fff",
        },
    )
    content.create_post(db, user.id, "Welcome to SocialApp! This is your first post. 🎉")
    logger.info("sample data created")
    return True
