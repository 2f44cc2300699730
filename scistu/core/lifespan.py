from contextlib import asynccontextmanager
import json
import logging

from scistu.ai.registry import configured_providers
from scistu.services.blog_service import get_posts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    posts = get_posts()
    logger.info(
        json.dumps(
            {
                "event": "startup",
                "blog_posts": len(posts),
                "providers": configured_providers(),
            }
        )
    )
    yield
