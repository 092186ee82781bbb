import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError, transaction

from .models import Post

logger = logging.getLogger(__name__)


def record_view(post: Post) -> bool:
    """
    Count one view of ``post``.

    Returns False when the counter could not be persisted; the failure is
    logged and the caller carries on rendering the post.
    """
    try:
        with transaction.atomic():
            updated = post.increment_views()
    except (DatabaseError, ObjectDoesNotExist):
        logger.exception("Failed to record view for post %s (%s)", post.pk, post.slug)
        return False
    if not updated:
        logger.warning("Post %s (%s) vanished before its view was recorded", post.pk, post.slug)
        return False
    return True
