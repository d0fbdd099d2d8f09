"""
Business Context Management
Resolves the store (tenant) a request operates on.
"""

import logging

from .models import Business

logger = logging.getLogger(__name__)


def get_business_for_user(user):
    """
    Return the Business owned by ``user`` or None.

    Anonymous users and owners who have not created a store yet both
    resolve to None; callers decide how to reject them.
    """
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    business = Business.objects.filter(owner_id=user.pk).first()
    if business is None:
        logger.info(f"User {user.pk} has not created a store yet")
    return business

