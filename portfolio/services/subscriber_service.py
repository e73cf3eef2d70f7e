import logging
from collections import namedtuple

from portfolio.utils.helpers import (
    generate_id, generate_token, length_error, normalize_email, now_iso, sanitize,
)

logger = logging.getLogger(__name__)

CREATED = "created"
REACTIVATED = "reactivated"
ALREADY_ACTIVE = "already_active"
INVALID = "invalid"
DEACTIVATED = "deactivated"
NOT_FOUND = "not_found"
OK = "ok"
INVALID_REQUEST = "invalid_request"

SubscribeResult = namedtuple("SubscribeResult", "outcome subscriber errors")
DeactivateResult = namedtuple("DeactivateResult", "outcome subscriber")
UnsubscribeResult = namedtuple("UnsubscribeResult", "outcome name email")


def validate_subscription(name, email):
    """Return (clean_name, normalized_email, errors)."""
    errors = []
    clean_name = sanitize(name)
    if not clean_name:
        errors.append({"field": "name", "msg": "Name is required"})
    else:
        err = length_error("name", clean_name, 2, 100, "Name")
        if err:
            errors.append(err)

    normalized = normalize_email(email)
    if not normalized:
        errors.append({"field": "email", "msg": "Valid email is required"})
    return clean_name, normalized, errors


class SubscriberRegistry:
    """Owns subscriber records and their active/inactive state."""

    def __init__(self, store):
        self.store = store

    def subscribe(self, name, email):
        """Create or reactivate a subscription.

        Inserting first and then reactivating keeps each step a single
        conditional write, so concurrent calls for one email can never
        leave two rows or report two creations.
        """
        clean_name, email, errors = validate_subscription(name, email)
        if errors:
            return SubscribeResult(INVALID, None, errors)

        record = {
            "id": generate_id(),
            "name": clean_name,
            "email": email,
            "unsubscribe_token": generate_token(),
            "is_active": True,
            "subscribed_at": now_iso(),
            "unsubscribed_at": None,
        }
        if self.store.insert(record):
            logger.info("New subscriber %s", email)
            return SubscribeResult(CREATED, record, [])

        # The existing token is kept on reactivation
        row = self.store.reactivate(email)
        if row:
            logger.info("Reactivated subscriber %s", email)
            return SubscribeResult(REACTIVATED, row, [])

        return SubscribeResult(ALREADY_ACTIVE, self.store.find_by_email(email), [])

    def deactivate(self, token):
        row = self.store.deactivate_by_token(token)
        if not row:
            return DeactivateResult(NOT_FOUND, None)
        logger.info("Unsubscribed %s", row["email"])
        return DeactivateResult(DEACTIVATED, row)

    def list_active(self):
        return self.store.list_active()

    def counts(self):
        rows = self.store.all()
        active = sum(1 for r in rows if r["is_active"])
        return {"active": active, "inactive": len(rows) - active}


class UnsubscribeResolver:
    """Input validation and response shaping around SubscriberRegistry.deactivate."""

    def __init__(self, registry):
        self.registry = registry

    def resolve(self, token):
        if not isinstance(token, str) or not token.strip():
            return UnsubscribeResult(INVALID_REQUEST, None, None)

        result = self.registry.deactivate(token.strip())
        if result.outcome != DEACTIVATED:
            return UnsubscribeResult(NOT_FOUND, None, None)
        return UnsubscribeResult(OK, result.subscriber["name"], result.subscriber["email"])
