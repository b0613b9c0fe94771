from post_scheduler.domain.entities import PostStatus

# Statuses an owner may request; PUBLISHED is reserved for the publisher.
OWNER_SETTABLE_STATUSES: tuple[PostStatus, ...] = ("DRAFT", "SCHEDULED")


def can_transition(current: PostStatus, new: PostStatus) -> bool:
    """
    Determine if a post status transition is allowed.

    DRAFT <-> SCHEDULED, SCHEDULED -> PUBLISHED. PUBLISHED is terminal.
    """
    if current == "PUBLISHED":
        return False

    if current == new:
        return True

    if current == "DRAFT":
        return new == "SCHEDULED"

    if current == "SCHEDULED":
        return new in ("DRAFT", "PUBLISHED")

    return False


def is_mutable(status: PostStatus) -> bool:
    """Owners may edit or delete a post until it is published."""
    return status != "PUBLISHED"
