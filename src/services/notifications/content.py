"""Renders the due-card push notification from a user's due review states."""

from collections import Counter
from typing import Sequence

from ...domain.notifications import NotificationContent
from ...domain.review_state import ReviewState

UNFILED = "unfiled"


def build_card_due_content(due_states: Sequence[ReviewState]) -> NotificationContent:
    by_folder = Counter(state.folder_id or UNFILED for state in due_states)
    count = len(due_states)
    folder_count = len(by_folder)

    title = f"📚 {count} {'Card' if count == 1 else 'Cards'} Ready for Review"
    if folder_count == 1:
        body = "You have cards waiting in 1 folder"
    else:
        body = f"You have cards waiting across {folder_count} folders"

    return NotificationContent(
        title=title,
        body=body,
        data={
            "type": "card-due",
            "card_count": count,
            "folder_count": folder_count,
            "folders": [
                {"folder_id": folder_id, "card_count": n}
                for folder_id, n in sorted(by_folder.items())
            ],
        },
    )
