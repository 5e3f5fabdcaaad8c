"""Directory group membership operations."""
from __future__ import annotations
from typing import List, Optional

from ..exceptions import FatalHttpError, GroupNotFoundError
from .client import DirectoryClient


class GroupService:
    """Service for managing group membership."""

    def __init__(self, client: DirectoryClient):
        """Initialize group service.

        Args:
            client: DirectoryClient used for all membership calls
        """
        self.client = client

    def list_group_members(self, group_id: str, max_pages: Optional[int] = None) -> List[dict]:
        """Retrieve all members of a group.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        try:
            return self.client.get(
                self.client.endpoint("groupMembers", group_id=group_id),
                paginate=True,
                max_pages=max_pages,
            )
        except FatalHttpError as exc:
            if exc.status_code == 404:
                raise GroupNotFoundError(f"Group '{group_id}' not found") from exc
            raise

    def add_user_to_group(self, group_id: str, user_id: str) -> None:
        """Add a user to a group (idempotent on the server side)."""
        self.client.put(self.client.endpoint("groupMember", group_id=group_id, user_id=user_id))

    def remove_user_from_group(self, group_id: str, user_id: str) -> bool:
        """Remove a user from a group.

        Returns:
            True if removed, False if the membership did not exist
        """
        try:
            self.client.delete(self.client.endpoint("groupMember", group_id=group_id, user_id=user_id))
        except FatalHttpError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True
