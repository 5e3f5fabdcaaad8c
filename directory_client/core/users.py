"""Directory user lifecycle operations."""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..exceptions import FatalHttpError, UserNotFoundError
from .client import DirectoryClient


class UserService:
    """Service for managing directory users."""

    def __init__(self, client: DirectoryClient):
        """Initialize user service.

        Args:
            client: Configured directory client
        """
        self.client = client

    def list_users(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        max_pages: Optional[int] = None,
    ) -> List[dict]:
        """List users, following every page.

        Args:
            search: Optional search expression (e.g. 'status eq "ACTIVE"')
            limit: Page size requested from the server
            max_pages: Optional page cap for this call

        Returns:
            User representations in server order
        """
        params = {"search": search, "limit": limit}
        return self.client.get(self.client.endpoint("users"), params=params, paginate=True, max_pages=max_pages)

    def get_user(self, user_id: str) -> dict:
        """Fetch one user by id or login.

        Raises:
            UserNotFoundError: If the server answers 404
        """
        try:
            return self.client.get(self.client.endpoint("user", user_id=user_id))
        except FatalHttpError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError(f"User '{user_id}' not found") from exc
            raise

    def find_user_by_login(self, login: str) -> Optional[dict]:
        """Return the user whose profile.login exactly matches, or None."""
        params = {"filter": f'profile.login eq "{login}"'}
        users = self.client.get(self.client.endpoint("users"), params=params, paginate=True)
        for user in users:
            if (user.get("profile") or {}).get("login") == login:
                return user
        return None

    def create_user(
        self,
        profile: Dict[str, Any],
        activate: bool = True,
        credentials: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Create a user.

        Args:
            profile: Profile attributes (login, email, firstName, lastName, ...)
            activate: Activate immediately instead of staging
            credentials: Optional credentials object

        Returns:
            Created user representation
        """
        for field_name in ("login", "email"):
            if not profile.get(field_name):
                raise ValueError(f"profile.{field_name} is required")
        payload: Dict[str, Any] = {"profile": profile}
        if credentials:
            payload["credentials"] = credentials
        params = {"activate": str(activate).lower()}
        return self.client.post(self.client.endpoint("users"), json=payload, params=params)

    def _lifecycle(self, user_id: str, action: str, params: Optional[dict] = None) -> Any:
        path = self.client.endpoint("userLifecycle", user_id=user_id, action=action)
        try:
            return self.client.post(path, params=params)
        except FatalHttpError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError(f"User '{user_id}' not found") from exc
            raise

    def activate_user(self, user_id: str, send_email: bool = False) -> Any:
        """Activate a staged or deprovisioned user."""
        return self._lifecycle(user_id, "activate", {"sendEmail": str(send_email).lower()})

    def deactivate_user(self, user_id: str) -> None:
        """Deactivate a user (leaver)."""
        self._lifecycle(user_id, "deactivate")
