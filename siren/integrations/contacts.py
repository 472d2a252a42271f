"""Client for the auth/contacts backend."""

from typing import Any

import httpx

from siren.core.logging import get_logger
from siren.domain.errors import ContactsUnavailable
from siren.domain.models import Contact

logger = get_logger(__name__)


def parse_contact(data: dict[str, Any]) -> Contact:
    """Build a Contact from a backend record."""
    return Contact(
        id=str(data["id"]),
        name=data.get("name", ""),
        phone=data.get("phone", ""),
        priority=int(data.get("priority", 1)),
    )


class ContactsClient:
    """Fetches the current user's emergency contacts."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def fetch_contacts(self, token: str) -> list[Contact]:
        """
        Return the contacts of the user owning ``token``, in priority order.

        Raises ContactsUnavailable when the token is rejected, the backend
        errors, or the payload is malformed.
        """
        try:
            response = await self._client.get(
                f"{self.base_url}/contacts",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("Contacts backend unreachable", error=str(e))
            raise ContactsUnavailable(f"Contacts backend unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise ContactsUnavailable("Authentication rejected", status_code=response.status_code)
        if response.status_code >= 400:
            raise ContactsUnavailable(
                f"Contacts backend returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
            records = body["contacts"] if isinstance(body, dict) else body
            contacts = [parse_contact(record) for record in records]
        except (ValueError, KeyError, TypeError) as e:
            raise ContactsUnavailable(f"Malformed contacts payload: {e}") from e

        logger.info("Fetched contacts", count=len(contacts))
        return sorted(contacts, key=lambda contact: contact.priority)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
