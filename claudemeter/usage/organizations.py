"""Organization selection."""

from __future__ import annotations

from collections.abc import Sequence

from claudemeter.errors import OrganizationNotFoundError
from claudemeter.models import Organization


def select_organization(organizations: Sequence[Organization]) -> str:
    """Return the UUID of the organization whose usage should be shown.

    Prefers the first organization with the ``chat`` capability (claude.ai
    usage) and falls back to the first one listed.
    """
    chosen = next((org for org in organizations if org.has_chat_capability), None)
    if chosen is None and organizations:
        chosen = organizations[0]
    if chosen is None or chosen.organization_uuid is None:
        raise OrganizationNotFoundError()
    return chosen.organization_uuid
