"""Tests for the update_site service entry point."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from sitefleet.models import LogItem, Site
from sitefleet.services.site_updates import update_site
from sitefleet.transactions.errors import ResolutionError


async def _site_name(session_maker):
    async with session_maker() as session:
        result = await session.execute(select(Site.name).where(Site.site_num == "S-100"))
        return result.scalar_one()


class TestUpdateSiteService:
    """Tests for commit and rollback around one request."""

    async def test_commits_on_success(self, session_maker, fleet):
        with patch("sitefleet.services.site_updates.async_session_maker", session_maker):
            result = await update_site({"siteUpdates": {"siteNum": "S-100", "name": "Ridge"}})

        assert result == ""
        assert await _site_name(session_maker) == "Ridge"

    async def test_rolls_back_on_failure(self, session_maker, fleet):
        """Nothing is written when any part of the request fails."""
        payload = {
            "siteUpdates": {"siteNum": "S-100", "name": "Ridge"},
            "batteryUpdates": {
                "serialNumbers": [{"batteryId": "b1", "serialNumber": "X"}],
                "batteriesIdsSupplemental": ["missing"],
            },
        }
        with patch("sitefleet.services.site_updates.async_session_maker", session_maker):
            with pytest.raises(ResolutionError):
                await update_site(payload)

        assert await _site_name(session_maker) == "Hilltop"
        async with session_maker() as session:
            result = await session.execute(select(LogItem.id))
            assert result.scalars().all() == []

    async def test_invalid_payload(self, session_maker, fleet):
        with pytest.raises(ValidationError):
            await update_site({"siteUpdates": {}})

    async def test_injected_session_not_committed(self, session_maker, session, fleet):
        """With a caller-owned session, commit is left to the caller."""
        await update_site({"siteUpdates": {"siteNum": "S-100", "name": "Ridge"}}, session=session)
        await session.rollback()

        assert await _site_name(session_maker) == "Hilltop"
