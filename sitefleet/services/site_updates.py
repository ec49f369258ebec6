"""Entry point for applying update-site requests."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from sitefleet.database import async_session_maker
from sitefleet.schemas.updates import CompanyConfigSchema, UpdateSiteRequest
from sitefleet.transactions.update_site import UpdateSiteTransaction

logger = logging.getLogger(__name__)


async def update_site(
    payload: UpdateSiteRequest | dict[str, Any],
    session: AsyncSession | None = None,
    company_config: CompanyConfigSchema | None = None,
) -> str:
    """Validate and apply one update-site request.

    With an injected ``session`` the caller owns commit and rollback. Without
    one, a session is opened here and committed only if every step succeeds.

    Raises:
        pydantic.ValidationError: the payload is malformed.
        ResolutionError: a required entity does not exist.
    """
    request = (
        payload
        if isinstance(payload, UpdateSiteRequest)
        else UpdateSiteRequest.model_validate(payload)
    )
    if session is not None:
        return await _run(session, request, company_config)

    async with async_session_maker() as db:
        try:
            result = await _run(db, request, company_config)
            await db.commit()
            return result
        except Exception:
            await db.rollback()
            raise


async def _run(
    session: AsyncSession,
    request: UpdateSiteRequest,
    company_config: CompanyConfigSchema | None,
) -> str:
    site_num = request.site_updates.site_num
    logger.info(f"Updating site {site_num}")
    transaction = UpdateSiteTransaction(session, company_config=company_config)
    try:
        return await transaction.run(request)
    except Exception:
        logger.exception(f"Update of site {site_num} failed")
        raise
