"""
Holdings refresh tasks.

After an override changes, cached holdings of the affected wallet are
flagged ``needs_refresh`` so the next portfolio read recomputes them.
Failures here are logged and dropped: a stale flag only delays a refresh.
"""
from celery import shared_task
from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
import logging

from app.celery_app import celery_app  # noqa: F401
from app.database import SyncSessionLocal
from app.models import TokenHolding

logger = logging.getLogger(__name__)


def mark_holdings_stale(
    db: Session,
    user_id: str,
    wallet_address: Optional[str],
    contract_address: Optional[str] = None,
    chain: Optional[str] = None,
    action: str = "upsert"
) -> int:
    """
    Flag a wallet's cached holdings for refresh.

    Global overrides (no wallet) are skipped. When both contract and chain
    are given only that token's rows are flagged.

    Returns:
        Number of holdings flagged
    """
    if not wallet_address:
        return 0

    now = datetime.utcnow()
    query = (
        update(TokenHolding)
        .where(
            TokenHolding.user_id == user_id,
            TokenHolding.wallet_address == wallet_address
        )
        .values(
            needs_refresh=True,
            updated_at=now,
            extra_metadata={
                "override_action": action,
                "override_updated_at": now.isoformat(),
                "needs_refresh": True,
            }
        )
    )
    if contract_address and chain:
        query = query.where(
            TokenHolding.contract_address == contract_address,
            TokenHolding.chain == chain
        )

    result = db.execute(query)
    db.commit()
    return result.rowcount


@shared_task(name="app.tasks.holdings_refresh.mark_holdings_for_refresh")
def mark_holdings_for_refresh(
    user_id: str,
    wallet_address: Optional[str],
    contract_address: Optional[str] = None,
    chain: Optional[str] = None,
    action: str = "upsert"
):
    """
    Background wrapper around mark_holdings_stale.

    Returns:
        dict: ``{"status": "success"|"skipped"|"error", "flagged": int}``
    """
    if not wallet_address:
        logger.debug("Skipping holdings refresh for global override")
        return {"status": "skipped", "flagged": 0}

    db = SyncSessionLocal()
    try:
        flagged = mark_holdings_stale(db, user_id, wallet_address, contract_address, chain, action)
        logger.info(f"Flagged {flagged} holdings for refresh in wallet {wallet_address} after {action}")
        return {"status": "success", "flagged": flagged}
    except Exception as e:
        db.rollback()
        logger.warning(f"Failed to flag holdings for wallet {wallet_address}: {e}")
        return {"status": "error", "flagged": 0}
    finally:
        db.close()
