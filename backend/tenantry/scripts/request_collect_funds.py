# scripts/request_collect_funds.py
"""
One-off: ask Moov to enable ``collect-funds`` on the platform account so it
can pull ACH debits from tenant bank accounts.
"""
import asyncio
import logging
import sys

from tenantry.services.moov import MoovError, get_moov_client

logger = logging.getLogger("tenantry.scripts")


async def request_collect_funds(account_id=None):
    moov = get_moov_client()
    result = await moov.enable_capabilities(["collect-funds"], account_id)
    for cap in result.current:
        logger.info(f"{cap.get('capability')}: {cap.get('status')}")
    return result


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    try:
        asyncio.run(request_collect_funds(sys.argv[1] if len(sys.argv) > 1 else None))
    except MoovError as e:
        logger.error(f"Capability request failed at step {e.step}: {e.detail}")
        sys.exit(1)
