"""
Job that sweeps every identity and repairs follower/following drift.

    python -m community.jobs.audit_relationships --dry-run
    python -m community.jobs.audit_relationships --continuous --interval 3600
"""
import asyncio
import argparse
import logging

from community.core.config import settings
from community.db.session import SessionLocal
from community.relationship.auditor import SweepSummary, audit_all

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
log = logging.getLogger("community-auditor")


async def run_once(batch_size: int, repair: bool) -> SweepSummary:
    async with SessionLocal() as db:
        return await audit_all(db, batch_size=batch_size, repair=repair)


async def run_continuous(batch_size: int, interval: int, repair: bool):
    log.info(f"[AUDIT] Starting continuous mode: batch_size={batch_size}, interval={interval}s")

    while True:
        try:
            summary = await run_once(batch_size, repair)
            if summary.found:
                log.warning(f"[AUDIT] Drift on {len(summary.drifted)} identities, {summary.fixed} fixed")
        except Exception as e:
            log.error(f"[AUDIT] Error in audit loop: {e}", exc_info=True)

        await asyncio.sleep(interval)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Follow relationship auditor")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without repairing")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument("--batch-size", type=int, default=settings.AUDIT_BATCH_SIZE, help="Batch size")
    parser.add_argument("--interval", type=int, default=3600, help="Interval in seconds")

    args = parser.parse_args(argv)
    repair = not args.dry_run

    if args.continuous:
        asyncio.run(run_continuous(args.batch_size, args.interval, repair))
    else:
        summary = asyncio.run(run_once(args.batch_size, repair))
        print(
            f"audited={summary.audited} skipped={summary.skipped} "
            f"found={summary.found} fixed={summary.fixed}"
        )


if __name__ == "__main__":
    main()
