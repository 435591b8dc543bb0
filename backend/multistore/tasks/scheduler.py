"""
Scheduler for automatic catalog syncs.

Runs an incremental sync of every active store at a fixed interval. The job
never overlaps with itself, so a store is never synced by two runs at once.
"""
import logging
from datetime import datetime
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from multistore.config import get_settings
from multistore.database import SessionLocal
from multistore.services.catalog_repository import CatalogRepositories
from multistore.services.catalog_sync import CatalogSynchronizer
from multistore.services.duplicate_detection import DuplicateDetector

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "catalog_sync_all_stores"

# Global scheduler instance
scheduler = BackgroundScheduler()

# Store last run results
last_sync_results = {
    "timestamp": None,
    "results": None
}


def run_catalog_sync(modified_only: bool = True) -> dict:
    """Job function: sync all active stores in a fresh session."""
    global last_sync_results

    logger.info(f"Starting catalog sync (modified_only={modified_only})...")
    start_time = datetime.now()

    db = SessionLocal()
    try:
        repos = CatalogRepositories(db)
        synchronizer = CatalogSynchronizer(repos, DuplicateDetector(repos.products, repos.variants))
        outcome = synchronizer.sync_all_stores(modified_only=modified_only)

        last_sync_results = {
            "timestamp": start_time.isoformat(),
            "duration_seconds": (datetime.now() - start_time).total_seconds(),
            "results": outcome.model_dump(mode="json")
        }
        logger.info(
            f"Catalog sync completed: {outcome.summary.successful_stores}/{outcome.summary.total_stores} "
            f"stores, {outcome.summary.total_products} products"
        )
    except Exception as e:
        logger.error(f"Error in catalog sync: {e}")
        last_sync_results = {
            "timestamp": start_time.isoformat(),
            "duration_seconds": (datetime.now() - start_time).total_seconds(),
            "results": None,
            "error": str(e)
        }
    finally:
        db.close()

    return last_sync_results


def start_scheduler():
    """Start the background scheduler."""
    if scheduler.running:
        logger.info("Scheduler already running")
        return

    settings = get_settings()
    scheduler.add_job(
        run_catalog_sync,
        IntervalTrigger(minutes=settings.sync_interval_minutes),
        id=SYNC_JOB_ID,
        name="Incremental Catalog Sync",
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )

    scheduler.start()
    logger.info("Scheduler started with jobs:")
    for job in scheduler.get_jobs():
        logger.info(f"  - {job.name}: {job.trigger}")


def stop_scheduler():
    """Stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status."""
    jobs = []
    if scheduler.running:
        for job in scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "trigger": str(job.trigger),
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            })

    return {
        "running": scheduler.running,
        "jobs": jobs,
        "last_sync": last_sync_results
    }


def trigger_manual_sync(modified_only: bool = False):
    """Run a full (or incremental) sync of all stores right now."""
    logger.info(f"Manual catalog sync triggered (modified_only={modified_only})")
    results = run_catalog_sync(modified_only=modified_only)
    return {**results, "manual": True}
