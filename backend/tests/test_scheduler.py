from sqlalchemy.orm import sessionmaker

from multistore.tasks import scheduler as sync_scheduler


def test_scheduler_registers_single_instance_sync_job():
    sync_scheduler.start_scheduler()
    try:
        job = sync_scheduler.scheduler.get_job(sync_scheduler.SYNC_JOB_ID)
        assert job.max_instances == 1

        status = sync_scheduler.get_scheduler_status()
        assert status["running"]
        assert [j["id"] for j in status["jobs"]] == [sync_scheduler.SYNC_JOB_ID]
    finally:
        sync_scheduler.stop_scheduler()

    assert not sync_scheduler.get_scheduler_status()["running"]


def test_manual_sync_records_results(engine, make_store, monkeypatch):
    make_store(is_active=False)
    monkeypatch.setattr(sync_scheduler, "SessionLocal", sessionmaker(bind=engine))

    results = sync_scheduler.trigger_manual_sync()

    assert results["manual"] is True
    assert results["results"]["summary"]["total_stores"] == 0
    assert sync_scheduler.get_scheduler_status()["last_sync"]["results"] is not None
