from desk_core.archival.scheduler import JOB_ID, ArchivalScheduler


def test_start_schedules_interval_job_and_shutdown_stops_it():
    sched = ArchivalScheduler()
    assert sched.next_run_time() is None

    sched.start(interval_hours=6)
    try:
        assert sched.running
        job = sched._scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.trigger.interval.total_seconds() == 6 * 3600
        assert sched.next_run_time() is not None

        # second start is a no-op
        sched.start()
        assert len(sched._scheduler.get_jobs()) == 1
    finally:
        sched.shutdown()

    assert not sched.running
    assert sched.next_run_time() is None


def test_job_runs_automation_and_swallows_failures(monkeypatch):
    from desk_core.archival.automation import AutomationController

    calls = []

    def fake_run(**kwargs):
        calls.append(kwargs)
        raise RuntimeError("db down")

    monkeypatch.setattr(AutomationController, "run", staticmethod(fake_run))
    monkeypatch.setattr("desk_core.archival.scheduler.close_old_connections", lambda: None)

    ArchivalScheduler._run_job()

    assert calls == [{}]
