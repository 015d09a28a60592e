"""Run ARQ worker. Usage: python -m app.worker.run_worker"""

from arq import run_worker
from arq.cron import cron

from app.worker.tasks import get_redis_settings, repair_accounts, shutdown, startup


class WorkerSettings:
    functions = [repair_accounts]
    cron_jobs = [
        cron(repair_accounts, hour=3, minute=0, second=0, run_at_startup=False),  # nightly
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings()


def main() -> None:
    run_worker(WorkerSettings, worker_name="northbank_worker")


if __name__ == "__main__":
    main()
