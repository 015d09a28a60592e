"""ARQ job definitions."""

import uuid
from typing import Any

from arq import create_pool
from arq.connections import RedisSettings

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.init import init_db
from app.models.failed_job import FailedJob
from app.services.accounts import repair_all_users

log = get_logger(__name__)


async def _run_with_dlq(
    job_name: str,
    job_id: str | None,
    args: list[Any],
    attempt: int,
    coro,
) -> Any:
    """Run coroutine; on exception persist to FailedJob then re-raise."""
    try:
        return await coro
    except Exception as e:
        fid = job_id or str(uuid.uuid4())
        await FailedJob(
            job_name=job_name,
            job_id=fid,
            args=args,
            exception_type=type(e).__name__,
            reason=str(e)[:2000],
            attempt=attempt,
        ).insert()
        log.exception("job_failed", job=job_name, job_id=fid, reason=str(e))
        raise


async def repair_accounts(ctx: dict[str, Any]) -> dict[str, Any]:
    """Normalize every stored user's accounts; safe to run repeatedly."""
    job_id = ctx.get("job_id") if isinstance(ctx.get("job_id"), str) else None

    async def _run() -> dict[str, Any]:
        log.info("job_start", job="repair_accounts")
        summary = await repair_all_users(actor="worker")
        log.info("job_done", job="repair_accounts", scanned=summary["scanned"], repaired=summary["repaired"])
        return summary

    return await _run_with_dlq("repair_accounts", job_id, [], ctx.get("job_try", 1), _run())


async def startup(ctx: dict) -> None:
    await init_db()


async def shutdown(ctx: dict) -> None:
    pass


def get_redis_settings() -> RedisSettings:
    from urllib.parse import urlparse
    s = get_settings()
    u = urlparse(s.redis_url)
    return RedisSettings(
        host=u.hostname or "localhost",
        port=u.port or 6379,
        password=u.password,
        database=int(u.path.lstrip("/")) if u.path.lstrip("/") else 0,
    )


async def enqueue_repair_accounts() -> None:
    """Enqueue repair_accounts job (call from API or ops scripts)."""
    redis = await create_pool(get_redis_settings())
    await redis.enqueue_job("repair_accounts")
    await redis.close()
