import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import get_settings
from app.models.audit_log import AuditLog
from app.models.failed_job import FailedJob
from app.models.user import User

DOCUMENT_MODELS = [
    User,
    AuditLog,
    FailedJob,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def get_database() -> AsyncIOMotorDatabase:
    settings = get_settings()
    kwargs = {}
    if _use_tls(settings.mongodb_uri):
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsDisableOCSPEndpointCheck"] = True
    client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
    return client[settings.mongodb_db_name]


async def init_db(database=None) -> None:
    """Bind document models to `database`, or to the configured MongoDB when omitted."""
    if database is None:
        database = get_database()
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
