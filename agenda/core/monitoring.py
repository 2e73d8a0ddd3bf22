"""Health checks and monitoring endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.config.database import get_db
from agenda.config.redis import get_redis
from agenda.config.settings import get_settings

health_router = APIRouter()


def check_database(db: Session) -> str:
    """Database reachable and the appointments table migrated"""
    try:
        db.execute(text("SELECT 1 FROM appointments LIMIT 1"))
        return "healthy"
    except SQLAlchemyError as e:
        return f"unhealthy: {e.__class__.__name__}"
    finally:
        db.rollback()


async def check_break_store() -> str:
    """Redis only backs break flags; nothing to check when they live in memory"""
    if get_settings().BREAK_BACKEND != "redis":
        return "not used"
    try:
        redis_client = await get_redis()
        await redis_client.ping()
        return "healthy"
    except Exception as e:
        return f"unhealthy: {str(e)}"


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "agenda-api"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": check_database(db),
        "break_store": await check_break_store(),
    }

    # Booking needs the database; reception degrades without the break store
    if checks["database"] != "healthy":
        checks["overall"] = "unhealthy"
    elif checks["break_store"].startswith("unhealthy"):
        checks["overall"] = "degraded"
    else:
        checks["overall"] = "healthy"

    return checks
