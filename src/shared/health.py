from time import perf_counter

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.shared.database import get_session as get_db_session
from src.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/_health/db", status_code=status.HTTP_200_OK)
async def health_db():
    Session = get_db_session()
    t0 = perf_counter()
    try:
        async with Session() as s:
            await s.execute(text("SELECT 1"))
        dt_ms = int((perf_counter() - t0) * 1000)
        return {"ok": True, "checks": {"db_select_1_ms": dt_ms}}
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database health check failed", error=str(e))
        # 503 with the error string so the real cause is visible
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "ok": False,
                "checks": {"db": "SELECT 1 failed"},
                "error": type(e).__name__,
                "detail": str(e),
            },
        )
