"""One-shot schema bootstrap for deployments without migration access."""

import hmac

import structlog
from fastapi import APIRouter, Header
from fastapi.responses import ORJSONResponse

from api.config import Settings
from api.database import create_schema
from api.deps import SettingsDep
from api.exceptions import AuthenticationError
from api.schemas.responses import StatusResponse, error_body

router = APIRouter(prefix="/api", tags=["Setup"])
logger = structlog.get_logger()


def _check_token(settings: Settings, authorization: str | None) -> None:
    expected = settings.db_setup_token
    scheme, _, token = (authorization or "").partition(" ")
    if (
        not expected
        or scheme.lower() != "bearer"
        or not hmac.compare_digest(token.encode(), expected.encode())
    ):
        raise AuthenticationError()


@router.post("/db-setup", response_model=StatusResponse)
async def db_setup(
    settings: SettingsDep,
    authorization: str | None = Header(default=None),
) -> StatusResponse:
    """
    Create the audits table and its indexes if they do not exist.

    Requires ``Authorization: Bearer <DB_SETUP_TOKEN>``.
    """
    _check_token(settings, authorization)

    try:
        await create_schema()
    except Exception as e:
        logger.exception("db_setup_failed")
        return ORJSONResponse(  # type: ignore[return-value]
            status_code=500,
            content=error_body(
                "db_setup_failed",
                "Database setup failed",
                {"error": f"{type(e).__name__}: {e}"},
            ),
        )

    logger.info("db_setup_completed")
    return StatusResponse(status="ok", message="Database schema is ready")
