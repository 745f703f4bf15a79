from fastapi import APIRouter
from sqlalchemy import text

from app.deps.db import SessionDep

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health(session: SessionDep):
    await session.execute(text("SELECT 1"))
    return {"status": "ok"}
