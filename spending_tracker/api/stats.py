from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..schemas.stat import Stat
from ..services.stats import query_stats, start_of_day

router = APIRouter()

SessionDep = Annotated[AsyncSession, Depends(get_db)]


@router.get("/{account_id}", response_model=Stat)
async def get_stat_endpoint(
    account_id: int,
    session: SessionDep,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
) -> Stat:
    if date_from and date_to and date_from >= date_to:
        raise HTTPException(status_code=400, detail="date_from must be before date_to")
    groups = await query_stats(
        session,
        account_id,
        start_of_day(date_from) if date_from else None,
        start_of_day(date_to) if date_to else None,
    )
    return Stat(groups=groups)
