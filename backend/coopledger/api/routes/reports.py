from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from datetime import date
from io import BytesIO

from coopledger.api.deps import store
from coopledger.services.record_store import SqlRecordStore
from coopledger.services.reports import build_society_report
from coopledger.utils.timezone import now_local

router = APIRouter(prefix="/societies/{society_id}/report", tags=["reports"])


@router.get("")
def report(
    society_id: int,
    start: date | None = Query(None),
    end: date | None = Query(None),
    st: SqlRecordStore = Depends(store),
):
    now = now_local()
    buf = BytesIO()
    build_society_report(st, society_id, now, buf, start, end)
    buf.seek(0)

    filename = f"society_{society_id}_{start or 'all'}_to_{end or now.date()}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
