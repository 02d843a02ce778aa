import json
import queue

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import StreamingResponse

from planner.core.config import get_settings
from planner.services.authz import OwnerContext, require_owner
from planner.services.live import get_hub
from planner.services.store import UnknownIndexError, coerce_index_value

router = APIRouter(prefix="/live", tags=["live"])


@router.get("/{table}/{index}/{value}")
def live_query(
    table: str,
    index: str,
    value: str,
    order: str = Query(default="asc", pattern="^(asc|desc)$"),
    ctx: OwnerContext = Depends(require_owner),
):
    try:
        coerce_index_value(table, index, value)
    except UnknownIndexError:
        raise HTTPException(status_code=404, detail="Unknown query") from None
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid index value") from None

    settings = get_settings()
    hub = get_hub()
    sub = hub.subscribe(table, index, value, order=order)

    def event_generator():
        try:
            for _ in range(settings.live_max_polls):
                try:
                    rows = sub.deliveries.get(timeout=settings.live_poll_seconds)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                payload = {"table": table, "index": index, "value": value, "rows": jsonable_encoder(rows)}
                yield f"data: {json.dumps(payload)}\n\n"
        finally:
            hub.unsubscribe(sub)

    return StreamingResponse(event_generator(), media_type="text/event-stream")
