# salon_scheduler/main.py

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .dependencies import get_scheduler
from .routers import bookings, slots, workers
from .services.slots import Scheduler
from .services.slots.errors import Conflict, NotFound, StoreError, ValidationError

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Salon Scheduler API")

app.include_router(slots.router)
app.include_router(bookings.router)
app.include_router(workers.router)


# ===== Error taxonomy → HTTP =====

def _error_response(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


app.add_exception_handler(ValidationError, _error_response(400))
app.add_exception_handler(NotFound, _error_response(404))
app.add_exception_handler(Conflict, _error_response(409))
app.add_exception_handler(StoreError, _error_response(503))


@app.get("/health")
def health(scheduler: Scheduler = Depends(get_scheduler)):
    return {"cache": type(scheduler.cache).__name__}
