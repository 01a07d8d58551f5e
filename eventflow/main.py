import logging
import uvicorn
from fastapi import FastAPI
from eventflow.api.exceptions import register_error_handler
from eventflow.api.v1.routes import accounts, events, saved_events, tickets, payment_methods, notifications, statistics
from eventflow.core.config import APP_HOST, APP_PORT
from eventflow.core.middleware.request_context import RequestContextMiddleware
from eventflow.core.redis import create_redis

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s"
)
logger = logging.getLogger("eventflow")


async def lifespan(app: FastAPI):
    r = await create_redis()
    app.state.redis = r
    if r is None:
        logger.warning("REDIS_URL not set, audit records are disabled")
    try:
        yield
    finally:
        if r is not None:
            await r.aclose()


app = FastAPI(title="EventFlow", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware, header_name="X-Request-ID")
register_error_handler(app)

app.include_router(accounts.router)
app.include_router(events.router)
app.include_router(saved_events.router)
app.include_router(tickets.router)
app.include_router(payment_methods.router)
app.include_router(notifications.router)
app.include_router(statistics.router)


def run() -> None:
    uvicorn.run(app, host=APP_HOST, port=APP_PORT)
