import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import config
from app.core.db.engine import check_database_connection
from app.core.error_handler import global_exception_handler
from app.core.scheduler import create_scheduler
from app.modules.carts.router import router as carts_router
from app.modules.transactions.router import router as transactions_router
from app.modules.logbook.router import router as logbook_router
from app.modules.notifications.router import router as notifications_router
from app.modules.lab_requests.router import router as lab_requests_router
from app.modules.dashboard.router import router as dashboard_router

# Configure logging to output to console
logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if config.scheduler_enabled:
        scheduler = create_scheduler()
        scheduler.start()
        logger.info("Overdue sweep scheduled daily at %02d:%02d (%s)",
                    config.overdue_sweep_hour, config.overdue_sweep_minute, scheduler.timezone)
    yield
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()


app = FastAPI(
    title="LabTrack API",
    description="Lab equipment lending: borrow requests, stock and audit logbook",
    version="1.0.0",
    lifespan=lifespan,
)

# Add global exception handler
app.add_exception_handler(Exception, global_exception_handler)

# Middlewares
origins = [
    "http://localhost",
    "http://localhost:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /api prefix
app.include_router(carts_router, prefix="/api")
app.include_router(transactions_router, prefix="/api")
app.include_router(logbook_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(lab_requests_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")


@app.get("/health")
async def health() -> dict[str, str]:
    database_ok = await check_database_connection()
    return {"status": "ok" if database_ok else "degraded"}
