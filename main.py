import argparse
import json
import logging
import uvicorn
from fastapi import FastAPI
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config, CONFIG_DIR
from routes import search, devotionals, widget, saved, logins  # Import routers
from utils.scheduler import job_scheduler, run_devotional_job, run_prune_job

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config, then the daily jobs
    load_config()  # Ensures config exists
    init_db()
    job_scheduler.start()
    yield
    job_scheduler.shutdown()


app = FastAPI(
    title="DailyWord",
    description="Daily devotional and Bible search backend",
    lifespan=lifespan,
)

# Include routers
app.include_router(search.router, prefix="/search", tags=["search"])
app.include_router(devotionals.router, prefix="/devotionals", tags=["devotionals"])
app.include_router(widget.router, prefix="/widget", tags=["widget"])
app.include_router(saved.router, prefix="/saved", tags=["saved"])
app.include_router(logins.router, prefix="/logins", tags=["logins"])


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="DailyWord backend")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--fetch-devotional", action="store_true", help="Run the devotional pipeline once")
    parser.add_argument("--prune-cache", action="store_true", help="Prune stale search cache entries")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print(f"DB initialized and config copied to {CONFIG_DIR}/")
        sys.exit(0)
    if args.fetch_devotional:
        load_config()
        init_db()
        result = run_devotional_job()
        print(json.dumps(result, ensure_ascii=False, indent=2, default=str))
        sys.exit(0 if result.get("success") else 1)
    if args.prune_cache:
        load_config()
        init_db()
        print(f"Deleted {run_prune_job()} search cache entries")
        sys.exit(0)
    # Run server
    port = 8000
    reload = args.dev
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=reload, log_level="info")
