# Main script to run the calendar api: logging, database setup and the routers

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
import config
import database
import db_setup
from routers import users, calendar, tags

# Initialize logging
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Check if the database is set up, if not, create it and the necessary tables and the admin user
    db_setup.setup_database()
    yield
    database.close_connection()

# Initialize FastAPI app
app = FastAPI(title="Calendar-API", version="1.0.0", lifespan=lifespan)

# Include routers
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
app.include_router(tags.router, prefix="/tags", tags=["tags"])

# Health check endpoint
@app.get("/health")
async def health():
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
