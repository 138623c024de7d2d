"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assistant import __version__
from assistant.api.endpoints import router
from assistant.utils.logging import setup_logging

setup_logging()

# Create FastAPI application
app = FastAPI(
    title="Personal Assistant",
    description=(
        "A conversational assistant that manages email, calendar, tasks, documents and contacts "
        "through Google APIs, streaming its responses as Server-Sent Events."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Chat",
            "description": "Stream a chat turn: model text, tool calls and tool results.",
        },
        {
            "name": "Tasks",
            "description": "Direct task status updates from the task list UI.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("assistant.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
