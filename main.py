"""
Leadership Coach API - FastAPI application for an AI leadership coach.
Streams personalised coaching answers over server-sent events and stores conversations.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import BearerAuthMiddleware
from config import Config
from routes import chat, chat_stream, conversations, profile
from utils.http_client import HTTPClientManager
from utils.logger import app_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    yield
    await HTTPClientManager.close_all()


app = FastAPI(title=Config.APP_TITLE, lifespan=lifespan)

app.add_middleware(BearerAuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def validation_message(path: str, errors: list) -> str:
    """Generic, user-facing message for a rejected request body."""
    for error in errors:
        if "conversationHistory" in error.get("loc", ()):
            return "Invalid conversation history format"

    if path.startswith("/api/chat"):
        return "Message and topic are required"
    if path.startswith("/api/conversations"):
        return "Invalid conversation data"
    if path.startswith("/api/lgp360"):
        return "Invalid assessment data"
    return "Invalid request data"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject invalid bodies with 400 before any upstream call or stream starts."""
    errors = exc.errors()
    app_logger.error(f"Validation error for {request.url}")
    app_logger.debug(f"Errors: {errors}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": validation_message(request.url.path, errors)},
    )


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"message": "Leadership Coach API is running"}

app.include_router(chat.router, tags=["chat"])
app.include_router(chat_stream.router, tags=["chat"])
app.include_router(conversations.router, tags=["conversations"])
app.include_router(profile.router, tags=["profile"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
