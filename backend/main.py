from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from dotenv import load_dotenv
import json
import socketio

load_dotenv()

from clubchat.core.config import settings
from clubchat.core.exceptions import ChatError
from clubchat.core.realtime import sio
from clubchat.routes import chat
from clubchat.routes.realtime import ChatGateway
from clubchat.utils.logger import get_logger, setup_logging

setup_logging(settings.LOG_LEVEL)
logger = get_logger("main")


# Custom JSON encoder that preserves Unicode characters (emojis)
class UnicodeJSONResponse(JSONResponse):
    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


fastapi_app = FastAPI(
    title="ClubChat API",
    description="Direct and group chat for golfers and golf clubs",
    version="1.0.0",
    openapi_tags=[
        {"name": "Chat", "description": "Chat threads, messages and reactions"},
    ],
    default_response_class=UnicodeJSONResponse
)


# Add request logging middleware
@fastapi_app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming API requests"""
    client = request.client.host if request.client else "Unknown"
    logger.info("[%s] %s from %s", request.method, request.url.path, client)
    if request.query_params:
        logger.debug("Query Params: %s", request.query_params)

    response = await call_next(request)

    logger.info("[%s] %s - Status: %s", request.method, request.url.path, response.status_code)
    return response


# Configure CORS - MUST be added before routes
fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)


def cors_headers(request: Request) -> dict:
    origin = request.headers.get("origin")
    headers = {}
    if origin in settings.CORS_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


@fastapi_app.exception_handler(ChatError)
async def chat_exception_handler(request: Request, exc: ChatError):
    """Translate chat errors into the API envelope, keeping CORS headers"""
    return UnicodeJSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=cors_headers(request)
    )


@fastapi_app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with CORS headers"""
    return UnicodeJSONResponse(
        status_code=422,
        content={"success": False, "message": "Validation failed", "detail": jsonable_encoder(exc.errors())},
        headers=cors_headers(request)
    )


@fastapi_app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions and ensure CORS headers are included"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return UnicodeJSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
        headers=cors_headers(request)
    )


# Include routers
fastapi_app.include_router(chat.router, prefix="/api/chat", tags=["Chat"])


@fastapi_app.get("/")
async def root():
    return {"message": "Welcome to the ClubChat API"}


@fastapi_app.get("/api/health")
async def health_check():
    return {"status": "healthy"}


# Socket.IO shares the ASGI app; everything outside its path goes to FastAPI
gateway = ChatGateway(sio)
gateway.register()

app = socketio.ASGIApp(sio, other_asgi_app=fastapi_app, socketio_path=settings.SOCKETIO_PATH)

# Run uvicorn server when file is executed directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
