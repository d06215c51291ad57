import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skinvault.api.routers import health, users
from skinvault.core.config import get_settings
from skinvault.core.exceptions import SkinVaultError
from skinvault.core.logging_config import setup_logging

# --- Application Setup ---
setup_logging()  # Initialize logging first
settings = get_settings()
app = FastAPI(
    title="SkinVault API",
    description="Users and favorite Minecraft skins for the SkinVault client.",
    version="1.0.0",
)
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception Handlers ---
def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()]

@app.exception_handler(SkinVaultError)
async def skinvault_exception_handler(request: Request, exc: SkinVaultError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Missing or empty fields are a plain 400 for the client, not FastAPI's 422
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors())
    logger.warning("%s %s invalid body: %s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": f"Invalid or missing fields: {fields}",
            "code": "validation_error",
            "errors": jsonable_errors(exc),
        },
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Server error", "code": "server_error"},
    )

# --- Routers ---
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(health.router, prefix="/health", tags=["Health"])

# --- Root Endpoint ---
@app.get("/", tags=["Root"], summary="API Root")
async def read_root():
    """A welcome message to verify the API is running."""
    return {"message": "Welcome to the SkinVault API!"}

# --- Lifecycle Events ---
@app.on_event("startup")
async def startup_event():
    logger.info("--- Starting FastAPI application ---")
    logger.info(f"Log level set to: {settings.LOG_LEVEL}")
    logger.info(f"Using DynamoDB table: {settings.DYNAMODB_TABLE_NAME}")
    if settings.DYNAMODB_ENDPOINT_URL:
        logger.warning(f"Using local DynamoDB endpoint: {settings.DYNAMODB_ENDPOINT_URL}")
    logger.info("Application startup complete.")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("--- Shutting down FastAPI application ---")
