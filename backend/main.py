import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes_auth import router as auth_router
from app.api.routes_generate import router as generate_router
from app.api.routes_itinerary import router as itinerary_router
from app.api.routes_chat import router as chat_router

from app.core.config_loader import settings
from app.core.exceptions import AppException
from app.core.logger import logger


app = FastAPI(
    title="Travel Itinerary Relay",
    description="Streams AI-generated travel itineraries and itinerary chat over server-sent events",
    version="1.0.0"
)

# -------------------------------------------------------------
# CORS
# -------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # update to frontend domain in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------------------
# ERROR BODIES: {"error": "..."}
# -------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    if exc.code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code} {exc.slug}: {exc.msg}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code} {exc.slug}")
    return JSONResponse(status_code=exc.code, content={"error": exc.msg})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"{request.method} {request.url.path} -> 400 malformed body")
    return JSONResponse(status_code=400, content={"error": "Malformed request body"})


# -------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------
app.include_router(auth_router)
app.include_router(generate_router)
app.include_router(itinerary_router)
app.include_router(chat_router)


# -------------------------------------------------------------
# ROOT ENDPOINT
# -------------------------------------------------------------
@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Travel itinerary relay is running",
        "env": settings.environment
    }


# -------------------------------------------------------------
# RUN LOCAL
# -------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
