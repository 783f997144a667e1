"""
FastAPI Backend for the Avatar Build Pipeline

API Structure:
- /api/builds - Trigger a build of an avatar document
- /api/builds/status - Coordinator state and progress
- /api/builds/artifacts/{filename} - Download a built bundle
- /api/health - Health check
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import HOST, PORT, CORS_ORIGINS, LOG_LEVEL, PROJECT_ROOT
from avatars import __version__
from routers import builds

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Avatar Build Pipeline API",
    description="Packages avatars authored in scene documents into bundles",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(builds.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Avatar Build Pipeline API",
        "version": __version__,
        "endpoints": {
            "builds": "/api/builds",
            "status": "/api/builds/status",
            "artifacts": "/api/builds/artifacts/{filename}"
        },
        "docs": "/docs"
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": __version__,
        "project_root": str(PROJECT_ROOT)
    }


if __name__ == "__main__":
    import uvicorn

    print(f"""
    Avatar Build Pipeline API

    API: http://{HOST}:{PORT}
    Docs: http://{HOST}:{PORT}/docs
    Project: {PROJECT_ROOT}

    Endpoints:
    - POST /api/builds - Start a background build of an avatar document (202)
    - GET  /api/builds/status - Build progress
    - GET  /api/builds/artifacts/{{filename}} - Download a bundle

    Press Ctrl+C to stop
    """)

    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL.lower()
    )
