import os
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subconv import config
from subconv.routers import subtitle_router, processing_router

app = FastAPI(
    title="SubtitleConverter",
    description="Converts subtitle files to 1920x1080 ASS scripts and resamples existing ASS scripts",
    version="1.0.0"
)

# CORS settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Root endpoint
@app.get("/")
async def read_root():
    return {
        "name": "SubtitleConverter",
        "supported_formats": config.ALLOWED_SUBTITLE_EXTENSIONS,
        "target_resolution": f"{config.TARGET_PLAYRES_X}x{config.TARGET_PLAYRES_Y}",
    }

# Include routers
app.include_router(subtitle_router.router, prefix="/api/subtitles", tags=["subtitles"])
app.include_router(processing_router.router, prefix="/api/process", tags=["processing"])

def run() -> None:
    uvicorn.run(
        "subconv.main:app",
        host=os.getenv("SUBCONV_HOST", "0.0.0.0"),
        port=int(os.getenv("SUBCONV_PORT", "8000")),
        reload=False
    )

if __name__ == "__main__":
    run()
