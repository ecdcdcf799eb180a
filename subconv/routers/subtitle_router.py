from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from fastapi.responses import FileResponse
from typing import Optional
from pathlib import Path
import uuid

from subconv import config
from subconv.models.schema import ConversionTask, TaskStatus
from subconv.services.conversion_service import detect_format
from subconv.services import subtitle_service
from subconv.utils.file_utils import get_file_extension, get_mime_type, is_valid_subtitle_file, sanitize_filename

router = APIRouter()

@router.post("/upload")
async def upload_subtitle_file(
    file: UploadFile = File(...),
    task_id: Optional[str] = Form(None)
):
    """
    Upload a subtitle file for conversion
    """
    if not task_id:
        task_id = str(uuid.uuid4())

    # Validate file type
    if not file.filename or not is_valid_subtitle_file(file.filename):
        raise HTTPException(status_code=400, detail="Unsupported subtitle format")

    content = await file.read()
    if len(content) > config.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail="Subtitle file too large")

    # Save the file
    file_path = config.UPLOAD_DIR / f"{task_id}{get_file_extension(file.filename)}"
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "wb") as buffer:
        buffer.write(content)

    task = ConversionTask(
        task_id=task_id,
        filename=file.filename,
        source_format=detect_format(file.filename)
    )
    subtitle_service.update_task_status(task_id, TaskStatus.UPLOADED.value, {
        "filename": task.filename,
        "source_format": task.source_format.value
    })

    return task.model_dump(mode="json")

@router.get("/status/{task_id}")
async def get_subtitle_status(task_id: str):
    """
    Get the status of a subtitle conversion task
    """
    return subtitle_service.get_task_status(task_id)

@router.get("/download/{task_id}")
async def download_processed_subtitle(task_id: str):
    """
    Download the converted ASS file
    """
    file_path = subtitle_service.get_subtitle_path(task_id, original=False)
    if not file_path:
        raise HTTPException(status_code=404, detail="Processed file not found")

    status = subtitle_service.get_task_status(task_id)
    original_name = Path(status.get("filename") or task_id).stem
    download_name = sanitize_filename(f"{original_name}{config.OUTPUT_SUFFIX}.{config.DEFAULT_OUTPUT_FORMAT}")

    return FileResponse(
        path=str(file_path),
        filename=download_name,
        media_type=get_mime_type(file_path)
    )
