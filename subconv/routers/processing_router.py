from fastapi import APIRouter, BackgroundTasks, HTTPException
from typing import Optional

from subconv.models.schema import ConversionOptions, ResampleRequest, ResampleResponse, TaskStatus
from subconv.services import processing_service, subtitle_service

router = APIRouter()

@router.post("/convert/{task_id}")
async def convert_subtitle(
    task_id: str,
    background_tasks: BackgroundTasks,
    options: Optional[ConversionOptions] = None
):
    """
    Convert an uploaded subtitle file with the specified options
    """
    if options is None:
        options = ConversionOptions()

    if not subtitle_service.get_subtitle_path(task_id, original=True):
        raise HTTPException(status_code=404, detail="Uploaded subtitle not found")

    # Schedule the conversion in the background
    background_tasks.add_task(
        processing_service.convert_subtitle,
        task_id=task_id,
        options=options
    )

    return {
        "task_id": task_id,
        "status": TaskStatus.PROCESSING.value,
        "options": options.model_dump(mode="json")
    }

@router.post("/resample", response_model=ResampleResponse)
async def resample_subtitle(request: ResampleRequest):
    """
    Resample ASS text sent in the request body and return it immediately
    """
    return processing_service.resample_text(request)
