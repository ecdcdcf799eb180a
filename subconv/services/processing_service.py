from typing import Any, Dict, Optional

from subconv import config
from subconv.models.schema import ConversionOptions, ResampleRequest, ResampleResponse, TaskStatus
from subconv.services.conversion_service import convert_file, detect_format
from subconv.services.resample_service import describe_context, finalize_output, resample_lines
from subconv.services.subtitle_service import get_subtitle_path, update_task_status
from subconv.utils.error_utils import error_handler, log_error, logger
from subconv.utils.file_utils import write_text_file

@error_handler
def convert_subtitle(task_id: str, options: Optional[ConversionOptions] = None) -> Dict[str, Any]:
    """
    Convert an uploaded subtitle file to the target ASS script
    """
    if options is None:
        options = ConversionOptions()

    update_task_status(task_id, TaskStatus.PROCESSING.value, {"progress": 0, "options": options.model_dump(mode="json")})

    subtitle_path = get_subtitle_path(task_id, original=True)
    if not subtitle_path:
        update_task_status(task_id, TaskStatus.ERROR.value, {"message": "Subtitle file not found"})
        return {"task_id": task_id, "status": TaskStatus.ERROR.value}

    try:
        source_format = detect_format(subtitle_path)
        update_task_status(task_id, TaskStatus.PROCESSING.value, {"progress": 10, "source_format": source_format.value})

        text = convert_file(subtitle_path, options.to_policy())

        output_path = config.PROCESSED_DIR / f"{task_id}.{config.DEFAULT_OUTPUT_FORMAT}"
        write_text_file(output_path, text)
    except Exception as e:
        error_info = log_error(e, f"Error converting {subtitle_path}", task_id)
        update_task_status(task_id, TaskStatus.ERROR.value, {
            "message": error_info["message"],
            "error_type": error_info["error_type"],
            "suggestions": error_info["suggestions"],
        })
        return error_info

    logger.info(f"Task {task_id} converted {subtitle_path} -> {output_path}")
    update_task_status(task_id, TaskStatus.COMPLETED.value, {"progress": 100, "output_path": str(output_path)})
    return {"task_id": task_id, "status": TaskStatus.COMPLETED.value, "output_path": str(output_path)}

def resample_text(request: ResampleRequest) -> ResampleResponse:
    """
    Resample ASS text sent inline, returning the resolutions used
    """
    policy = request.options.to_policy()
    lines, context = resample_lines(request.text, policy)
    summary = describe_context(context)

    return ResampleResponse(
        text=finalize_output("\n".join(lines), policy),
        source_resolution=summary["source"],
        target_resolution=summary["target"],
    )
