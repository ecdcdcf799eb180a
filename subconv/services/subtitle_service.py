import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from subconv import config

# Dictionary to store task statuses in memory, mirrored to data/status for restarts
task_status = {}

def _status_path(task_id: str) -> Path:
    return config.STATUS_DIR / f"{task_id}.json"

def get_task_status(task_id: str) -> Dict[str, Any]:
    """
    Get the status of a specific task
    """
    if task_id in task_status:
        return task_status[task_id]

    # Look for status file
    status_path = _status_path(task_id)
    if status_path.exists():
        with open(status_path, "r", encoding="utf-8") as f:
            return json.load(f)

    return {
        "task_id": task_id,
        "status": "not_found",
        "message": "Task not found or expired"
    }

def update_task_status(task_id: str, status: str, details: Optional[Dict[str, Any]] = None) -> None:
    """
    Update the status of a task
    """
    if details is None:
        details = {}

    previous = task_status.get(task_id, {})
    task_status[task_id] = {
        **previous,
        "task_id": task_id,
        "status": status,
        "last_updated": datetime.now().isoformat(),
        **details
    }

    # Also save to file for persistence
    config.STATUS_DIR.mkdir(parents=True, exist_ok=True)
    with open(_status_path(task_id), "w", encoding="utf-8") as f:
        json.dump(task_status[task_id], f)

def get_subtitle_path(task_id: str, original: bool = True) -> Optional[Path]:
    """
    Get the path to an uploaded (original) or converted subtitle file
    """
    if not original:
        file_path = config.PROCESSED_DIR / f"{task_id}.{config.DEFAULT_OUTPUT_FORMAT}"
        return file_path if file_path.exists() else None

    # Check for files with different extensions
    for ext in config.ALLOWED_SUBTITLE_EXTENSIONS:
        file_path = config.UPLOAD_DIR / f"{task_id}{ext}"
        if file_path.exists():
            return file_path

    return None
