import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

def export_json(data: Any, path: Path):
    """
    Export a record (or plain JSON data) to a JSON file.
    Pydantic models are written in their camelCase wire shape.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2, default=str)
