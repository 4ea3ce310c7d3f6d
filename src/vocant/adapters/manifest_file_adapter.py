import mimetypes
import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from vocant.core.exceptions import ManifestError
from vocant.core.interfaces.work_source import WorkItemSourcePort
from vocant.core.models.work_item import Operation, WorkItem
from vocant.core.settings import logger


class ManifestEntry(BaseModel):
    """One `items:` entry of a batch manifest (after merging `defaults:`)."""

    model_config = ConfigDict(extra="forbid")

    operation: Operation = Operation.transcribe
    file: Optional[str] = None
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    callback_url: Optional[str] = None
    use_original_filename: bool = False
    job_id: Optional[str] = None


class ManifestFileAdapter(WorkItemSourcePort):
    """Loads work items from a YAML manifest.

    Payload paths are resolved relative to the manifest. A missing payload
    file does not reject the manifest: the item is created without bytes and
    fails on its own in the upload handshake.
    """

    def __init__(self, manifest_path: str):
        self._manifest_path = os.path.abspath(manifest_path)
        self._base_dir = os.path.dirname(self._manifest_path)

    def _read_manifest(self) -> Dict[str, Any]:
        try:
            with open(self._manifest_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except OSError as exc:
            raise ManifestError(f"Cannot read manifest {self._manifest_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ManifestError(f"Manifest {self._manifest_path} is not valid YAML: {exc}") from exc
        if not isinstance(raw, dict) or not isinstance(raw.get("items"), list):
            raise ManifestError(f"Manifest {self._manifest_path} needs a top-level 'items' list")
        return raw

    def _read_payload(self, path: str) -> Optional[bytes]:
        full_path = path if os.path.isabs(path) else os.path.join(self._base_dir, path)
        try:
            with open(full_path, "rb") as f:
                return f.read()
        except OSError as exc:
            logger.warning(f"[manifest] payload not readable path={full_path} err={exc}")
            return None

    def _to_work_item(self, index: int, entry: ManifestEntry) -> WorkItem:
        payload = None
        file_name = entry.file_name
        content_type = entry.content_type
        if entry.file:
            payload = self._read_payload(entry.file)
            file_name = file_name or os.path.basename(entry.file)
            content_type = content_type or mimetypes.guess_type(entry.file)[0]
        return WorkItem(
            index=index,
            operation=entry.operation,
            payload=payload,
            file_name=file_name,
            content_type=content_type,
            callback_url=entry.callback_url,
            use_original_filename=entry.use_original_filename,
            job_id=entry.job_id,
        )

    def load(self) -> List[WorkItem]:
        raw = self._read_manifest()
        defaults = raw.get("defaults") or {}
        items: List[WorkItem] = []
        for index, entry in enumerate(raw["items"]):
            if not isinstance(entry, dict):
                raise ManifestError(f"Manifest item {index} must be a mapping")
            try:
                items.append(self._to_work_item(index, ManifestEntry.model_validate({**defaults, **entry})))
            except ValidationError as exc:
                raise ManifestError(f"Manifest item {index} is invalid: {exc}") from exc
        logger.info(f"[manifest] loaded items={len(items)} path={self._manifest_path}")
        return items
