"""Format detection and per-format metadata extraction for uploads.

Every chunk of a file carries the same base metadata produced here, plus
its own ``chunkIndex``/``totalChunks``.  Vector stores only accept flat
scalar metadata, so nested Kubernetes fields (labels, annotations, the
selector) are stored as compact JSON strings.

Extraction never blocks ingestion: a YAML file that fails to parse is
logged and falls back to the base metadata.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

import structlog
import yaml

from kb_assistant.models.documents import FileFormat

logger = structlog.get_logger(logger_name=__name__)

_EXTENSION_FORMATS: dict[str, FileFormat] = {
    ".yaml": FileFormat.YAML,
    ".yml": FileFormat.YAML,
    ".pdf": FileFormat.PDF,
    ".md": FileFormat.MARKDOWN,
}


def detect_format(file_name: str) -> FileFormat:
    """Map a file name to a :class:`FileFormat` by extension (text fallback)."""
    suffix = PurePosixPath(file_name).suffix.lower()
    return _EXTENSION_FORMATS.get(suffix, FileFormat.TEXT)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


class MetadataExtractor:
    """Builds the shared chunk metadata for one uploaded file."""

    def extract(
        self, content: str, file_name: str, file_format: FileFormat | None = None
    ) -> dict[str, Any]:
        """Return ``{fileName, format, uploadedAt}`` plus format-specific keys.

        Parameters
        ----------
        content:
            The raw file content.
        file_name:
            The upload's file name; also used for format detection when
            *file_format* is omitted.
        file_format:
            An already-detected format.
        """
        file_format = file_format or detect_format(file_name)
        metadata: dict[str, Any] = {
            "fileName": file_name,
            "format": file_format.value,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }

        if file_format is FileFormat.YAML:
            metadata.update(self._yaml_metadata(content, file_name))
        elif file_format in (FileFormat.TEXT, FileFormat.MARKDOWN):
            metadata["lineCount"] = len(content.split("\n"))
        # PDF: title/author/page extraction is not implemented; base only.

        return metadata

    # ------------------------------------------------------------------
    # Kubernetes manifests
    # ------------------------------------------------------------------

    @staticmethod
    def _yaml_metadata(content: str, file_name: str) -> dict[str, Any]:
        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            logger.warning("yaml_metadata_parse_failed", file_name=file_name, error=str(exc))
            return {}

        if not isinstance(parsed, dict):
            return {}

        extra: dict[str, Any] = {}
        if parsed.get("apiVersion"):
            extra["apiVersion"] = str(parsed["apiVersion"])
        if parsed.get("kind"):
            extra["kind"] = str(parsed["kind"])

        resource_meta = _mapping(parsed.get("metadata"))
        if resource_meta.get("name"):
            extra["resourceName"] = str(resource_meta["name"])
        if resource_meta.get("namespace"):
            extra["namespace"] = str(resource_meta["namespace"])
        if resource_meta.get("labels"):
            extra["labels"] = _compact_json(resource_meta["labels"])
        if resource_meta.get("annotations"):
            extra["annotations"] = _compact_json(resource_meta["annotations"])

        spec = _mapping(parsed.get("spec"))
        if spec.get("selector"):
            extra["selector"] = _compact_json(spec["selector"])
        containers = _mapping(_mapping(spec.get("template")).get("spec")).get("containers")
        if isinstance(containers, list) and containers:
            extra["containers"] = ",".join(
                str(_mapping(container).get("name", "")) for container in containers
            )

        return extra
